import sys
from pathlib import Path

# Insert project root so the relucompress package is importable without installing,
# and the test directory so test modules can share test_configs
PROJECT_ROOT = Path(__file__).resolve().parent.parent
TEST_DIR = Path(__file__).resolve().parent
sys.path.insert(0, str(PROJECT_ROOT))
sys.path.insert(0, str(TEST_DIR))
