#===- relucompress/util/logger.py - Logging Setup ----------------------====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Logging configuration for the command line tool. Library modules only
#   create module-level loggers and never configure handlers themselves.
#
#===---------------------------------------------------------------------===#

import logging
from typing import Optional


def setup_logging(level: str = "INFO", log_file: Optional[str] = None,
                  format_str: Optional[str] = None) -> None:
    """
    Setup logging configuration.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file receiving a copy of the log
        format_str: Custom format string for log messages
    """
    if format_str is None:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    handlers = [logging.StreamHandler()]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=format_str,
        handlers=handlers,
        force=True,
    )

    # Reduce noise from solver libraries
    logging.getLogger("gurobipy").setLevel(logging.WARNING)
