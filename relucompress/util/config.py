#===- relucompress/util/config.py - Solver Configuration ---------------====#
# ReluCompress: Bound-Certified ReLU Network Compression
# Copyright (C) 2025– ACT Team
#
# Licensed under the GNU Affero General Public License v3.0 or later (AGPLv3+).
# Distributed without any warranty; see <http://www.gnu.org/licenses/>.
#===---------------------------------------------------------------------===#
#
# Purpose:
#   Solver configuration for the "standard" bound mode and YAML/JSON
#   loading of configuration files.
#
#===---------------------------------------------------------------------===#

import json
import logging
import numbers
from dataclasses import dataclass, fields, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from relucompress.back_end.errors import PreconditionViolation

logger = logging.getLogger(__name__)

SOLVER_CHOICES = ("auto", "gurobi", "highs")


@dataclass
class ValidationError(PreconditionViolation):
    """Configuration validation error."""
    field: str
    message: str

    def __str__(self):
        return f"Configuration error in '{self.field}': {self.message}"


def _check_type(name: str, value: Any, kind: type, what: str, optional: bool = False) -> None:
    # bool is an Integral
    if value is None and optional:
        return
    if isinstance(value, bool) or not isinstance(value, kind):
        raise ValidationError(name, f"must be {what}, got {type(value).__name__} {value!r}")


@dataclass
class SolverConfig:
    """Settings for the per-neuron MILP solves.

    Attributes:
        solver: Backend name, one of "auto", "gurobi" or "highs". "auto" uses
            Gurobi when gurobipy is importable and HiGHS otherwise.
        time_limit: Seconds allowed per optimisation; None means no limit.
            A solve that hits the limit counts as a solver failure.
        mip_gap: Relative MIP gap passed to the backend.
        threads: Threads per solve (Gurobi only).
        workers: Number of neurons solved concurrently.
        output_flag: Forward backend log output to stdout.
    """
    solver: str = "auto"
    time_limit: Optional[float] = None
    mip_gap: Optional[float] = 1e-6
    threads: Optional[int] = None
    workers: int = 1
    output_flag: bool = False

    def __post_init__(self):
        if not isinstance(self.solver, str):
            raise ValidationError("solver", f"must be a string, got {type(self.solver).__name__}")
        if self.solver not in SOLVER_CHOICES:
            raise ValidationError("solver", f"unknown solver '{self.solver}', expected one of {SOLVER_CHOICES}")
        for name in ("time_limit", "mip_gap"):
            _check_type(name, getattr(self, name), numbers.Real, "a number", optional=True)
        for name in ("threads", "workers"):
            _check_type(name, getattr(self, name), numbers.Integral, "an integer", optional=name == "threads")
        if not isinstance(self.output_flag, bool):
            raise ValidationError("output_flag", f"must be true or false, got {type(self.output_flag).__name__}")
        if self.time_limit is not None and not self.time_limit > 0:
            raise ValidationError("time_limit", "must be positive")
        if self.mip_gap is not None and not self.mip_gap >= 0:
            raise ValidationError("mip_gap", "must be non-negative")
        if self.threads is not None and self.threads < 1:
            raise ValidationError("threads", "must be at least 1")
        if self.workers < 1:
            raise ValidationError("workers", "must be at least 1")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SolverConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValidationError(unknown[0], f"unknown solver option, expected one of {sorted(known)}")
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ConfigManager:
    """Loads solver configurations from YAML or JSON files."""

    def __init__(self, base_path: Optional[Union[str, Path]] = None):
        """
        Args:
            base_path: Directory relative config names are resolved against.
                Defaults to the current working directory.
        """
        self.base_path = Path(base_path) if base_path is not None else Path.cwd()
        self._config_cache: Dict[str, SolverConfig] = {}

    def load_config(self, config_name: str, use_cache: bool = True) -> SolverConfig:
        """
        Load a solver configuration.

        The file may either hold the options at top level or under a
        ``solver`` section when it is shared with other settings.

        Raises:
            FileNotFoundError: If the config file doesn't exist
            ValidationError: If the file or its options are invalid
        """
        if use_cache and config_name in self._config_cache:
            return self._config_cache[config_name]

        config_path = self._resolve_config_path(config_name)
        if config_path.suffix.lower() == '.json':
            raw = self._load_json(config_path)
        else:
            raw = self._load_yaml(config_path)

        if not isinstance(raw, dict):
            raise ValidationError("root", f"expected a mapping in {config_path}")
        section = raw.get("solver", raw) if isinstance(raw.get("solver"), dict) else raw
        config = SolverConfig.from_dict(section)

        if use_cache:
            self._config_cache[config_name] = config
        logger.info(f"Loaded configuration: {config_path}")
        return config

    def _resolve_config_path(self, config_name: str) -> Path:
        config_path = Path(config_name)
        if not config_path.is_absolute():
            config_path = self.base_path / config_path
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")
        return config_path

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValidationError("yaml_format", f"Invalid YAML format: {e}")

    def _load_json(self, path: Path) -> Dict[str, Any]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError("json_format", f"Invalid JSON format: {e}")
