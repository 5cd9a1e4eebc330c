#!/usr/bin/env python3
"""
Unit tests for solver configuration loading and validation.
"""

import json
import pytest

from relucompress.back_end.errors import PreconditionViolation
from relucompress.util.config import ConfigManager, SolverConfig, ValidationError


class TestSolverConfig:

    def test_defaults(self):
        config = SolverConfig()
        assert config.solver == "auto"
        assert config.workers == 1
        assert config.time_limit is None

    @pytest.mark.parametrize("kwargs, field", [
        ({"solver": "cplex"}, "solver"),
        ({"time_limit": 0}, "time_limit"),
        ({"mip_gap": -1e-3}, "mip_gap"),
        ({"threads": 0}, "threads"),
        ({"workers": 0}, "workers"),
        ({"workers": "2"}, "workers"),
        ({"workers": 1.5}, "workers"),
        ({"workers": True}, "workers"),
        ({"threads": "4"}, "threads"),
        ({"time_limit": "10"}, "time_limit"),
        ({"time_limit": float("nan")}, "time_limit"),
        ({"mip_gap": "1e-6"}, "mip_gap"),
        ({"solver": ["highs"]}, "solver"),
        ({"output_flag": "yes"}, "output_flag"),
    ])
    def test_invalid_values(self, kwargs, field):
        with pytest.raises(ValidationError) as exc_info:
            SolverConfig(**kwargs)
        assert exc_info.value.field == field
        assert isinstance(exc_info.value, PreconditionViolation)

    def test_dict_roundtrip(self):
        config = SolverConfig(solver="highs", time_limit=5.0, workers=3)
        assert SolverConfig.from_dict(config.to_dict()) == config

    def test_unknown_key_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            SolverConfig.from_dict({"solver": "highs", "presolve": 2})
        assert exc_info.value.field == "presolve"
        assert "presolve" in str(exc_info.value)


class TestConfigManager:

    def test_load_yaml(self, tmp_path):
        (tmp_path / "solver.yaml").write_text("solver: highs\ntime_limit: 10\nworkers: 2\n")
        config = ConfigManager(tmp_path).load_config("solver.yaml")
        assert config == SolverConfig(solver="highs", time_limit=10, workers=2)

    def test_load_yaml_section(self, tmp_path):
        (tmp_path / "run.yaml").write_text("model: net.onnx\nsolver:\n  solver: highs\n  mip_gap: 0.001\n")
        config = ConfigManager(tmp_path).load_config("run.yaml")
        assert config.solver == "highs"
        assert config.mip_gap == pytest.approx(1e-3)

    def test_load_json(self, tmp_path):
        path = tmp_path / "solver.json"
        path.write_text(json.dumps({"solver": "highs", "threads": 2}))
        config = ConfigManager().load_config(str(path))
        assert config.threads == 2

    def test_empty_yaml_gives_defaults(self, tmp_path):
        (tmp_path / "empty.yaml").write_text("")
        assert ConfigManager(tmp_path).load_config("empty.yaml") == SolverConfig()

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "bad.yaml").write_text("solver: [highs\n")
        with pytest.raises(ValidationError) as exc_info:
            ConfigManager(tmp_path).load_config("bad.yaml")
        assert exc_info.value.field == "yaml_format"

    def test_quoted_number_rejected(self, tmp_path):
        (tmp_path / "solver.yaml").write_text('solver: highs\nworkers: "2"\n')
        with pytest.raises(ValidationError) as exc_info:
            ConfigManager(tmp_path).load_config("solver.yaml")
        assert exc_info.value.field == "workers"
        assert "must be an integer" in str(exc_info.value)

    def test_non_mapping_rejected(self, tmp_path):
        (tmp_path / "list.yaml").write_text("- highs\n- gurobi\n")
        with pytest.raises(ValidationError):
            ConfigManager(tmp_path).load_config("list.yaml")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            ConfigManager(tmp_path).load_config("missing.yaml")

    def test_cache(self, tmp_path):
        path = tmp_path / "solver.yaml"
        path.write_text("solver: highs\n")
        manager = ConfigManager(tmp_path)
        first = manager.load_config("solver.yaml")
        path.write_text("solver: highs\nworkers: 4\n")
        assert manager.load_config("solver.yaml") is first
        assert manager.load_config("solver.yaml", use_cache=False).workers == 4
