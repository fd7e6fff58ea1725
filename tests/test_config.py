"""Tests for solver settings and their YAML representation."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from conftest import temp_file

from acp_scheduler.config import SolverConfig, load_config_from_yaml, save_config_to_yaml
from acp_scheduler.errors import ConfigurationError, FileLoadError


def test_defaults():
    config = SolverConfig().validate()
    assert config.lns_size == 10
    assert config.lns_limit == 30
    assert config.seed == 0
    assert config.time_limit_seconds is None
    assert config.operators == ("random_lns",)
    assert config.use_cost_filter


def test_shipped_config_file_matches_defaults():
    path = Path(__file__).parent.parent / "config" / "solver.yaml"
    assert load_config_from_yaml(path) == SolverConfig()


def test_load_nested_and_flat_layouts():
    nested = "solver:\n  lns_size: 4\n  operators: [random_lns, swap]\n"
    flat = "lns_limit: 7\ntime_limit_seconds: 2.5\nlog_level: debug\n"
    with temp_file(nested, suffix=".yaml") as path:
        config = load_config_from_yaml(path)
    assert config.lns_size == 4
    assert config.operators == ("random_lns", "swap")
    with temp_file(flat, suffix=".yaml") as path:
        config = load_config_from_yaml(path)
    assert config.lns_limit == 7
    assert config.time_limit_seconds == 2.5
    assert config.log_level == "DEBUG"


def test_empty_file_gives_defaults():
    with temp_file("", suffix=".yaml") as path:
        assert load_config_from_yaml(path) == SolverConfig()


@pytest.mark.parametrize(
    "content",
    [
        "solver:\n  lns_sise: 4\n",
        "solver:\n  lns_size: 0\n",
        "solver:\n  lns_size: many\n",
        "solver:\n  operators: [tabu]\n",
        "solver: [1, 2]\n",
        "- just\n- a list\n",
        "solver: {lns_size: 3\n",
    ],
)
def test_invalid_files(content: str):
    with temp_file(content, suffix=".yaml") as path:
        with pytest.raises(ConfigurationError):
            load_config_from_yaml(path)


def test_missing_file(tmp_path):
    with pytest.raises(FileLoadError):
        load_config_from_yaml(tmp_path / "nope.yaml")


def test_save_and_reload(tmp_path):
    config = SolverConfig(lns_size=3, seed=9, operators=("swap",), time_limit_seconds=1.0)
    path = tmp_path / "solver.yaml"
    save_config_to_yaml(config, path)
    assert yaml.safe_load(path.read_text())["solver"]["operators"] == ["swap"]
    assert load_config_from_yaml(path) == config


def test_overrides_skip_none():
    config = SolverConfig().with_overrides(lns_size=None, seed=3, operators=["swap"])
    assert config.lns_size == 10
    assert config.seed == 3
    assert config.operators == ("swap",)


def test_unknown_override():
    with pytest.raises(ConfigurationError):
        SolverConfig().with_overrides(neighborhood="big")


@pytest.mark.parametrize(
    "values",
    [
        {"lns_size": 0},
        {"lns_limit": -1},
        {"seed": -2},
        {"max_stall_iterations": 0},
        {"time_limit_seconds": 0.0},
        {"operators": ()},
        {"log_level": "LOUD"},
    ],
)
def test_out_of_range_values(values):
    with pytest.raises(ConfigurationError):
        SolverConfig(**values).validate()
