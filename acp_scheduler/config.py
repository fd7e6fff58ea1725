# Load and structure solver settings from a YAML config file.
# Version: 1.0.0
# Provides defaults, validation and override handling for the search driver.

from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Literal

import yaml

from .errors import ConfigurationError, FileLoadError


# Type aliases for clarity
OperatorName = Literal["random_lns", "swap"]

# All neighborhood operators the search driver knows about
OPERATOR_NAMES: tuple[OperatorName, ...] = ("random_lns", "swap")

# Log levels accepted by the command line and the config file
LOG_LEVELS: tuple[str, ...] = ("DEBUG", "INFO", "WARNING", "ERROR")

# Settings file shipped next to the package
DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "solver.yaml"


@dataclass(frozen=True)
class SolverConfig:
    """Settings for the large neighborhood search.

    Attributes:
        lns_size: Number of item variables relaxed per neighborhood.
        lns_limit: Conflict limit of the inner one-shot search.
        seed: Seed for every random choice made during search.
        max_iterations: Upper bound on neighborhoods tried.
        max_stall_iterations: Consecutive non-improving neighborhoods before stopping.
        time_limit_seconds: Wall-clock budget for the whole search (None = unlimited).
        operators: Neighborhood operators, tried in round-robin order.
        use_cost_filter: Reject non-improving full candidates before calling the solver.
        log_level: Logging level used by the command line driver.
    """
    lns_size: int = 10
    lns_limit: int = 30
    seed: int = 0
    max_iterations: int = 2000
    max_stall_iterations: int = 500
    time_limit_seconds: float | None = None
    operators: tuple[OperatorName, ...] = ("random_lns",)
    use_cost_filter: bool = True
    log_level: str = "INFO"

    def validate(self) -> "SolverConfig":
        """Check option values.

        Returns:
            The config itself, so calls can be chained.

        Raises:
            ConfigurationError: If any option is out of range.
        """
        if self.lns_size < 1:
            raise ConfigurationError("lns_size", f"must be at least 1, got {self.lns_size}")
        if self.lns_limit < 0:
            raise ConfigurationError("lns_limit", f"must be non-negative, got {self.lns_limit}")
        if self.seed < 0:
            raise ConfigurationError("seed", f"must be non-negative, got {self.seed}")
        if self.max_iterations < 0:
            raise ConfigurationError(
                "max_iterations", f"must be non-negative, got {self.max_iterations}"
            )
        if self.max_stall_iterations < 1:
            raise ConfigurationError(
                "max_stall_iterations",
                f"must be at least 1, got {self.max_stall_iterations}"
            )
        if self.time_limit_seconds is not None and self.time_limit_seconds <= 0:
            raise ConfigurationError(
                "time_limit_seconds",
                f"must be positive, got {self.time_limit_seconds}"
            )
        if not self.operators:
            raise ConfigurationError("operators", "at least one operator is required")
        unknown = [op for op in self.operators if op not in OPERATOR_NAMES]
        if unknown:
            raise ConfigurationError(
                "operators",
                f"unknown operator(s) {', '.join(unknown)}. "
                f"Valid operators: {', '.join(OPERATOR_NAMES)}"
            )
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigurationError(
                "log_level", f"must be one of {', '.join(LOG_LEVELS)}, got {self.log_level}"
            )
        return self

    def with_overrides(self, **values: Any) -> "SolverConfig":
        """Return a copy with the given options replaced.

        Options whose value is None are left untouched, which lets the
        command line pass every flag through unconditionally.

        Raises:
            ConfigurationError: If an option name is unknown.
        """
        known = {f.name for f in fields(self)}
        changes = {}
        for name, value in values.items():
            if name not in known:
                raise ConfigurationError(name, "unknown option")
            if value is None:
                continue
            if name == "operators":
                value = tuple(value)
            changes[name] = value
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict view used for YAML and JSON output."""
        data = asdict(self)
        data["operators"] = list(self.operators)
        return data


def load_config_from_yaml(yaml_path: str | Path) -> SolverConfig:
    """Load solver settings from a YAML file.

    Missing keys keep their defaults.

    Args:
        yaml_path: Path to the YAML config file.

    Returns:
        Validated SolverConfig.

    Raises:
        FileLoadError: If the file cannot be read.
        ConfigurationError: If the file format is invalid.
    """
    yaml_path = Path(yaml_path)

    try:
        with open(yaml_path, 'r') as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise FileLoadError(str(yaml_path), e)
    except yaml.YAMLError as e:
        raise ConfigurationError(yaml_path.name, f"invalid YAML: {e}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(yaml_path.name, "top level must be a mapping")

    # Accept the settings either at top level or under a "solver" key
    settings = data.get('solver', data)
    if not isinstance(settings, dict):
        raise ConfigurationError(yaml_path.name, "'solver' must be a mapping")

    known = {f.name for f in fields(SolverConfig)}
    unknown = sorted(set(settings) - known)
    if unknown:
        raise ConfigurationError(yaml_path.name, f"unknown key(s): {', '.join(unknown)}")

    try:
        config = SolverConfig(
            lns_size=int(settings.get('lns_size', 10)),
            lns_limit=int(settings.get('lns_limit', 30)),
            seed=int(settings.get('seed', 0)),
            max_iterations=int(settings.get('max_iterations', 2000)),
            max_stall_iterations=int(settings.get('max_stall_iterations', 500)),
            time_limit_seconds=_optional_float(settings.get('time_limit_seconds')),
            operators=tuple(settings.get('operators', ["random_lns"])),
            use_cost_filter=bool(settings.get('use_cost_filter', True)),
            log_level=str(settings.get('log_level', "INFO")).upper(),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(yaml_path.name, f"invalid value: {e}")

    return config.validate()


def load_default_config() -> SolverConfig:
    """Settings from the shipped config/solver.yaml, or built-in defaults if it is missing.

    Raises:
        ConfigurationError: If the shipped file is invalid.
    """
    if DEFAULT_CONFIG_PATH.exists():
        return load_config_from_yaml(DEFAULT_CONFIG_PATH)
    return SolverConfig()


def save_config_to_yaml(config: SolverConfig, yaml_path: str | Path) -> None:
    """Save solver settings to a YAML file.

    Args:
        config: SolverConfig to save.
        yaml_path: Path to save the YAML config file.
    """
    data = {'solver': config.to_dict()}

    yaml_path = Path(yaml_path)
    with open(yaml_path, 'w') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    return float(value)
