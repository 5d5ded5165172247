import importlib.util
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from src.game.base import MAX_DISKS, MIN_DISKS

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "configs/default.py"

PLAYERS = ("model", "recursive")


class ConfigError(Exception):
    """Exception raised for configuration-related errors."""

    def __init__(self, message: str, config_path: Optional[str] = None):
        self.config_path = config_path
        super().__init__(f"Configuration error in '{config_path}': {message}" if config_path else f"Configuration error: {message}")


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load a Python configuration module into a dictionary.

    Every public, non-callable module attribute becomes a setting.

    Raises:
        ConfigError: If the file is missing or fails to execute
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigError("Configuration file not found", config_path)

    if not path.is_file():
        raise ConfigError("Configuration path is not a file", config_path)

    try:
        # Unique module name so several configs can be loaded side by side
        module_name = f"config_{abs(hash(str(path)))}"

        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise ConfigError("Cannot load configuration file", config_path)

        config_module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(config_module)

        config = {}
        for key in dir(config_module):
            if not key.startswith("_") and not callable(getattr(config_module, key)):
                config[key] = getattr(config_module, key)

        logger.info(f"Loaded configuration from {config_path} with {len(config)} settings")
        return config

    except ConfigError:
        raise
    except Exception as e:
        raise ConfigError(f"Failed to load configuration: {e}", config_path) from e


def validate_config(config: Dict[str, Any], required_fields: Optional[set] = None) -> List[str]:
    """Check a configuration dictionary.

    Returns:
        List of error messages, empty when the configuration is usable
    """
    errors = []

    errors.extend(_validate_required_fields(config, required_fields))
    errors.extend(_validate_field_types(config))
    errors.extend(_validate_value_ranges(config))
    errors.extend(_validate_disk_counts(config))
    errors.extend(_validate_paths(config))

    logger.debug(f"Configuration validation found {len(errors)} errors")
    return errors


def _validate_required_fields(config: Dict[str, Any], required_fields: Optional[set]) -> List[str]:
    if required_fields is None:
        required_fields = {
            "player",
            "disk_counts",
            "turn_limit_multiplier",
            "move_limit_multiplier",
            "repeated_invalid_limit",
            "state_revisit_limit",
            "window_size",
        }

    missing_fields = required_fields - set(config.keys())
    return [f"Missing required fields: {', '.join(sorted(missing_fields))}"] if missing_fields else []


def _validate_field_types(config: Dict[str, Any]) -> List[str]:
    errors = []

    type_checks = {
        "disk_count": int,
        "auto_solve_delay": (int, float),
        "player": str,
        "model": (str, type(None)),
        "temperature": (int, float),
        "disk_counts": list,
        "turn_limit_multiplier": (int, float),
        "move_limit_multiplier": (int, float),
        "repeated_invalid_limit": int,
        "state_revisit_limit": int,
        "window_size": int,
        "prompt_template_dir": (str, type(None)),
        "console_template_dir": (str, type(None)),
    }

    for field, expected_type in type_checks.items():
        if field in config:
            value = config[field]
            if not isinstance(value, expected_type):
                if isinstance(expected_type, tuple):
                    type_names = " or ".join(t.__name__ for t in expected_type)
                else:
                    type_names = expected_type.__name__
                errors.append(f"Field '{field}' must be {type_names}, got {type(value).__name__}")

    return errors


def _validate_value_ranges(config: Dict[str, Any]) -> List[str]:
    errors = []

    if config.get("player") is not None and isinstance(config["player"], str) \
            and config["player"] not in PLAYERS:
        errors.append(f"Field 'player' must be one of {', '.join(PLAYERS)}")

    temp = config.get("temperature")
    if isinstance(temp, (int, float)) and not (0.0 <= temp <= 2.0):
        errors.append("Field 'temperature' must be between 0.0 and 2.0")

    delay = config.get("auto_solve_delay")
    if isinstance(delay, (int, float)) and delay < 0:
        errors.append("Field 'auto_solve_delay' cannot be negative")

    positive_fields = [
        "turn_limit_multiplier", "move_limit_multiplier",
        "repeated_invalid_limit", "state_revisit_limit", "window_size"
    ]

    for field in positive_fields:
        value = config.get(field)
        if isinstance(value, (int, float)) and value <= 0:
            errors.append(f"Field '{field}' must be positive")

    return errors


def _validate_disk_counts(config: Dict[str, Any]) -> List[str]:
    errors = []

    disk_count = config.get("disk_count")
    if isinstance(disk_count, int) and not (MIN_DISKS <= disk_count <= MAX_DISKS):
        errors.append(f"Field 'disk_count' must be between {MIN_DISKS} and {MAX_DISKS}")

    counts = config.get("disk_counts")
    if isinstance(counts, list):
        if not counts:
            errors.append("Field 'disk_counts' cannot be empty")
        for i, count in enumerate(counts):
            if not isinstance(count, int) or not (MIN_DISKS <= count <= MAX_DISKS):
                errors.append(f"disk_counts[{i}] must be an integer between {MIN_DISKS} and {MAX_DISKS}")

    return errors


def _validate_paths(config: Dict[str, Any]) -> List[str]:
    errors = []
    for field in ("prompt_template_dir", "console_template_dir"):
        template_dir = config.get(field)
        if isinstance(template_dir, str):
            path = Path(template_dir)
            if not path.exists():
                errors.append(f"{field} '{template_dir}' does not exist")
            elif not path.is_dir():
                errors.append(f"{field} '{template_dir}' is not a directory")
    return errors
