"""Configuration management module for the tag extractor.

This module handles loading extraction settings from a JSON file.
"""
import json
import pathlib
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Union

# Get the project root directory (parent of tag_extractor package)
# Handle both installed package and development scenarios
_package_dir = pathlib.Path(__file__).parent.resolve()
_project_root = _package_dir.parent.resolve()

# File path - use project root for config
# Check if we're in development (pyproject.toml exists) or installed package
if (_project_root / "pyproject.toml").exists():
    # Development mode - use project root
    file_path = _project_root / "config.json"
else:
    # Installed package - use user home directory
    file_path = pathlib.Path.home() / ".tag-extractor" / "config.json"

config_init = {
    "buffer_size": 10485760,
    "default_interval": 1,
    "max_initial_capacity": 10_000_000,
    "csv_delimiter": ",",
    "txt_delimiter": "\t",
}


@dataclass
class ExtractorConfig:
    """Settings used by the extraction engine.

    Attributes:
        buffer_size: Characters per prefetch buffer
        default_interval: Decimation interval used when none is given
        max_initial_capacity: Upper bound on the first array allocation
        csv_delimiter: Field delimiter of csv files
        txt_delimiter: Field delimiter of txt files
    """
    buffer_size: int = config_init["buffer_size"]
    default_interval: int = config_init["default_interval"]
    max_initial_capacity: int = config_init["max_initial_capacity"]
    csv_delimiter: str = config_init["csv_delimiter"]
    txt_delimiter: str = config_init["txt_delimiter"]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractorConfig":
        """Build a config from a dictionary, ignoring unknown keys and bad values."""
        defaults = cls()
        values = {}
        for field in fields(cls):
            if field.name not in data:
                continue
            expected = type(getattr(defaults, field.name))
            value = data[field.name]
            if expected is int:
                try:
                    value = int(value)
                except (TypeError, ValueError):
                    print(f"Warning: Invalid value for {field.name}: {value!r}, using default")
                    continue
                if value <= 0:
                    print(f"Warning: {field.name} must be positive, using default")
                    continue
            elif not isinstance(value, str) or len(value) != 1:
                print(f"Warning: {field.name} must be a single character, using default")
                continue
            values[field.name] = value
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {field.name: getattr(self, field.name) for field in fields(self)}


def load_config(path: Optional[Union[str, pathlib.Path]] = None) -> ExtractorConfig:
    """Load settings from a JSON file, falling back to defaults.

    A missing, empty or invalid file is replaced with the defaults when the
    location is writable.

    Args:
        path: Config file to read. Defaults to the module-level file_path.

    Returns:
        The loaded configuration
    """
    config_path = pathlib.Path(path) if path is not None else file_path
    data = dict(config_init)
    try:
        # Read file JSON
        with open(config_path, "r") as file:
            loaded = json.load(file)

        if not isinstance(loaded, dict) or loaded == {}:
            _write_defaults(config_path)
        else:
            data.update(loaded)
    except (FileNotFoundError, json.JSONDecodeError, IOError, OSError):
        # Config file doesn't exist or is invalid, create default
        _write_defaults(config_path)

    return ExtractorConfig.from_dict(data)


def _write_defaults(config_path: pathlib.Path) -> None:
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, "w") as file:
            json.dump(config_init, file, indent=4)
    except (IOError, OSError):
        # If we can't write the config file, continue with defaults
        pass
