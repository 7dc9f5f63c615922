"""Configuration file loading and validation.

This module handles loading run configuration from JSON and YAML files,
merging CLI arguments with file-based configuration (with CLI taking
precedence), and validating the merged settings.

Configuration files can specify:
- rules: Path to the rules file
- lists: Path to the value-lists file
- data: List of dataset files (``name=path`` or plain paths)
- workers: Number of worker threads
- format: Report format (json, text, csv)
- severity: Severity filter for text and csv output
- mode: continue or fail_fast

Relative paths in a configuration file are resolved against the file's
directory.
"""

import json
from pathlib import Path
from typing import Any

import yaml

from dqrules.cli.registry import get_writer

KNOWN_KEYS = ("rules", "lists", "data", "workers", "format", "severity", "mode")
SEVERITY_FILTERS = ("failures", "warnings", "issues")
MODES = ("continue", "fail_fast")


class ConfigError(Exception):
    """Configuration file error.

    Raised when configuration files cannot be loaded or parsed, or when the
    merged configuration holds invalid values.
    """


def _resolve(base_dir: Path, value: str) -> str:
    name, sep, path = value.partition("=")
    if sep and not Path(value).exists():
        return f"{name}={_resolve(base_dir, path)}"
    candidate = Path(value)
    return str(candidate if candidate.is_absolute() else base_dir / candidate)


def load_config(path: Path) -> dict[str, Any]:
    """Load configuration from a JSON or YAML file.

    Args:
        path: Path to configuration file

    Returns:
        Configuration dictionary with file paths resolved

    Raises:
        ConfigError: If the file cannot be loaded, parsed or is not a mapping

    Example:
        >>> config = load_config(Path("dqrules.yaml"))
        >>> config["rules"]
        '/project/rules.json'
    """
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        if path.suffix == ".json":
            config = json.loads(content)
        elif path.suffix in (".yaml", ".yml"):
            config = yaml.safe_load(content)
        else:
            try:
                config = json.loads(content)
            except json.JSONDecodeError:
                config = yaml.safe_load(content)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e

    if config is None:
        return {}
    if not isinstance(config, dict):
        raise ConfigError(f"Configuration in {path} must be a mapping, got {type(config).__name__}")

    base_dir = path.parent
    for key in ("rules", "lists"):
        if isinstance(config.get(key), str):
            config[key] = _resolve(base_dir, config[key])
    if isinstance(config.get("data"), str):
        config["data"] = [config["data"]]
    if isinstance(config.get("data"), list):
        config["data"] = [_resolve(base_dir, str(item)) for item in config["data"]]
    return config


def merge_config(base: dict[str, Any], **overrides: Any) -> dict[str, Any]:
    """Merge CLI arguments into base configuration.

    Only non-None overrides are applied. An empty ``data`` list does not
    override the file's datasets.

    Example:
        >>> merge_config({"format": "text", "workers": 2}, format="json", workers=None)
        {'format': 'json', 'workers': 2}
    """
    merged = base.copy()
    for key, value in overrides.items():
        if value is None:
            continue
        if key == "data" and not value:
            continue
        merged[key] = value
    return merged


def validate_config(config: dict[str, Any]) -> list[str]:
    """Validate merged configuration values.

    Returns:
        List of validation error messages (empty list if valid)

    Example:
        >>> validate_config({"format": "xml"})
        ["Unknown report format 'xml'. Available: csv, json, text"]
    """
    errors = []

    unknown = sorted(set(config) - set(KNOWN_KEYS))
    if unknown:
        errors.append(f"Unknown configuration keys: {', '.join(unknown)}")

    if "format" in config:
        try:
            get_writer(str(config["format"]))
        except KeyError as e:
            errors.append(e.args[0])

    workers = config.get("workers", 1)
    if not isinstance(workers, int) or isinstance(workers, bool) or workers < 1:
        errors.append(f"workers must be a positive integer, got {workers!r}")

    severity = config.get("severity")
    if severity is not None and severity not in SEVERITY_FILTERS:
        errors.append(f"Unknown severity filter '{severity}'. Available: {', '.join(SEVERITY_FILTERS)}")

    mode = config.get("mode")
    if mode is not None and mode not in MODES:
        errors.append(f"Unknown mode '{mode}'. Available: {', '.join(MODES)}")

    data = config.get("data")
    if data is not None and not isinstance(data, list):
        errors.append(f"data must be a list of dataset files, got {type(data).__name__}")

    return errors
