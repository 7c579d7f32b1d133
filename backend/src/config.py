import logging
import os
import re
from pathlib import Path
from typing import Any

import toml

CONFIG_ENV_VAR = "FIDELITYRAG_CONFIG"
DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_ENV_REFERENCE = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


def find_config_path(explicit_path: Path | str | None = None) -> Path:
    """Locate config.toml.

    Order: the explicit path, ``$FIDELITYRAG_CONFIG``, the working
    directory, then the repository root.
    """
    if explicit_path:
        return Path(explicit_path)
    from_env = os.environ.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env)
    candidates = [
        Path("config.toml"),
        Path(__file__).parent.parent.parent / "config.toml",
    ]
    for path in candidates:
        if path.exists():
            return path
    raise FileNotFoundError(
        f"config.toml not found (checked {[str(p) for p in candidates]}); "
        f"pass --config or set {CONFIG_ENV_VAR}"
    )


def load_config(config_path: Path | str = Path("config.toml")) -> dict[str, Any]:
    """Load the TOML configuration and expand environment references.

    String values may use ``${VAR}`` or ``${VAR:-default}``; an unset
    variable without a default becomes the empty string.
    """
    config = toml.load(Path(config_path))
    return _substitute_env_vars(config)


def _substitute_env_vars(value: Any) -> Any:
    if isinstance(value, str):
        return _ENV_REFERENCE.sub(_expand_reference, value)
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _expand_reference(match: re.Match[str]) -> str:
    return os.environ.get(match.group(1), match.group(2) or "")


def get_config_value(config: dict, key_path: str, default: Any = None) -> Any:
    """Get a nested config value using dot notation.

    Args:
        config: Configuration dictionary.
        key_path: Dot-separated path (e.g., "evaluation.presence_threshold").
        default: Returned when any key along the path is missing.
    """
    value: Any = config
    for key in key_path.split("."):
        if not isinstance(value, dict) or key not in value:
            return default
        value = value[key]
    return value


def configure_logging(config: dict[str, Any]) -> None:
    """Apply the [logging] section to the root logger."""
    level = str(get_config_value(config, "logging.level", "INFO")).upper()
    fmt = get_config_value(config, "logging.format", DEFAULT_LOG_FORMAT)
    logging.basicConfig(level=getattr(logging, level, logging.INFO), format=fmt)
