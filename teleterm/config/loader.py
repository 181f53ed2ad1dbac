import logging
import os
from pathlib import Path
from typing import Any, Optional, Type, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from teleterm.config.schema import ClientConfig
from teleterm.constants import CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH
from teleterm.errors import ConfigError
from teleterm.utils import expand_env_vars

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)


def _warn_unknown_keys(model: BaseModel, path: str, config_path: Path) -> None:
    """Warn about keys the schema does not know, including inside terminal cards."""
    if model.model_extra:
        logger.warning("Unknown keys in %s at %s: %s", path, config_path, sorted(model.model_extra))

    for field_name, value in model:
        children = value if isinstance(value, list) else [value]
        for index, child in enumerate(children):
            if not isinstance(child, BaseModel):
                continue
            suffix = f"[{index}]" if isinstance(value, list) else ""
            _warn_unknown_keys(child, f"{path}.{field_name}{suffix}", config_path)


def _read_yaml(path: Path) -> Optional[dict[str, Any]]:
    """Return the file's top-level mapping, or None when it cannot be read."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to read config file %s: %s", path, e)
        return None

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(
            f"Config file {path} must contain a mapping, not {type(raw).__name__}",
            details={"path": str(path)},
        )
    return raw


def load_config(path: Path, model_class: Type[T]) -> T:
    """Load and validate configuration from a YAML file.

    Args:
        path: Path to the teleterm.yml file.
        model_class: The Pydantic model class to use for validation.

    Returns:
        The validated configuration model. Defaults when the file is
        missing or unreadable.

    Raises:
        ConfigError: If the file parses but is not a valid configuration.
    """
    if not path.exists():
        logger.debug("No config file at %s, using defaults", path)
        return model_class()

    raw = _read_yaml(path)
    if raw is None:
        return model_class()

    try:
        model = model_class.model_validate(expand_env_vars(raw))
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {path}", details={"errors": e.errors()}) from e
    _warn_unknown_keys(model, "root", path)
    return model


def default_config_path() -> Path:
    """$TELETERM_CONFIG when set, else ~/.teleterm/teleterm.yml."""
    return Path(os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH).expanduser()


def load_client_config(path: Optional[Path] = None) -> ClientConfig:
    """Load the client configuration, from the default path unless one is given."""
    return load_config(path or default_config_path(), ClientConfig)
