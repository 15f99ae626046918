"""``${VAR}`` templating for config.yaml."""

import os
import re
from pathlib import Path

import yaml
from loguru import logger
from pydantic_core import ValidationError

from src.catalog.runtime.config.config_data import ConfigData

_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")


def _resolve(expression: str) -> str:
    if ":-" in expression:
        name, default = expression.split(":-", 1)
        return os.getenv(name, default)

    name, _, message = expression.partition(":?")
    value = os.getenv(name)
    if value is None:
        detail = message or "not set"
        raise ValueError(f"Required environment variable {name}: {detail}")
    return value


def substitute_env_vars(text: str) -> str:
    """Replace environment placeholders in ``text``.

    Supported forms:
    - ``${VAR}``: required, ``ValueError`` when unset
    - ``${VAR:-default}``: ``default`` when unset
    - ``${VAR:?message}``: required, ``message`` is reported when unset
    """
    return _PLACEHOLDER.sub(lambda match: _resolve(match.group(1)), text)


def apply_environment_overrides(env_mode: str) -> list[str]:
    """Copy ``<ENV>_NAME`` variables onto ``NAME`` and return the names applied.

    With ``env_mode="test"``, ``TEST_REDIS_URL`` replaces ``REDIS_URL``.
    """
    prefix = f"{env_mode.upper()}_"
    applied = []
    for name, value in list(os.environ.items()):
        if name.startswith(prefix) and len(name) > len(prefix):
            os.environ[name.removeprefix(prefix)] = value
            applied.append(name)
    return applied


def load_templated_yaml(file_path: str | Path, env_mode: str = "development") -> ConfigData:
    """Load the ``config`` section of a templated YAML file.

    Raises:
        ValueError: A required variable is missing, the YAML is malformed, or the
            values fail validation.
        FileNotFoundError: The file doesn't exist.
    """
    raw = Path(file_path).read_text()

    overrides = apply_environment_overrides(env_mode)
    logger.info("Loading configuration for environment: {}", env_mode)
    if overrides:
        logger.debug("Environment overrides applied: {}", overrides)

    try:
        loaded = yaml.safe_load(substitute_env_vars(raw))
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e
    if not isinstance(loaded, dict):
        raise ValueError(f"Configuration file {file_path} is empty or not a mapping")

    try:
        return ConfigData(**(loaded.get("config") or {}))
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e
