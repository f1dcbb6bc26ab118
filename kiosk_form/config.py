"""Global configuration for kiosk-form.

Configuration lives in ``~/.config/kiosk-form/config.yaml`` (or under
``$KIOSK_FORM_HOME``). Environment variables override the file.
"""

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, PositiveInt

HOME_ENV = "KIOSK_FORM_HOME"
REGISTRY_ENV = "KIOSK_FORM_REGISTRY"
LOG_LEVEL_ENV = "KIOSK_FORM_LOG_LEVEL"


class GlobalConfig(BaseModel):
    """Settings read from config.yaml."""

    default_registry_path: str | None = None
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"
    # Default truncation for questionnaires when the caller sets none.
    max_questions: PositiveInt | None = None


def get_kiosk_form_home() -> Path:
    """Directory holding config.yaml and the default registry."""
    env_home = os.environ.get(HOME_ENV)
    if env_home:
        return Path(env_home)
    return Path.home() / ".config" / "kiosk-form"


def get_config_path() -> Path:
    return get_kiosk_form_home() / "config.yaml"


def load_global_config() -> GlobalConfig:
    """Load config.yaml, or defaults when it does not exist.

    Raises:
        ValueError: If the file is not a YAML mapping.
    """
    path = get_config_path()
    if not path.exists():
        config = GlobalConfig()
    else:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must be a mapping: {path}")
        config = GlobalConfig.model_validate(data)

    env_level = os.environ.get(LOG_LEVEL_ENV)
    if env_level:
        config = config.model_copy(update={"log_level": env_level})
    return config


def save_global_config(config: GlobalConfig) -> Path:
    """Write config.yaml, creating the home directory if needed."""
    path = get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.dump(config.model_dump(exclude_none=True), f, sort_keys=False)
    return path


def get_registry_path() -> Path:
    """Resolve the registry directory.

    Order: ``$KIOSK_FORM_REGISTRY``, then ``default_registry_path`` from
    config.yaml, then ``<home>/registry``.
    """
    env_path = os.environ.get(REGISTRY_ENV)
    if env_path:
        return Path(env_path)

    config = load_global_config()
    if config.default_registry_path:
        return Path(config.default_registry_path)

    return get_kiosk_form_home() / "registry"
