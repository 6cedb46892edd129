"""Configuration loading for the tailoring service."""

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from cv_tailor.core.exceptions import ConfigurationError

from .schema import DEFAULT_MODELS, Provider, TailorSettings

log = logging.getLogger(__name__)


def load_settings(env_file: str | Path | None = None, **overrides: Any) -> TailorSettings:
    """Resolve settings from overrides, environment, and an optional .env file.

    Precedence: explicit ``overrides`` > environment variables > ``env_file``
    > defaults.

    Raises:
        FileNotFoundError: If ``env_file`` is given but does not exist.
        ConfigurationError: If any value fails validation.
    """
    if env_file is not None and not Path(env_file).exists():
        raise FileNotFoundError(f"Environment file not found: {env_file}")
    try:
        settings = TailorSettings(_env_file=env_file, **overrides)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
    log.debug("Resolved settings: %s", settings.to_dict())
    return settings


__all__ = ["DEFAULT_MODELS", "Provider", "TailorSettings", "load_settings"]
