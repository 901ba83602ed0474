"""Errors raised while reading civicops settings from the environment."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class ConfigurationError(RuntimeError):
    """A setting is present but cannot be used as given."""

    code = "configuration_error"

    def __init__(self, message: str, *, settings: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.settings = tuple(settings)


class MissingConfigurationError(ConfigurationError):
    """Required settings are unset or blank."""

    code = "missing_configuration"

    def __init__(self, names: Iterable[str]) -> None:
        missing = tuple(sorted(names))
        super().__init__(f"Missing configuration for: {', '.join(missing)}", settings=missing)
