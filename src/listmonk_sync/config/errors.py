"""Errors raised while building client configuration.

These are the only exceptions the package raises on purpose; every remote
operation reports failures through ``ApiResponse`` instead.
"""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A connection or client setting is invalid, e.g. a non-positive timeout."""


class MissingConfigurationError(ConfigurationError):
    """One or more required ``LISTMONK_*`` environment variables are unset or blank."""
