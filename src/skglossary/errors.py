"""Exception hierarchy shared by the glossary services and the workflow driver."""

from __future__ import annotations


class GlossaryError(Exception):
    """Base class for every error raised by skglossary."""


class ConfigurationError(GlossaryError):
    """Missing or malformed configuration value; raised before any network call."""


class AuthenticationError(GlossaryError):
    """The identity provider or a downstream service rejected the credential."""


class GlossaryServiceError(GlossaryError):
    """A remote service call failed."""


class TransientServiceError(GlossaryServiceError):
    """Timeout, throttling or connectivity failure. Safe for the caller to retry."""


class SchemaMismatchError(GlossaryError, ValueError):
    """A vector does not match the dimension declared by the collection schema."""


class InvalidFilterError(GlossaryError, ValueError):
    """A filter references an unknown or non-filterable field."""


class CollectionNotFoundError(GlossaryError):
    """The collection was used before it was created."""
