"""Exceptions raised by provider adapters."""


class ProviderError(Exception):
    """Base class for provider adapter failures."""


class ConfigurationError(ProviderError):
    """No usable base URL could be resolved from any configuration layer."""


class TransportError(ProviderError):
    """The daemon could not be reached or returned an unusable body."""
