"""API Client Abstractions for source-control providers.

All HTTP functionality is contained within dedicated API client classes;
the history engine only sees the ``ProviderClient`` protocol.
"""

from .error_handler import (
    ProviderAuthenticationError,
    ProviderConfigurationError,
    ProviderConnectionError,
    ProviderError,
    ProviderErrorHandler,
    ProviderResponseError,
    ProviderTimeoutError,
    ResourceNotFoundError,
    ThrottlingError,
    UserGuidance,
)
from .provider_client import ProviderClient
from .codecommit_client import CodeCommitClient

__all__ = [
    # Provider interface
    "ProviderClient",
    "CodeCommitClient",
    # Errors
    "ProviderError",
    "ThrottlingError",
    "ProviderAuthenticationError",
    "ProviderConfigurationError",
    "ResourceNotFoundError",
    "ProviderConnectionError",
    "ProviderTimeoutError",
    "ProviderResponseError",
    "ProviderErrorHandler",
    "UserGuidance",
]
