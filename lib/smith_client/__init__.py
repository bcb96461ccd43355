from .client import SmithClient
from .config_loader import ConfigLoader, ConfigView, get_config_loader, reset_config_loader
from .config_types import FALLBACK_ORIGIN, ClientConfig, ServiceConfig
from .coordinator import APICallCoordinator, CallResult, CallState
from .errors import (
    ApiError,
    AuthError,
    AuthenticationRequired,
    ConfigLoadError,
    NetworkError,
    RequestBodyError,
    SmithClientError,
    TokenAcquisitionError,
)
from .identity import IdentityProvider, StaticTokenProvider
from .transport import AuthenticatedRequestClient, RequestDescriptor, resolve_target

__all__ = [
    "SmithClient",
    "ConfigLoader",
    "ConfigView",
    "get_config_loader",
    "reset_config_loader",
    "FALLBACK_ORIGIN",
    "ClientConfig",
    "ServiceConfig",
    "APICallCoordinator",
    "CallResult",
    "CallState",
    "ApiError",
    "AuthError",
    "AuthenticationRequired",
    "ConfigLoadError",
    "NetworkError",
    "RequestBodyError",
    "SmithClientError",
    "TokenAcquisitionError",
    "IdentityProvider",
    "StaticTokenProvider",
    "AuthenticatedRequestClient",
    "RequestDescriptor",
    "resolve_target",
]
