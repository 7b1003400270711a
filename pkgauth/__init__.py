"""pkgauth - authenticate package managers against GitHub Packages.

Runs a GitHub OAuth2 authorization-code flow through a short-lived local
callback listener, caches the resulting token in the OS keyring, and
hands it to npm, docker or NuGet.
"""

from __future__ import annotations

from .config import PkgAuthSettings, clear_settings, get_settings
from .exceptions import (
    AuthenticationError,
    AuthFlowCancelled,
    AuthFlowTimeout,
    AuthorizationDenied,
    CredentialStoreError,
    ListenerBindError,
    PkgAuthException,
    ProviderSetterError,
    SelectionRequiredError,
    SetupDeclined,
    TokenExchangeError,
    UnknownProviderError,
)
from .orchestrator import Orchestrator, SetupRequest
from .providers import ProviderName, build_default_registry


__version__ = "0.1.0"

__all__ = [
    "AuthFlowCancelled",
    "AuthFlowTimeout",
    "AuthenticationError",
    "AuthorizationDenied",
    "CredentialStoreError",
    "ListenerBindError",
    "Orchestrator",
    "PkgAuthException",
    "PkgAuthSettings",
    "ProviderName",
    "ProviderSetterError",
    "SelectionRequiredError",
    "SetupDeclined",
    "SetupRequest",
    "TokenExchangeError",
    "UnknownProviderError",
    "__version__",
    "build_default_registry",
    "clear_settings",
    "get_settings",
]
