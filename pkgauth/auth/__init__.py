"""OAuth2 authentication for pkgauth.

Provides credential storage, the package-token cache, OAuth application
registration, the local callback listener, and the authorization-code
flow that ties them together.
"""

from __future__ import annotations

from .app_registry import OAuthAppRegistry
from .callback_server import CallbackListener
from .credential_store import (
    Credential,
    CredentialStore,
    KeyringCredentialStore,
    MemoryCredentialStore,
    get_credential_store,
)
from .flow import AuthorizationFlow
from .token_cache import TokenCache
from .types import AuthFlowState, AuthorizationCallback, ListenerState, OAuthApplication


__all__ = [
    "AuthFlowState",
    "AuthorizationCallback",
    "AuthorizationFlow",
    "CallbackListener",
    "Credential",
    "CredentialStore",
    "KeyringCredentialStore",
    "ListenerState",
    "MemoryCredentialStore",
    "OAuthAppRegistry",
    "OAuthApplication",
    "TokenCache",
    "get_credential_store",
]
