"""Type definitions shared by the OAuth2 flow components."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class OAuthApplication:
    """A registered GitHub OAuth application.

    Attributes
    ----------
    client_id : str
        The application's client id (also the credential account name).
    client_secret : str
        The application's client secret.
    """

    client_id: str
    client_secret: str

    def __repr__(self) -> str:
        """Represent the application without leaking the secret."""
        return f"OAuthApplication(client_id={self.client_id!r}, client_secret='***')"


@dataclass(frozen=True)
class AuthorizationCallback:
    """Query parameters delivered by the provider's redirect.

    Attributes
    ----------
    code : str
        The short-lived authorization code.
    state : str or None
        The state nonce echoed back by the provider.
    """

    code: str
    state: str | None = None


class ListenerState(str, Enum):
    """Lifecycle of a callback listener."""

    UNBOUND = "unbound"
    BOUND = "bound"
    FULFILLED = "fulfilled"
    ERRORED = "errored"


class AuthFlowState(str, Enum):
    """State of an OAuth2 authentication flow."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"
    TIMED_OUT = "timed_out"
