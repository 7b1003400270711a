"""pkgauth exception hierarchy.

All pkgauth-specific exceptions inherit from PkgAuthException, enabling
catch-all handling at the CLI boundary while supporting specific error types.
Each class carries a stable ``kind`` string so a reported failure can always
be told apart from the others.
"""

from __future__ import annotations

from typing import Any, ClassVar


class PkgAuthException(Exception):
    """Base exception for all pkgauth errors."""

    kind: ClassVar[str] = "error"

    def __init__(self, message: str, **context: Any) -> None:
        """Initialize pkgauth exception.

        Parameters
        ----------
        message : str
            Human-readable error message.
        **context : Any
            Additional context (port, provider_name, status_code, etc.).
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Format exception with context."""
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items() if v is not None)
            if ctx:
                return f"{self.message} ({ctx})"
        return self.message


class SetupDeclined(PkgAuthException):  # noqa: N818
    """The user chose not to register an OAuth application.

    Not a failure. The CLI stops cleanly with exit code 0.
    """

    kind = "user_declined"


class AuthenticationError(PkgAuthException):
    """Base exception for all authentication failures.

    Raised when the OAuth2 authorization-code flow fails at any step.
    """

    kind = "authentication_failure"

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        flow_id: str | None = None,
        **context: Any,
    ) -> None:
        """Initialize authentication error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        provider : str, optional
            The OAuth2 provider name (e.g., "github").
        flow_id : str, optional
            The unique identifier of the auth flow that failed.
        **context : Any
            Additional context.
        """
        super().__init__(message, provider=provider, flow_id=flow_id, **context)
        self.provider = provider
        self.flow_id = flow_id


class ListenerBindError(AuthenticationError):
    """The local callback listener could not bind its port.

    Raised when the port is already in use or binding is not permitted.
    """

    kind = "listener_bind_failure"

    def __init__(self, message: str, host: str, port: int, **context: Any) -> None:
        """Initialize bind error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        host : str
            The address the listener tried to bind.
        port : int
            The port the listener tried to bind.
        **context : Any
            Additional context.
        """
        super().__init__(message, host=host, port=port, **context)
        self.host = host
        self.port = port


class AuthorizationDenied(AuthenticationError):  # noqa: N818
    """The provider redirected back without an authorization code.

    Typically the user denied access or the provider reported an error.
    """

    kind = "callback_missing_code"


class AuthFlowCancelled(AuthenticationError):  # noqa: N818
    """Authentication flow was cancelled.

    Raised when the flow is aborted (e.g. Ctrl+C) while waiting
    for the browser redirect.
    """

    kind = "flow_cancelled"


class AuthFlowTimeout(AuthenticationError):
    """Authentication flow timed out.

    Raised when the blocking wait for the OAuth2 callback
    exceeds the configured timeout.
    """

    kind = "flow_timeout"

    def __init__(
        self,
        message: str,
        timeout: float,
        provider: str | None = None,
        flow_id: str | None = None,
        **context: Any,
    ) -> None:
        """Initialize timeout error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        timeout : float
            The timeout value in seconds.
        provider : str, optional
            The OAuth2 provider name.
        flow_id : str, optional
            The unique identifier of the auth flow.
        **context : Any
            Additional context.
        """
        super().__init__(message, provider=provider, flow_id=flow_id, timeout=timeout, **context)
        self.timeout = timeout


class TokenExchangeError(AuthenticationError):
    """Exchanging the authorization code for an access token failed.

    Raised on a non-success HTTP status, a transport error, or a
    response body without an ``access_token``.
    """

    kind = "token_exchange_failure"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        provider: str | None = None,
        flow_id: str | None = None,
        **context: Any,
    ) -> None:
        """Initialize token exchange error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        status_code : int, optional
            HTTP status returned by the token endpoint, if any.
        provider : str, optional
            The OAuth2 provider name.
        flow_id : str, optional
            The unique identifier of the auth flow.
        **context : Any
            Additional context.
        """
        super().__init__(
            message, provider=provider, flow_id=flow_id, status_code=status_code, **context
        )
        self.status_code = status_code


class UnknownProviderError(PkgAuthException):
    """The requested package-manager provider is not registered."""

    kind = "unknown_provider"

    def __init__(self, message: str, provider_name: str, known: list[str], **context: Any) -> None:
        """Initialize unknown provider error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        provider_name : str
            The name that failed to resolve.
        known : list[str]
            The registered provider names.
        **context : Any
            Additional context.
        """
        super().__init__(message, provider_name=provider_name, known=known, **context)
        self.provider_name = provider_name
        self.known = known


class SelectionRequiredError(PkgAuthException):
    """A required input was left empty.

    Raised instead of silently proceeding with an empty username,
    organization, provider or OAuth client credential.
    """

    kind = "selection_required"

    def __init__(self, message: str, field: str, **context: Any) -> None:
        """Initialize selection error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        field : str
            The input that was required (e.g. "org", "user").
        **context : Any
            Additional context.
        """
        super().__init__(message, field=field, **context)
        self.field = field


class ProviderSetterError(PkgAuthException):
    """A provider's setter failed to configure the package manager.

    Wraps whatever the setter raised (missing binary, non-zero exit, timeout).
    """

    kind = "provider_setter_failure"

    def __init__(self, message: str, provider_name: str, **context: Any) -> None:
        """Initialize setter error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        provider_name : str
            The provider whose setter failed.
        **context : Any
            Additional context.
        """
        super().__init__(message, provider_name=provider_name, **context)
        self.provider_name = provider_name


class CredentialStoreError(PkgAuthException):
    """The OS credential store could not be read or written.

    Typically no keyring backend is available (headless Linux) or the
    user refused to unlock it.
    """

    kind = "credential_store_failure"

    def __init__(self, message: str, service: str, **context: Any) -> None:
        """Initialize credential store error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        service : str
            The service namespace being read or written.
        **context : Any
            Additional context.
        """
        super().__init__(message, service=service, **context)
        self.service = service
