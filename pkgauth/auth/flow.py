"""OAuth2 authorization-code flow orchestrator.

Provides AuthorizationFlow, which runs the complete flow from a CLI
process: bind a local callback listener, send the browser to the
provider, wait for the redirect, exchange the code for an access token
and cache it.
"""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import logging
import secrets
import time
import webbrowser

from concurrent import futures
from typing import TYPE_CHECKING
from urllib.parse import urlencode

import httpx

from ..exceptions import (
    AuthenticationError,
    AuthFlowCancelled,
    AuthFlowTimeout,
    TokenExchangeError,
)
from .callback_server import CallbackListener
from .types import AuthFlowState, AuthorizationCallback


if TYPE_CHECKING:
    from collections.abc import Callable

    from ..config import OAuthSettings
    from .token_cache import TokenCache
    from .types import OAuthApplication


logger = logging.getLogger("pkgauth.auth")

PROVIDER_NAME = "github"


class AuthorizationFlow:
    """Runs one OAuth2 authorization-code flow per :meth:`run` call.

    Parameters
    ----------
    settings : OAuthSettings
        Endpoints, scopes, callback address and timeouts.
    token_cache : TokenCache
        Where the obtained token is persisted.
    http_client : httpx.Client, optional
        Client for the token exchange. One is created (and closed) per
        exchange when omitted.
    open_browser : callable, optional
        Browser launcher (defaults to ``webbrowser.open``).
    """

    def __init__(
        self,
        settings: OAuthSettings,
        token_cache: TokenCache,
        http_client: httpx.Client | None = None,
        open_browser: Callable[[str], object] | None = None,
    ) -> None:
        """Initialize the authorization flow."""
        self.settings = settings
        self.token_cache = token_cache
        self._http_client = http_client
        self._open_browser = open_browser or webbrowser.open

        self._flow_state = AuthFlowState.PENDING
        self._flow_id: str | None = None
        self._listener: CallbackListener | None = None
        self.browser_opened_at: float | None = None

    @property
    def flow_state(self) -> AuthFlowState:
        """Current state of the auth flow."""
        return self._flow_state

    @property
    def listener(self) -> CallbackListener | None:
        """The callback listener of the flow in progress, if any."""
        return self._listener

    @property
    def auth_timeout(self) -> float | None:
        """Seconds to wait for the redirect; None waits forever."""
        return self.settings.auth_timeout or None

    def build_authorize_url(
        self, client_id: str, redirect_uri: str, state: str, scope: str | None = None
    ) -> str:
        """Build the full authorization URL.

        Parameters
        ----------
        client_id : str
            The OAuth application's client id.
        redirect_uri : str
            The local callback URL.
        state : str
            Per-session nonce echoed back by the provider.
        scope : str, optional
            Space-separated scopes (defaults to the configured scopes).

        Returns
        -------
        str
            The full authorization URL.
        """
        params = {
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "scope": scope or self.settings.scopes,
            "state": state,
        }
        return f"{self.settings.authorize_url}?{urlencode(params)}"

    def run(self, app: OAuthApplication, scope: str | None = None) -> str:
        """Authorize ``app`` in the browser and return a fresh access token.

        This method blocks until the redirect arrives, the timeout expires
        or the flow is cancelled.

        Parameters
        ----------
        app : OAuthApplication
            The registered OAuth application.
        scope : str, optional
            Space-separated scopes (defaults to the configured scopes).

        Returns
        -------
        str
            The access token, already written to the token cache.

        Raises
        ------
        ListenerBindError
            If the callback port cannot be bound.
        AuthorizationDenied
            If the redirect carries no authorization code.
        AuthFlowTimeout
            If no redirect arrives within ``auth_timeout``.
        AuthFlowCancelled
            If :meth:`cancel` is called while waiting.
        TokenExchangeError
            If the token endpoint rejects the code or returns no token.
        """
        self._flow_id = secrets.token_urlsafe(8)
        self._flow_state = AuthFlowState.IN_PROGRESS

        # 1. Bind the callback listener before anything points a browser at it
        listener = CallbackListener(
            host=self.settings.callback_host,
            port=self.settings.callback_port,
            path=self.settings.callback_path,
            fail_on_missing_code=self.settings.fail_on_missing_code,
        )
        try:
            listener.start()
        except AuthenticationError:
            self._flow_state = AuthFlowState.FAILED
            raise
        self._listener = listener
        redirect_uri = listener.redirect_uri
        logger.info("Authenticating...")

        try:
            # 2. Send the browser to the provider
            state = secrets.token_urlsafe(32)
            authorize_url = self.build_authorize_url(app.client_id, redirect_uri, state, scope)
            logger.debug("Auth flow %s: opening %s", self._flow_id, authorize_url)
            self._open_browser(authorize_url)
            self.browser_opened_at = time.monotonic()

            # 3. Wait for the redirect
            callback = self._wait_for_callback(listener)
            if callback.state != state:
                msg = "State parameter mismatch (possible CSRF attack)"
                raise AuthenticationError(msg, provider=PROVIDER_NAME, flow_id=self._flow_id)

            # 4. Exchange the code
            logger.info("Getting access_token...")
            token = self.exchange_code(app, callback.code, redirect_uri, state)

            # 5. Cache it
            self.token_cache.store(app.client_id, token)
        except AuthFlowTimeout:
            self._flow_state = AuthFlowState.TIMED_OUT
            raise
        except AuthFlowCancelled:
            self._flow_state = AuthFlowState.CANCELLED
            raise
        except AuthenticationError:
            self._flow_state = AuthFlowState.FAILED
            raise
        except KeyboardInterrupt:
            self._flow_state = AuthFlowState.CANCELLED
            raise
        finally:
            listener.stop()
            self._listener = None

        self._flow_state = AuthFlowState.COMPLETED
        logger.info("Got token!")
        return token

    def _wait_for_callback(self, listener: CallbackListener) -> AuthorizationCallback:
        """Wait on the listener's future, translating timeout and cancellation."""
        timeout = self.auth_timeout
        try:
            return listener.wait(timeout=timeout)
        except futures.TimeoutError as exc:
            msg = f"Authentication timed out after {timeout}s"
            raise AuthFlowTimeout(
                msg, timeout=timeout or 0.0, provider=PROVIDER_NAME, flow_id=self._flow_id
            ) from exc
        except futures.CancelledError as exc:
            msg = "Authentication flow was cancelled"
            raise AuthFlowCancelled(msg, provider=PROVIDER_NAME, flow_id=self._flow_id) from exc

    def exchange_code(
        self,
        app: OAuthApplication,
        code: str,
        redirect_uri: str,
        state: str,
    ) -> str:
        """Exchange an authorization code for an access token.

        Parameters
        ----------
        app : OAuthApplication
            The registered OAuth application.
        code : str
            The authorization code from the callback.
        redirect_uri : str
            The redirect URI used in the authorization request.
        state : str
            The state nonce used in the authorization request.

        Returns
        -------
        str
            The access token.

        Raises
        ------
        TokenExchangeError
            If the exchange fails for any reason.
        """
        data = {
            "client_id": app.client_id,
            "client_secret": app.client_secret,
            "code": code,
            "redirect_uri": redirect_uri,
            "state": state,
        }

        client = self._http_client or httpx.Client(timeout=self.settings.http_timeout)
        try:
            resp = client.post(
                self.settings.token_url,
                data=data,
                headers={"Accept": "application/json"},
            )
            resp.raise_for_status()
            raw = resp.json()
        except httpx.HTTPStatusError as exc:
            msg = f"GitHub token exchange failed: {exc.response.status_code}"
            raise TokenExchangeError(
                msg,
                status_code=exc.response.status_code,
                provider=PROVIDER_NAME,
                flow_id=self._flow_id,
            ) from exc
        except httpx.HTTPError as exc:
            msg = f"GitHub token exchange request failed: {exc}"
            raise TokenExchangeError(msg, provider=PROVIDER_NAME, flow_id=self._flow_id) from exc
        except ValueError as exc:
            msg = "GitHub token endpoint returned a non-JSON body"
            raise TokenExchangeError(
                msg, status_code=resp.status_code, provider=PROVIDER_NAME, flow_id=self._flow_id
            ) from exc
        finally:
            if self._http_client is None:
                client.close()

        if not isinstance(raw, dict):
            msg = "GitHub token endpoint returned an unexpected body"
            raise TokenExchangeError(msg, status_code=resp.status_code, provider=PROVIDER_NAME)

        if "error" in raw:
            msg = f"GitHub token error: {raw.get('error_description') or raw['error']}"
            raise TokenExchangeError(
                msg, status_code=resp.status_code, provider=PROVIDER_NAME, flow_id=self._flow_id
            )

        token = raw.get("access_token")
        if not token:
            msg = "GitHub token response has no access_token"
            raise TokenExchangeError(
                msg, status_code=resp.status_code, provider=PROVIDER_NAME, flow_id=self._flow_id
            )
        return str(token)

    def cancel(self) -> None:
        """Cancel the flow in progress.

        Stops the listener, which cancels its future and unblocks :meth:`run`.
        """
        if self._listener is not None:
            self._listener.stop()
