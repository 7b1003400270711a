"""Registered OAuth application lookup and first-run registration."""

from __future__ import annotations

import logging
import webbrowser

from typing import TYPE_CHECKING

from ..exceptions import SelectionRequiredError, SetupDeclined
from .types import OAuthApplication


if TYPE_CHECKING:
    from collections.abc import Callable

    from ..prompts import Prompter
    from .credential_store import CredentialStore


logger = logging.getLogger("pkgauth.auth")

DEFAULT_OAUTH_APP_SERVICE = "gh-pkg-helper://github.com"
DEFAULT_REGISTRATION_URL = "https://github.com/settings/applications/new"


class OAuthAppRegistry:
    """Holds the single OAuth application this tool authenticates with.

    The first credential under the OAuth-app service is the application.
    When none exists the user is walked through registering one.

    Parameters
    ----------
    store : CredentialStore
        Backing credential store.
    prompter : Prompter
        Asks for consent and for the new client id/secret.
    callback_url : str
        The redirect URI the user must register on the application.
    service : str
        Service namespace for OAuth application credentials.
    registration_url : str
        Page opened in the browser to register a new application.
    open_browser : callable, optional
        Browser launcher (defaults to ``webbrowser.open``).
    """

    def __init__(
        self,
        store: CredentialStore,
        prompter: Prompter,
        callback_url: str,
        service: str = DEFAULT_OAUTH_APP_SERVICE,
        registration_url: str = DEFAULT_REGISTRATION_URL,
        open_browser: Callable[[str], object] | None = None,
    ) -> None:
        self.store = store
        self.prompter = prompter
        self.callback_url = callback_url
        self.service = service
        self.registration_url = registration_url
        self._open_browser = open_browser or webbrowser.open

    def resolve(self) -> OAuthApplication:
        """Return the stored application, registering one if needed.

        Returns
        -------
        OAuthApplication
            The persisted client id/secret pair.

        Raises
        ------
        SetupDeclined
            If the user does not want to register an application now.
        SelectionRequiredError
            If the user submits an empty client id or secret.
        """
        credentials = self.store.find_credentials(self.service)
        if credentials:
            first = credentials[0]
            return OAuthApplication(client_id=first.account, client_secret=first.secret)

        return self._register()

    def _register(self) -> OAuthApplication:
        """Walk the user through registering a new OAuth application."""
        if not self.prompter.confirm(
            "In order to use this cli, you first need to create an OAuth app. Open browser now?"
        ):
            logger.warning("Can't continue without an app setup. Exiting...")
            msg = "OAuth application registration declined"
            raise SetupDeclined(msg)

        self.prompter.warn(
            f"Make sure you set the callback to {self.callback_url} "
            "so this CLI can handle the callback!"
        )
        self._open_browser(self.registration_url)

        client_id = self.prompter.text("What's your Client ID?")
        if not client_id:
            msg = "A client ID is required to register the OAuth app"
            raise SelectionRequiredError(msg, field="client_id")
        client_secret = self.prompter.text("What's your Client Secret?", hide_input=True)
        if not client_secret:
            msg = "A client secret is required to register the OAuth app"
            raise SelectionRequiredError(msg, field="client_secret")

        self.store.set_password(self.service, client_id, client_secret)
        logger.info("Saved OAuth app %s", client_id)
        return OAuthApplication(client_id=client_id, client_secret=client_secret)
