"""Package-token cache on top of a credential store."""

from __future__ import annotations

import logging

from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from .credential_store import CredentialStore


logger = logging.getLogger("pkgauth.auth")

DEFAULT_PACKAGE_TOKEN_SERVICE = "pkgs://github.com"


class TokenCache:
    """Answers whether a usable package-registry token is already stored.

    Tokens are keyed by the client id of the OAuth application that
    obtained them. Only the first stored token is ever consulted.

    Parameters
    ----------
    store : CredentialStore
        Backing credential store.
    service : str
        Service namespace for package tokens.
    """

    def __init__(
        self,
        store: CredentialStore,
        service: str = DEFAULT_PACKAGE_TOKEN_SERVICE,
    ) -> None:
        self.store_backend = store
        self.service = service

    def lookup(self, force_refresh: bool = False) -> str | None:
        """Return the first cached token, or None.

        Parameters
        ----------
        force_refresh : bool
            Skip the store entirely and report a miss.

        Returns
        -------
        str or None
            The cached access token, if any.
        """
        if force_refresh:
            logger.debug("Token cache bypassed (force refresh)")
            return None

        credentials = self.store_backend.find_credentials(self.service)
        if not credentials:
            return None

        logger.info("Found package token. Using...")
        return credentials[0].secret

    def store(self, account_id: str, token: str) -> None:
        """Upsert ``token`` under ``account_id``."""
        self.store_backend.set_password(self.service, account_id, token)
        logger.debug("Cached package token for client %s", account_id)
