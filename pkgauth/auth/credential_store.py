"""Pluggable credential storage backends.

Provides the CredentialStore ABC and concrete implementations for
in-memory and OS keyring-backed secret persistence. Credentials are
addressed by ``(service, account)`` and hold a single secret string.
"""

from __future__ import annotations

import json
import logging
import threading

from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

import keyring

from keyring.errors import KeyringError

from ..exceptions import CredentialStoreError


if TYPE_CHECKING:
    from collections.abc import Iterator


logger = logging.getLogger("pkgauth.auth")

#: Reserved keyring account holding the JSON list of accounts per service.
INDEX_ACCOUNT = "__pkgauth_index__"


@dataclass(frozen=True)
class Credential:
    """A secret stored under a service namespace.

    Attributes
    ----------
    account : str
        The account the secret belongs to (e.g. an OAuth client id).
    secret : str
        The secret value (client secret or access token).
    """

    account: str
    secret: str


class CredentialStore(ABC):
    """Abstract base class for secure key/value credential storage.

    Implementations must return credentials in a stable order
    (insertion order) so that "the first credential" is deterministic.
    """

    @abstractmethod
    def find_credentials(self, service: str) -> list[Credential]:
        """Return every credential stored under ``service``.

        Parameters
        ----------
        service : str
            The service namespace.

        Returns
        -------
        list[Credential]
            Stored credentials, oldest first. Empty if none exist.
        """

    @abstractmethod
    def set_password(self, service: str, account: str, secret: str) -> None:
        """Create or overwrite the secret for ``(service, account)``.

        Parameters
        ----------
        service : str
            The service namespace.
        account : str
            The account key within the service.
        secret : str
            The secret to persist.
        """


class MemoryCredentialStore(CredentialStore):
    """In-memory credential store for tests and throwaway sessions.

    Thread-safe via threading.Lock. Dicts keep insertion order, and an
    overwrite keeps the account's original position.
    """

    def __init__(self) -> None:
        """Initialize the memory credential store."""
        self._services: dict[str, dict[str, str]] = {}
        self._lock = threading.Lock()

    def find_credentials(self, service: str) -> list[Credential]:
        """Return credentials held in memory."""
        with self._lock:
            accounts = self._services.get(service, {})
            return [Credential(account=a, secret=s) for a, s in accounts.items()]

    def set_password(self, service: str, account: str, secret: str) -> None:
        """Upsert a credential in memory."""
        with self._lock:
            self._services.setdefault(service, {})[account] = secret


class KeyringCredentialStore(CredentialStore):
    """OS keyring-backed credential store.

    The keyring API cannot enumerate entries, so the list of accounts for
    each service is kept as JSON under the reserved ``INDEX_ACCOUNT``
    entry of that same service. Backend failures (no usable keyring,
    locked collection, denied write) surface as ``CredentialStoreError``.
    """

    def __init__(self) -> None:
        """Initialize the keyring credential store."""
        self._keyring = keyring
        self._lock = threading.Lock()

    @contextmanager
    def _backend(self, action: str, service: str) -> Iterator[None]:
        """Translate keyring errors raised inside the block."""
        try:
            yield
        except KeyringError as exc:
            msg = f"Could not {action} credentials for {service}: {str(exc) or type(exc).__name__}"
            raise CredentialStoreError(msg, service=service, backend="keyring") from exc

    def _read_index(self, service: str) -> list[str]:
        """Load the account index for a service."""
        raw = self._keyring.get_password(service, INDEX_ACCOUNT)
        if not raw:
            return []
        try:
            accounts = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Credential index for %s is corrupt; ignoring it", service)
            return []
        return [a for a in accounts if isinstance(a, str)]

    def _write_index(self, service: str, accounts: list[str]) -> None:
        """Persist the account index for a service."""
        self._keyring.set_password(service, INDEX_ACCOUNT, json.dumps(accounts))

    def find_credentials(self, service: str) -> list[Credential]:
        """Return credentials listed in the service index that still exist."""
        with self._lock, self._backend("read", service):
            found: list[Credential] = []
            for account in self._read_index(service):
                secret = self._keyring.get_password(service, account)
                if secret is not None:
                    found.append(Credential(account=account, secret=secret))
            return found

    def set_password(self, service: str, account: str, secret: str) -> None:
        """Upsert a credential in the OS keyring and record it in the index."""
        with self._lock, self._backend("store", service):
            self._keyring.set_password(service, account, secret)
            accounts = self._read_index(service)
            if account not in accounts:
                accounts.append(account)
                self._write_index(service, accounts)


def get_credential_store(backend: str = "keyring") -> CredentialStore:
    """Factory function for credential stores.

    Parameters
    ----------
    backend : str
        Storage backend: "keyring" or "memory".

    Returns
    -------
    CredentialStore
        A configured credential store instance.
    """
    if backend == "keyring":
        return KeyringCredentialStore()
    if backend == "memory":
        return MemoryCredentialStore()
    msg = f"Unknown credential store backend: {backend}"
    raise ValueError(msg)
