"""Pytest configuration and fixtures."""

from __future__ import annotations

import contextlib
import os
import socket
import threading

from typing import TYPE_CHECKING, Any
from urllib.parse import parse_qs, urlencode, urlparse
from urllib.request import urlopen

import httpx
import pytest

from pkgauth.auth.credential_store import MemoryCredentialStore
from pkgauth.config import OAuthSettings, PkgAuthSettings, clear_settings
from tests.constants import AUTH_CODE, DEFAULT_TIMEOUT, FRESH_TOKEN, HTTP_TIMEOUT, ORGS


if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path


# =============================================================================
# Environment isolation
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep real config files and PKGAUTH_* variables out of every test."""
    for key in list(os.environ):
        if key.startswith("PKGAUTH_"):
            monkeypatch.delenv(key)

    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("APPDATA", str(home))

    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)

    clear_settings()
    yield
    clear_settings()


# =============================================================================
# Fakes
# =============================================================================


class FakePrompter:
    """Scripted answers for the Prompter protocol."""

    def __init__(
        self,
        confirm: bool = True,
        texts: list[str] | None = None,
        selections: list[Any] | None = None,
    ) -> None:
        self.confirm_answer = confirm
        self.texts = list(texts or [])
        self.selections = list(selections or [])
        self.calls: list[tuple[Any, ...]] = []
        self.warnings: list[str] = []

    def confirm(self, message: str, default: bool = True) -> bool:
        self.calls.append(("confirm", message))
        return self.confirm_answer

    def text(self, message: str, hide_input: bool = False) -> str:
        self.calls.append(("text", message, hide_input))
        return self.texts.pop(0) if self.texts else ""

    def select(self, message: str, choices: list[str]) -> str | None:
        self.calls.append(("select", message, list(choices)))
        if not self.selections:
            return None
        pick = self.selections.pop(0)
        if isinstance(pick, int):
            return choices[pick]
        return pick

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def kinds(self) -> list[str]:
        return [call[0] for call in self.calls]


def _get(url: str) -> None:
    with contextlib.suppress(Exception):
        urlopen(url, timeout=HTTP_TIMEOUT).read()  # noqa: S310


class FakeBrowser:
    """Stands in for webbrowser.open and plays GitHub's redirect.

    When pointed at an authorize URL, sends the redirect back to the
    ``redirect_uri`` on a background thread, echoing the state.
    """

    def __init__(
        self,
        code: str | None = AUTH_CODE,
        extra: dict[str, str] | None = None,
        redirect: bool = True,
    ) -> None:
        self.code = code
        self.extra = extra or {}
        self.redirect = redirect
        self.opened: list[str] = []
        self.listening_at_open: list[bool] = []
        self.redirect_ports: list[int] = []
        self._threads: list[threading.Thread] = []

    def __call__(self, url: str) -> bool:
        self.opened.append(url)
        query = parse_qs(urlparse(url).query)
        if "redirect_uri" not in query:
            return True

        redirect_uri = query["redirect_uri"][0].replace("//localhost:", "//127.0.0.1:")
        port = urlparse(redirect_uri).port or 0
        self.redirect_ports.append(port)
        self.listening_at_open.append(port_accepts_connections(port))

        if self.redirect:
            params = {"state": query["state"][0]}
            if self.code:
                params["code"] = self.code
            params.update(self.extra)
            t = threading.Thread(target=_get, args=(f"{redirect_uri}?{urlencode(params)}",), daemon=True)
            t.start()
            self._threads.append(t)
        return True

    def join(self) -> None:
        for t in self._threads:
            t.join(timeout=DEFAULT_TIMEOUT)


class FakeGitHub:
    """httpx MockTransport handler for the token endpoint and REST API."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.token_status = 200
        self.token_body: Any = {
            "access_token": FRESH_TOKEN,
            "token_type": "bearer",
            "scope": "repo,write:packages,read:org",
        }
        self.token_error: Exception | None = None
        self.orgs = list(ORGS)
        self.orgs_html: str | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/login/oauth/access_token":
            if self.token_error is not None:
                raise self.token_error
            if isinstance(self.token_body, (dict, list)):
                return httpx.Response(self.token_status, json=self.token_body)
            return httpx.Response(self.token_status, text=str(self.token_body))
        if request.url.path.endswith("/user/orgs"):
            if self.orgs_html is not None:
                return httpx.Response(200, text=self.orgs_html, headers={"Content-Type": "text/html"})
            return httpx.Response(200, json=[{"login": org, "id": i} for i, org in enumerate(self.orgs)])
        return httpx.Response(404, json={"message": "Not Found"})

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def token_form(self) -> dict[str, str]:
        """Form fields of the last token exchange request."""
        token_requests = [r for r in self.requests if r.url.path == "/login/oauth/access_token"]
        body = token_requests[-1].content.decode()
        return {k: v[0] for k, v in parse_qs(body).items()}


def port_accepts_connections(port: int) -> bool:
    """Return True if something is listening on 127.0.0.1:``port``."""
    try:
        with socket.create_connection(("127.0.0.1", port), timeout=1):
            return True
    except OSError:
        return False


def port_is_free(port: int) -> bool:
    """Return True if 127.0.0.1:``port`` can be bound right now."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    try:
        sock.bind(("127.0.0.1", port))
        return True
    except OSError:
        return False
    finally:
        sock.close()


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def memory_store() -> MemoryCredentialStore:
    """Empty in-memory credential store."""
    return MemoryCredentialStore()


@pytest.fixture
def oauth_settings() -> OAuthSettings:
    """OAuth settings bound to an ephemeral port with short timeouts."""
    return OAuthSettings(callback_port=0, auth_timeout=DEFAULT_TIMEOUT, http_timeout=DEFAULT_TIMEOUT)


@pytest.fixture
def settings() -> PkgAuthSettings:
    """Full settings using the memory store and an ephemeral callback port."""
    return PkgAuthSettings(
        oauth={"callback_port": 0, "auth_timeout": DEFAULT_TIMEOUT, "http_timeout": DEFAULT_TIMEOUT},
        store={"backend": "memory"},
    )


@pytest.fixture
def prompter() -> FakePrompter:
    """Prompter that answers yes and nothing else."""
    return FakePrompter()


@pytest.fixture
def browser() -> Generator[FakeBrowser, None, None]:
    """Browser that completes the redirect with a code."""
    fake = FakeBrowser()
    yield fake
    fake.join()


@pytest.fixture
def github() -> FakeGitHub:
    """Fake GitHub token endpoint and REST API."""
    return FakeGitHub()


@pytest.fixture
def http_client(github: FakeGitHub) -> Generator[httpx.Client, None, None]:
    """httpx client routed to the fake GitHub."""
    client = github.client()
    yield client
    client.close()
