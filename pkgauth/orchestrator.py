"""Top-level setup sequence and the process error barrier.

Resolves a provider, obtains a token (cache first, OAuth flow otherwise),
collects the provider's required inputs, then runs the provider's setter.
:meth:`Orchestrator.execute` is the only place that turns outcomes into
exit codes.
"""

# pylint: disable=logging-too-many-args

from __future__ import annotations

import logging

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .auth.app_registry import OAuthAppRegistry
from .auth.flow import AuthorizationFlow
from .auth.token_cache import TokenCache
from .exceptions import (
    PkgAuthException,
    ProviderSetterError,
    SelectionRequiredError,
    SetupDeclined,
)
from .github import list_organizations
from .providers import ProviderInputs, build_default_registry


if TYPE_CHECKING:
    from collections.abc import Callable

    import httpx

    from .auth.credential_store import CredentialStore
    from .config import PkgAuthSettings
    from .prompts import Prompter
    from .providers import Provider, ProviderRegistry


logger = logging.getLogger("pkgauth")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

# Reported for failures that are not PkgAuthException subclasses
UNEXPECTED_KIND = "unexpected_failure"


@dataclass(frozen=True)
class SetupRequest:
    """What the user asked for on the command line.

    Attributes
    ----------
    provider : str or None
        Provider name; prompted for when missing.
    user : str or None
        Registry username; prompted for when the provider needs one.
    org : str or None
        Organization; looked up and prompted for when the provider needs one.
    local : bool
        Write user-level rather than global configuration.
    force_refresh : bool
        Ignore any cached token and run the OAuth flow.
    """

    provider: str | None = None
    user: str | None = None
    org: str | None = None
    local: bool = False
    force_refresh: bool = False


class Orchestrator:
    """Wires the token cache, OAuth flow and providers together.

    Parameters
    ----------
    settings : PkgAuthSettings
        Loaded configuration.
    store : CredentialStore
        Credential store shared by the token cache and app registry.
    prompter : Prompter
        Source of interactive answers.
    registry : ProviderRegistry, optional
        Provider registry (defaults to every supported provider).
    http_client : httpx.Client, optional
        Client for the token exchange and organization lookup.
    open_browser : callable, optional
        Browser launcher passed to the app registry and flow.
    """

    def __init__(
        self,
        settings: PkgAuthSettings,
        store: CredentialStore,
        prompter: Prompter,
        registry: ProviderRegistry | None = None,
        http_client: httpx.Client | None = None,
        open_browser: Callable[[str], object] | None = None,
    ) -> None:
        self.settings = settings
        self.prompter = prompter
        self.registry = registry or build_default_registry()
        self.http_client = http_client

        self.token_cache = TokenCache(store, service=settings.store.package_token_service)
        self.app_registry = OAuthAppRegistry(
            store,
            prompter,
            callback_url=settings.oauth.callback_url,
            service=settings.store.oauth_app_service,
            registration_url=settings.oauth.registration_url,
            open_browser=open_browser,
        )
        self.flow = AuthorizationFlow(
            settings.oauth,
            self.token_cache,
            http_client=http_client,
            open_browser=open_browser,
        )

    def execute(self, request: SetupRequest) -> int:
        """Run the setup and map the outcome to a process exit code.

        Returns
        -------
        int
            ``0`` on success or declined setup, ``1`` on any failure,
            ``130`` when interrupted.
        """
        try:
            self.run(request)
        except SetupDeclined:
            return EXIT_OK
        except PkgAuthException as exc:
            logger.error("[%s] %s", exc.kind, exc)
            if exc.__cause__ is not None:
                logger.debug("Caused by: %r", exc.__cause__)
            return EXIT_FAILURE
        except KeyboardInterrupt:
            self.flow.cancel()
            logger.error("Interrupted")
            return EXIT_INTERRUPTED
        except Exception as exc:
            logger.error("[%s] %s: %s", UNEXPECTED_KIND, type(exc).__name__, exc)
            logger.debug("Unexpected failure", exc_info=True)
            return EXIT_FAILURE
        logger.info("Done!")
        return EXIT_OK

    def run(self, request: SetupRequest) -> None:
        """Run the full setup sequence, raising on any failure."""
        provider = self.resolve_provider(request.provider)
        token = self.resolve_token(request.force_refresh)
        inputs = self.resolve_inputs(provider, request, token)

        logger.info("Setting up authentication for %s...", provider.name.value)
        try:
            provider.setter(token, inputs)
        except Exception as exc:
            msg = f"Setting up {provider.name.value} failed: {exc}"
            raise ProviderSetterError(msg, provider_name=provider.name.value) from exc

    def resolve_provider(self, name: str | None) -> Provider:
        """Resolve the named provider, prompting when no name was given."""
        if not name:
            name = self.prompter.select(
                "What package manager would you like to authenticate?",
                self.registry.names(),
            )
            if not name:
                msg = "You must select a provider!"
                raise SelectionRequiredError(msg, field="provider")
        return self.registry.resolve(name)

    def resolve_token(self, force_refresh: bool = False) -> str:
        """Return a cached token, or run the OAuth flow for a new one."""
        logger.info("Getting token...")
        token = self.token_cache.lookup(force_refresh)
        if token is not None:
            return token

        app = self.app_registry.resolve()
        return self.flow.run(app)

    def resolve_inputs(self, provider: Provider, request: SetupRequest, token: str) -> ProviderInputs:
        """Collect the inputs ``provider`` declares as required."""
        user = request.user
        if provider.requires_username and not user:
            user = self.prompter.text("What's your username?")
            if not user:
                msg = "You must provide a username for this provider!"
                raise SelectionRequiredError(msg, field="user")

        org = request.org
        if provider.requires_org and not org:
            orgs = list_organizations(
                token,
                api_url=self.settings.oauth.api_url,
                http_client=self.http_client,
                timeout=self.settings.oauth.http_timeout,
            )
            org = self.prompter.select("What organization are you getting packages from?", orgs)
            if not org:
                msg = "You must select an organization!"
                raise SelectionRequiredError(msg, field="org", available=len(orgs))

        return ProviderInputs(user=user, org=org, local=request.local)
