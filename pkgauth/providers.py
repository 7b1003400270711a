"""Package-manager providers.

Each provider knows which inputs it needs and how to hand a GitHub token
to its package manager. The set of providers is closed: it is the
:class:`ProviderName` enum, resolved through a :class:`ProviderRegistry`
built once at startup.
"""

from __future__ import annotations

import logging
import shutil
import subprocess

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from .exceptions import UnknownProviderError
from .log import redact_command


if TYPE_CHECKING:
    from collections.abc import Callable, Iterator, Mapping


logger = logging.getLogger("pkgauth.providers")

NPM_REGISTRY = "npm.pkg.github.com"
DOCKER_REGISTRY = "docker.pkg.github.com"
NUGET_SOURCE = "https://nuget.pkg.github.com/{org}/index.json"

DOCKER_LOGIN_TIMEOUT = 15.0
DEFAULT_COMMAND_TIMEOUT = 60.0


class ProviderName(str, Enum):
    """Supported package managers."""

    NPM = "npm"
    DOCKER = "docker"
    NUGET = "nuget"


@dataclass(frozen=True)
class ProviderInputs:
    """Inputs collected for a provider's setter.

    Attributes
    ----------
    user : str or None
        Registry username, for providers that need one.
    org : str or None
        GitHub organization that owns the packages.
    local : bool
        Write user-level rather than global configuration.
    """

    user: str | None = None
    org: str | None = None
    local: bool = False


@dataclass(frozen=True)
class Provider:
    """A package-manager target for the obtained token."""

    name: ProviderName
    setter: Callable[[str, ProviderInputs], None]
    description: str = ""
    requires_username: bool = False
    requires_org: bool = False


def _run(argv: list[str], secrets_: list[str], timeout: float, stdin: str | None = None) -> None:
    """Run a package-manager command, streaming its output to the terminal.

    Raises
    ------
    FileNotFoundError
        If the executable is not on PATH.
    subprocess.CalledProcessError
        If the command exits non-zero.
    subprocess.TimeoutExpired
        If the command runs longer than ``timeout``.
    """
    if shutil.which(argv[0]) is None:
        msg = f"'{argv[0]}' was not found on PATH"
        raise FileNotFoundError(msg)

    logger.debug("Running: %s", " ".join(redact_command(argv, secrets_)))
    subprocess.run(  # noqa: S603
        argv,
        input=stdin,
        text=True,
        check=True,
        timeout=timeout,
    )


def set_npm(token: str, inputs: ProviderInputs) -> None:
    """Write the token into npm's config for the GitHub registry.

    Global config by default; ``local`` leaves npm's default target,
    the user's ``~/.npmrc``.
    """
    scope = [] if inputs.local else ["--global"]
    _run(
        ["npm", "config", "set", f"//{NPM_REGISTRY}/:_authToken={token}", *scope],
        [token],
        DEFAULT_COMMAND_TIMEOUT,
    )
    if inputs.org:
        _run(
            ["npm", "config", "set", f"@{inputs.org.lower()}:registry=https://{NPM_REGISTRY}", *scope],
            [token],
            DEFAULT_COMMAND_TIMEOUT,
        )
    logger.info("Registry config set.")


def set_docker(token: str, inputs: ProviderInputs) -> None:
    """Log docker into the GitHub package registry."""
    if not inputs.user:
        msg = "docker login requires a username"
        raise ValueError(msg)
    _run(
        ["docker", "login", "--username", inputs.user, "--password-stdin", DOCKER_REGISTRY],
        [token],
        DOCKER_LOGIN_TIMEOUT,
        stdin=token,
    )


def set_nuget(token: str, inputs: ProviderInputs) -> None:
    """Register the organization's GitHub NuGet feed as a package source."""
    if not inputs.user or not inputs.org:
        msg = "NuGet source registration requires a username and an organization"
        raise ValueError(msg)
    source = NUGET_SOURCE.format(org=inputs.org)
    _run(
        [
            "dotnet",
            "nuget",
            "add",
            "source",
            source,
            "--name",
            f"github-{inputs.org}",
            "--username",
            inputs.user,
            "--password",
            token,
            "--store-password-in-clear-text",
        ],
        [token],
        DEFAULT_COMMAND_TIMEOUT,
    )
    logger.info("NuGet source %s added.", source)


class ProviderRegistry:
    """Immutable name → provider mapping.

    Parameters
    ----------
    providers : Mapping[ProviderName, Provider]
        The registered providers, in display order.
    """

    def __init__(self, providers: Mapping[ProviderName, Provider]) -> None:
        self._providers = dict(providers)

    def __iter__(self) -> Iterator[Provider]:
        return iter(self._providers.values())

    def names(self) -> list[str]:
        """Registered provider names, in display order."""
        return [provider.name.value for provider in self]

    def resolve(self, name: str | ProviderName) -> Provider:
        """Look up a provider by name.

        Raises
        ------
        UnknownProviderError
            If ``name`` is not registered.
        """
        try:
            key = ProviderName(name)
            return self._providers[key]
        except (ValueError, KeyError):
            msg = f"Unknown provider '{name}'. Choose one of: {', '.join(self.names())}"
            raise UnknownProviderError(msg, provider_name=str(name), known=self.names()) from None


def build_default_registry() -> ProviderRegistry:
    """Build the registry of every supported package manager."""
    return ProviderRegistry(
        {
            ProviderName.NPM: Provider(
                name=ProviderName.NPM,
                setter=set_npm,
                description="npm registry auth token",
            ),
            ProviderName.DOCKER: Provider(
                name=ProviderName.DOCKER,
                setter=set_docker,
                description="docker login for docker.pkg.github.com",
                requires_username=True,
            ),
            ProviderName.NUGET: Provider(
                name=ProviderName.NUGET,
                setter=set_nuget,
                description="NuGet package source for an organization",
                requires_username=True,
                requires_org=True,
            ),
        }
    )
