"""Command-line interface for pkgauth."""

from __future__ import annotations

import argparse
import os

from pathlib import Path
from typing import TYPE_CHECKING


if TYPE_CHECKING:
    from .config import PkgAuthSettings


def main(argv: list[str] | None = None) -> int:
    """Run the main CLI entry point.

    Parameters
    ----------
    argv : list[str], optional
        Arguments to parse (defaults to ``sys.argv[1:]``).

    Returns
    -------
    int
        Exit code.
    """
    parser = argparse.ArgumentParser(
        prog="pkgauth",
        description="Authenticate package managers against GitHub Packages",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # setup command
    setup_parser = subparsers.add_parser(
        "setup",
        help="Obtain a GitHub token and configure a package manager with it",
    )
    setup_parser.add_argument(
        "--provider",
        "-p",
        type=str,
        default=None,
        help="Package manager to configure (npm, docker, nuget); prompted if omitted",
    )
    setup_parser.add_argument(
        "--user",
        "-u",
        type=str,
        default=None,
        help="Registry username, for providers that need one",
    )
    setup_parser.add_argument(
        "--org",
        "-o",
        type=str,
        default=None,
        help="GitHub organization that owns the packages",
    )
    setup_parser.add_argument(
        "--local",
        "-l",
        action="store_true",
        help="Write user-level instead of global configuration where the package manager supports it",
    )
    setup_parser.add_argument(
        "--force-refresh",
        "-f",
        action="store_true",
        help="Ignore any cached token and authenticate again",
    )
    setup_parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose logging",
    )

    # config command
    config_parser = subparsers.add_parser(
        "config",
        help="Show configuration",
    )
    config_group = config_parser.add_mutually_exclusive_group()
    config_group.add_argument(
        "--show",
        action="store_true",
        help="Show current configuration",
    )
    config_group.add_argument(
        "--sources",
        action="store_true",
        help="Show configuration file sources",
    )

    args = parser.parse_args(argv)

    if args.command == "setup":
        return handle_setup(args)
    if args.command == "config":
        return handle_config(args)
    parser.print_help()
    return 0


def handle_setup(args: argparse.Namespace) -> int:
    """Handle the setup command.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed command line arguments.

    Returns
    -------
    int
        Exit code.
    """
    from . import log
    from .auth.credential_store import get_credential_store
    from .config import get_settings
    from .orchestrator import Orchestrator, SetupRequest
    from .prompts import ClickPrompter

    settings = get_settings()
    log.configure(settings.log.level, settings.log.format)
    if args.debug:
        log.enable_debug()

    orchestrator = Orchestrator(
        settings,
        get_credential_store(settings.store.backend),
        ClickPrompter(),
    )
    request = SetupRequest(
        provider=args.provider,
        user=args.user,
        org=args.org,
        local=args.local,
        force_refresh=args.force_refresh,
    )
    return orchestrator.execute(request)


def handle_config(args: argparse.Namespace) -> int:
    """Handle the config command.

    Parameters
    ----------
    args : argparse.Namespace
        Parsed command line arguments.

    Returns
    -------
    int
        Exit code.
    """
    if args.sources:
        return show_config_sources()

    from .config import PkgAuthSettings

    print(format_config_show(PkgAuthSettings()))
    return 0


def format_config_show(settings: PkgAuthSettings) -> str:
    """Format the effective configuration for display."""
    return settings.show()


def show_config_sources() -> int:
    """Show configuration file sources and their status.

    Returns
    -------
    int
        Exit code.
    """
    from .config import _user_config_path

    env_file = os.environ.get("PKGAUTH_CONFIG_FILE")
    sources = [
        ("Built-in defaults", None, True),
        ("pyproject.toml [tool.pkgauth]", "pyproject.toml", None),
        ("./pkgauth.toml", "pkgauth.toml", None),
        ("User config", str(_user_config_path()), None),
        ("PKGAUTH_CONFIG_FILE", env_file, None if env_file else False),
        ("Environment variables", "PKGAUTH_* vars", None),
    ]

    print("Configuration Sources (in order of precedence):\n")
    print(f"{'Source':<40} {'Status':<15} {'Path'}")
    print("-" * 80)

    for name, path_str, forced_status in sources:
        if forced_status is True:
            status = "✓ Active"
            path_display = ""
        elif forced_status is False:
            status = "✗ Not set"
            path_display = ""
        elif name == "Environment variables":
            pkgauth_vars = sorted(
                k for k in os.environ if k.startswith("PKGAUTH_") and k != "PKGAUTH_CONFIG_FILE"
            )
            if pkgauth_vars:
                status = f"✓ {len(pkgauth_vars)} vars"
                path_display = ", ".join(pkgauth_vars[:3])
                if len(pkgauth_vars) > 3:
                    path_display += "..."
            else:
                status = "✗ No vars"
                path_display = ""
        else:
            path = Path(str(path_str)).expanduser()
            status = "✓ Found" if path.exists() else "✗ Not found"
            path_display = str(path)

        print(f"{name:<40} {status:<15} {path_display}")

    return 0
