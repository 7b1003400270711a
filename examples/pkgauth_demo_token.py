"""Demo: obtain a GitHub Packages token with pkgauth, without configuring a package manager.

Demonstrates the library-level building blocks the ``pkgauth setup``
command is made of:

- ``OAuthAppRegistry`` to find (or register) the OAuth application
- ``AuthorizationFlow`` to run the browser flow through the local listener
- ``TokenCache`` to reuse a token on the next run
- ``list_organizations`` with the obtained token

Setup
-----
1. Register a GitHub OAuth app at https://github.com/settings/applications/new
   with the callback URL ``http://localhost:51321/auth-code/callback``.
2. Run::

       python examples/pkgauth_demo_token.py

   The first run asks for the client id and secret and stores them in the
   OS keyring. Pass ``--memory`` to keep everything in memory instead.
"""

from __future__ import annotations

import sys

from pkgauth import PkgAuthException, get_settings
from pkgauth.auth import AuthorizationFlow, OAuthAppRegistry, TokenCache, get_credential_store
from pkgauth.github import list_organizations
from pkgauth.log import configure
from pkgauth.prompts import ClickPrompter


def main() -> int:
    settings = get_settings()
    configure("INFO", settings.log.format)

    store = get_credential_store("memory" if "--memory" in sys.argv else settings.store.backend)
    cache = TokenCache(store, service=settings.store.package_token_service)

    try:
        token = cache.lookup(force_refresh="--refresh" in sys.argv)
        if token is None:
            app = OAuthAppRegistry(
                store,
                ClickPrompter(),
                callback_url=settings.oauth.callback_url,
                service=settings.store.oauth_app_service,
                registration_url=settings.oauth.registration_url,
            ).resolve()
            token = AuthorizationFlow(settings.oauth, cache).run(app)

        orgs = list_organizations(token, api_url=settings.oauth.api_url)
    except PkgAuthException as exc:
        print(f"[{exc.kind}] {exc}", file=sys.stderr)
        return 1

    print(f"Token: {token[:8]}... ({len(token)} chars)")
    print("Organizations:", ", ".join(orgs) or "(none)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
