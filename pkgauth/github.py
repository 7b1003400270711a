"""Read-only GitHub REST API calls made with an obtained token."""

from __future__ import annotations

import logging

import httpx

from .exceptions import AuthenticationError


logger = logging.getLogger("pkgauth.github")

DEFAULT_API_URL = "https://api.github.com"


def list_organizations(
    token: str,
    api_url: str = DEFAULT_API_URL,
    http_client: httpx.Client | None = None,
    timeout: float = 10.0,
) -> list[str]:
    """List the logins of the organizations the token's user belongs to.

    Makes exactly one ``GET /user/orgs`` request.

    Parameters
    ----------
    token : str
        A GitHub access token with ``read:org``.
    api_url : str
        REST API base URL.
    http_client : httpx.Client, optional
        Client to use; a short-lived one is created when omitted.
    timeout : float
        Request timeout in seconds.

    Returns
    -------
    list[str]
        Organization logins, in the order GitHub returns them.

    Raises
    ------
    AuthenticationError
        If the request fails or the token is rejected.
    """
    client = http_client or httpx.Client(timeout=timeout)
    try:
        resp = client.get(
            f"{api_url.rstrip('/')}/user/orgs",
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
            },
        )
        resp.raise_for_status()
        orgs = resp.json()
    except httpx.HTTPStatusError as exc:
        msg = f"Listing organizations failed: {exc.response.status_code}"
        raise AuthenticationError(
            msg, provider="github", status_code=exc.response.status_code
        ) from exc
    except httpx.HTTPError as exc:
        msg = f"Listing organizations request failed: {exc}"
        raise AuthenticationError(msg, provider="github") from exc
    except ValueError as exc:
        msg = "Listing organizations returned a non-JSON body"
        raise AuthenticationError(msg, provider="github", status_code=resp.status_code) from exc
    finally:
        if http_client is None:
            client.close()

    if not isinstance(orgs, list):
        msg = "Listing organizations returned an unexpected body"
        raise AuthenticationError(msg, provider="github", status_code=resp.status_code)

    logins = [org["login"] for org in orgs if isinstance(org, dict) and org.get("login")]
    logger.debug("Token can see %d organization(s)", len(logins))
    return logins
