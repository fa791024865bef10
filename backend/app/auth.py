"""
Spotify OAuth 2.0 authorization-code flow.

Builds the consent URL, works out which redirect URI the current
deployment answers on, and exchanges the returned code for a token.
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode, urlparse

import requests
from loguru import logger

from .spotify import SpotifyAuthError, build_session

ACCOUNTS_BASE = "https://accounts.spotify.com"
CALLBACK_PATH = "/api/auth/callback"

SPOTIFY_SCOPES = [
    "playlist-read-private",
    "playlist-read-collaborative",
    "playlist-modify-public",
    "playlist-modify-private",
    "user-read-private",
    "user-read-email",
    "user-top-read",
]

LOCAL_HOSTS = ("localhost", "127.0.0.1")
TUNNEL_HOSTS = ("ngrok.io", "ngrok-free.app")


def _hostname(value: str) -> str:
    if "://" in value:
        return urlparse(value).hostname or value
    return value


def resolve_base_url(
    host: str,
    referer: str = "",
    origin: str = "",
    fallback: str = "",
    public_hosts: Optional[List[str]] = None,
) -> str:
    """Return the externally visible base URL (scheme + host) of this app.

    Tunnels are detected from any of the three headers since the proxy may
    rewrite Host. `fallback` may be a full redirect URI; the callback path is
    stripped from it.
    """
    host = (host or "").strip()
    if any(h in host for h in LOCAL_HOSTS):
        return f"http://{host}"

    for candidate in (host, referer or "", origin or ""):
        if any(t in candidate for t in TUNNEL_HOSTS):
            return f"https://{_hostname(candidate)}"

    if host and any(p in host for p in (public_hosts or [])):
        return f"https://{host}"

    return fallback.replace(CALLBACK_PATH, "").rstrip("/")


def redirect_uri_for(base_url: str) -> str:
    return f"{base_url.rstrip('/')}{CALLBACK_PATH}"


def build_authorize_url(
    client_id: str,
    redirect_uri: str,
    state: Optional[str] = None,
    accounts_base: str = ACCOUNTS_BASE,
) -> str:
    params = {
        "client_id": client_id,
        "response_type": "code",
        "redirect_uri": redirect_uri,
        "scope": " ".join(SPOTIFY_SCOPES),
        "show_dialog": "true",
    }
    if state:
        params["state"] = state
    return f"{accounts_base.rstrip('/')}/authorize?{urlencode(params)}"


def exchange_code(
    code: str,
    redirect_uri: str,
    client_id: str,
    client_secret: str,
    session: Optional[requests.Session] = None,
    accounts_base: str = ACCOUNTS_BASE,
    timeout: float = 30.0,
) -> Dict[str, Any]:
    """Trade an authorization code for token data (access_token, expires_in, ...)."""
    session = session if session is not None else build_session(0)
    url = f"{accounts_base.rstrip('/')}/api/token"
    logger.info("Exchanging authorization code for tokens")
    try:
        resp = session.request(
            "POST",
            url,
            data={"grant_type": "authorization_code", "code": code, "redirect_uri": redirect_uri},
            auth=(client_id, client_secret),
            timeout=timeout,
        )
    except requests.RequestException as exc:
        raise SpotifyAuthError(503, f"Could not reach Spotify accounts service: {exc}") from exc

    if not resp.ok:
        logger.error("Token exchange failed: {} {}", resp.status_code, resp.text)
        raise SpotifyAuthError(resp.status_code, "Failed to exchange code for token")

    try:
        token_data = resp.json()
    except ValueError as exc:
        logger.error("Token endpoint returned a non-JSON body: {}", resp.text[:200])
        raise SpotifyAuthError(502, "Token response was not valid JSON") from exc
    if not isinstance(token_data, dict) or not token_data.get("access_token"):
        raise SpotifyAuthError(502, "Token response did not include an access token")
    logger.info(
        "Token exchange successful, type {}, expires in {}s",
        token_data.get("token_type"),
        token_data.get("expires_in"),
    )
    return token_data
