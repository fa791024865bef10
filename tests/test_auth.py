"""
Tests for OAuth URL building, redirect resolution and code exchange
"""
from urllib.parse import parse_qs, urlparse

import pytest

from backend.app.auth import (
    SPOTIFY_SCOPES,
    build_authorize_url,
    exchange_code,
    redirect_uri_for,
    resolve_base_url,
)
from backend.app.spotify import SpotifyAuthError


def test_authorize_url_parameters():
    url = build_authorize_url("cid", "http://localhost:8000/api/auth/callback")
    parsed = urlparse(url)
    params = parse_qs(parsed.query)

    assert parsed.netloc == "accounts.spotify.com"
    assert parsed.path == "/authorize"
    assert params["client_id"] == ["cid"]
    assert params["response_type"] == ["code"]
    assert params["redirect_uri"] == ["http://localhost:8000/api/auth/callback"]
    assert params["scope"] == [" ".join(SPOTIFY_SCOPES)]
    assert params["show_dialog"] == ["true"]
    assert "state" not in params


def test_authorize_url_includes_state_when_given():
    params = parse_qs(urlparse(build_authorize_url("cid", "http://x/cb", state="abc")).query)
    assert params["state"] == ["abc"]


def test_resolve_base_url_localhost():
    assert resolve_base_url("localhost:8000") == "http://localhost:8000"
    assert resolve_base_url("127.0.0.1:3000") == "http://127.0.0.1:3000"


def test_resolve_base_url_tunnel_from_any_header():
    assert resolve_base_url("abc.ngrok-free.app") == "https://abc.ngrok-free.app"
    assert resolve_base_url("internal:8000", referer="https://xyz.ngrok.io/page") == "https://xyz.ngrok.io"
    assert resolve_base_url("internal:8000", origin="https://o.ngrok-free.app") == "https://o.ngrok-free.app"


def test_resolve_base_url_public_host_and_fallback():
    assert resolve_base_url("mix.vercel.app", public_hosts=["vercel.app"]) == "https://mix.vercel.app"
    assert (
        resolve_base_url("elsewhere.example", fallback="https://mix.example.com/api/auth/callback")
        == "https://mix.example.com"
    )


def test_redirect_uri_for():
    assert redirect_uri_for("http://localhost:8000/") == "http://localhost:8000/api/auth/callback"


def test_exchange_code_success(fake_session, response):
    session = fake_session(response(200, {"access_token": "AT", "token_type": "Bearer", "expires_in": 3600}))

    data = exchange_code("the-code", "http://localhost:8000/api/auth/callback", "cid", "secret", session=session)

    assert data["access_token"] == "AT"
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://accounts.spotify.com/api/token"
    assert call["auth"] == ("cid", "secret")
    assert call["data"]["grant_type"] == "authorization_code"
    assert call["data"]["code"] == "the-code"


def test_exchange_code_failure(fake_session, response):
    session = fake_session(response(400, {"error": "invalid_grant"}, text="invalid_grant"))
    with pytest.raises(SpotifyAuthError) as err:
        exchange_code("bad", "http://x/cb", "cid", "secret", session=session)
    assert err.value.status_code == 400


def test_exchange_code_without_token(fake_session, response):
    session = fake_session(response(200, {"token_type": "Bearer"}))
    with pytest.raises(SpotifyAuthError):
        exchange_code("code", "http://x/cb", "cid", "secret", session=session)


def test_exchange_code_with_html_body(fake_session, response):
    session = fake_session(response(200, text="<html>gateway</html>", json_error=True))
    with pytest.raises(SpotifyAuthError) as err:
        exchange_code("code", "http://x/cb", "cid", "secret", session=session)
    assert err.value.status_code == 502


def test_resolve_base_url_drops_userinfo_and_port_from_referer():
    assert resolve_base_url("internal:8000", referer="https://user:pw@abc.ngrok.io:8443/x") == "https://abc.ngrok.io"
