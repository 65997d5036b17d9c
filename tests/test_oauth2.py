"""Tests for `pyteslaproxy.oauth2`."""

from __future__ import annotations

import asyncio
import contextlib
import json
import time
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from pyteslaproxy.exceptions import TeslaAuthorizationError
from pyteslaproxy.oauth2 import (
    Credentials,
    OAuth2Client,
    OAuth2Token,
    load_token,
    save_token,
)

from .responses import TOKEN_RESPONSE


def make_client(handler, redirect_uri="http://localhost:8080/callback", requests=None):
    def record(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return OAuth2Client(client, Credentials("client", "secret", redirect_uri))


def test_token_expiry() -> None:
    assert OAuth2Token({"access_token": "a"}).is_expired() is None
    assert OAuth2Token({"access_token": "a", "expires_at": time.time() - 10}).is_expired()
    assert not OAuth2Token({"access_token": "a", "expires_in": 3600}).is_expired()
    assert OAuth2Token({"access_token": "a", "expires_in": 30}).is_expired(leeway=60)


def test_token_expires_in_is_converted() -> None:
    token = OAuth2Token({"access_token": "a", "expires_in": "100"})
    assert abs(token.expires_at - (time.time() + 100)) < 5


def test_load_missing_or_corrupt_token(tmp_path) -> None:
    assert load_token(tmp_path / "missing.json") == {}
    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{not json")
    assert load_token(corrupt) == {}
    assert load_token(tmp_path) == {}


def test_save_and_load_token(tmp_path) -> None:
    path = tmp_path / "tesla-tokens.json"
    token = OAuth2Token({"access_token": "a", "refresh_token": "r", "expires_at": 1700000000})

    save_token(path, token)

    assert json.loads(path.read_text()) == {
        "access_token": "a",
        "refresh_token": "r",
        "expires_at": 1700000000,
    }
    loaded = load_token(path)
    assert loaded.access_token == "a"
    assert loaded.refresh_token == "r"
    assert loaded.expires_at == 1700000000


def test_save_token_replaces_directory(tmp_path) -> None:
    path = tmp_path / "tesla-tokens.json"
    path.mkdir()
    (path / "leftover").write_text("x")

    save_token(path, OAuth2Token({"access_token": "a"}))

    assert path.is_file()


def test_authorization_url() -> None:
    oauth2_client = make_client(lambda request: httpx.Response(200))

    url = urlparse(oauth2_client.authorization_url("state123"))
    params = parse_qs(url.query)

    assert f"{url.scheme}://{url.netloc}{url.path}" == "https://auth.tesla.com/oauth2/v3/authorize"
    assert params["client_id"] == ["client"]
    assert params["redirect_uri"] == ["http://localhost:8080/callback"]
    assert params["response_type"] == ["code"]
    assert params["state"] == ["state123"]
    assert "vehicle_cmds" in params["scope"][0].split()


@pytest.mark.asyncio
async def test_fetch_access_token() -> None:
    requests = []
    oauth2_client = make_client(lambda request: httpx.Response(200, json=TOKEN_RESPONSE), requests=requests)

    token = await oauth2_client.fetch_access_token("auth_code")

    assert token.access_token == "valid_access_token"
    assert token.refresh_token == "valid_refresh_token"
    assert token.is_expired() is False
    form = parse_qs(requests[0].content.decode())
    assert form["grant_type"] == ["authorization_code"]
    assert form["code"] == ["auth_code"]
    assert form["client_secret"] == ["secret"]
    assert str(requests[0].url) == "https://auth.tesla.com/oauth2/v3/token"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(400, json={"error": "invalid_grant"}),
        httpx.Response(500, json={"message": "oops"}),
        httpx.Response(200, text="<html></html>"),
    ],
)
async def test_fetch_access_token_errors(response) -> None:
    oauth2_client = make_client(lambda request: response)
    with pytest.raises(TeslaAuthorizationError):
        await oauth2_client.fetch_access_token("auth_code")


@pytest.mark.asyncio
async def test_fetch_access_token_needs_a_code() -> None:
    oauth2_client = make_client(lambda request: httpx.Response(200, json=TOKEN_RESPONSE))
    with pytest.raises(TeslaAuthorizationError):
        await oauth2_client.fetch_access_token("")


@pytest.mark.asyncio
async def test_callback_handler_success() -> None:
    code_future = asyncio.get_running_loop().create_future()
    app = web.Application()
    app.router.add_get("/callback", OAuth2Client.callback_handler(code_future))

    async with TestClient(TestServer(app)) as client:
        resp = await client.get("/callback", params={"code": "abc", "state": "1"})
        assert resp.status == 200
        assert "Authorization Successful" in await resp.text()

    assert code_future.result() == "abc"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("params", "message"),
    [
        ({"error": "access_denied"}, "Authorization failed: access_denied"),
        ({}, "No authorization code received"),
    ],
)
async def test_callback_handler_failure(params, message) -> None:
    code_future = asyncio.get_running_loop().create_future()
    app = web.Application()
    app.router.add_get("/callback", OAuth2Client.callback_handler(code_future))

    async with TestClient(TestServer(app)) as client:
        resp = await client.get("/callback", params=params)
        assert "Authorization Failed" in await resp.text()

    with pytest.raises(TeslaAuthorizationError) as exc_info:
        code_future.result()
    assert exc_info.value.message == message


@pytest.mark.asyncio
async def test_wait_for_authorization_code_times_out(unused_tcp_port) -> None:
    oauth2_client = make_client(
        lambda request: httpx.Response(200, json=TOKEN_RESPONSE),
        redirect_uri=f"http://127.0.0.1:{unused_tcp_port}/callback",
    )
    with pytest.raises(TeslaAuthorizationError) as exc_info:
        await oauth2_client.wait_for_authorization_code(timeout=0.1)
    assert "timeout" in exc_info.value.message


@pytest.mark.asyncio
async def test_authorize(unused_tcp_port) -> None:
    redirect_uri = f"http://127.0.0.1:{unused_tcp_port}/callback"
    oauth2_client = make_client(lambda request: httpx.Response(200, json=TOKEN_RESPONSE), redirect_uri=redirect_uri)
    opened = []
    tasks = []

    async def browser_redirect():
        # the callback server may already be shutting down once the code arrived
        with contextlib.suppress(httpx.HTTPError):
            async with httpx.AsyncClient(trust_env=False) as browser:
                await browser.get(redirect_uri, params={"code": "abc", "state": "1"})

    def open_browser(url):
        opened.append(url)
        tasks.append(asyncio.create_task(browser_redirect()))
        return True

    token = await oauth2_client.authorize(open_browser=open_browser, timeout=5)
    await asyncio.gather(*tasks)

    assert token.access_token == "valid_access_token"
    assert opened[0].startswith("https://auth.tesla.com/oauth2/v3/authorize?")


@pytest.mark.asyncio
async def test_authorize_opens_the_given_url(unused_tcp_port) -> None:
    redirect_uri = f"http://127.0.0.1:{unused_tcp_port}/callback"
    oauth2_client = make_client(lambda request: httpx.Response(200, json=TOKEN_RESPONSE), redirect_uri=redirect_uri)
    url = oauth2_client.authorization_url("shown-state")
    opened = []

    def open_browser(url):
        opened.append(url)
        return False

    with pytest.raises(TeslaAuthorizationError):
        await oauth2_client.authorize(open_browser=open_browser, timeout=0.1, url=url)

    assert opened == [url]
