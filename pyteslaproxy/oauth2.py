"""Authentication token management for the Tesla Fleet API."""

#  SPDX-License-Identifier: Apache-2.0
import asyncio
import json
import logging
import shutil
import time
import webbrowser
from pathlib import Path
from typing import NamedTuple
from urllib.parse import urlencode, urlparse

import httpx
from aiohttp import web

from .const import (
    AUTHORIZATION_TIMEOUT,
    AUTHORIZATION_URL,
    REDIRECT_URI,
    SCOPE,
    TIMEOUT,
    TOKEN_URL,
    USER_AGENT,
)
from .exceptions import TeslaAuthorizationError

_LOGGER = logging.getLogger(__name__)

_PAGE = "<html><body><h1>{title}</h1><p>{text}</p></body></html>"


class Credentials(NamedTuple):
    """Store the OAuth application credentials."""

    client_id: str
    client_secret: str
    redirect_uri: str = REDIRECT_URI


class OAuth2Token(dict):
    """A simple wrapper around a dict to handle OAuth2 tokens.

    Provides a helper method to check if the token is expired. Tokens are
    used as loaded, nothing here refreshes them.
    """

    def __init__(self, params: dict | None = None):
        """Initialise the oauth2 token."""
        params = dict(params or {})
        super().__init__(params)
        if params.get("expires_at"):
            self["expires_at"] = int(params["expires_at"])
        elif params.get("expires_in"):
            self.expires_at = params["expires_in"]

    def is_expired(self, leeway=60):
        """Return true if the access token has expired, None if the expiry is unknown."""
        expires_at = self.get("expires_at")
        if not expires_at:
            return None
        # small timedelta to consider token as expired before it actually expires
        expiration_threshold = expires_at - leeway
        return expiration_threshold < time.time()

    @property
    def expires_at(self):
        """Return the expiration time stamp of the access token."""
        return self.get("expires_at")

    @property
    def access_token(self):
        """Return the access token."""
        return self.get("access_token")

    @property
    def refresh_token(self):
        """Return the refresh token."""
        return self.get("refresh_token")

    @expires_at.setter
    def expires_at(self, expires_in):
        self["expires_at"] = int(time.time()) + int(expires_in)


def load_token(path) -> OAuth2Token:
    """Load a token from a JSON file, returning an empty token if there is none."""
    try:
        with Path(path).open(encoding="utf-8") as json_file:
            data = json.load(json_file)
    except (FileNotFoundError, IsADirectoryError):
        return OAuth2Token()
    except json.decoder.JSONDecodeError:
        _LOGGER.warning("Ignoring unreadable token file %s", path)
        return OAuth2Token()
    if not isinstance(data, dict):
        return OAuth2Token()
    return OAuth2Token(data)


def save_token(path, token: OAuth2Token) -> None:
    """Write the token to a JSON file."""
    path = Path(path)
    if path.is_dir():
        # left behind by container volume mounts
        shutil.rmtree(path)
    data = {
        "access_token": token.access_token,
        "refresh_token": token.refresh_token,
        "expires_at": token.expires_at,
    }
    with path.open("w", encoding="utf-8") as json_file:
        json.dump(data, json_file, ensure_ascii=False, indent=2)
    _LOGGER.debug("Saved token to %s", path)


class OAuth2Client:
    """Utility class to run the OAuth2 authorization-code flow.

    :param client: httpx.AsyncClient used for the token exchange
    :param credentials: client id, client secret and redirect uri
    """

    def __init__(self, client: httpx.AsyncClient, credentials: Credentials):
        """Initialise the oauth2 client."""
        self.client = client
        self.credentials = credentials
        self.headers = {"User-Agent": USER_AGENT}

    def authorization_url(self, state: str | None = None) -> str:
        """Return the URL the user has to open to authorize this client."""
        params = {
            "client_id": self.credentials.client_id,
            "redirect_uri": self.credentials.redirect_uri,
            "response_type": "code",
            "scope": SCOPE,
            "state": state or str(int(time.time())),
        }
        return f"{AUTHORIZATION_URL}?{urlencode(params)}"

    async def authorize(
        self,
        open_browser=webbrowser.open,
        timeout: float = AUTHORIZATION_TIMEOUT,
        url: str | None = None,
    ) -> OAuth2Token:
        """Run the whole flow: start the callback server, open the browser, exchange the code.

        :param url: authorization URL already shown to the user, built here if omitted
        :return: a fresh token
        """
        url = url or self.authorization_url()
        runner, code_future = await self._start_callback_server()
        try:
            _LOGGER.info("Authorize at %s", url)
            if not open_browser(url):
                _LOGGER.warning("Could not open a browser, open this URL manually: %s", url)
            code = await self._wait_for_code(code_future, timeout)
        finally:
            await runner.cleanup()
        return await self.fetch_access_token(code)

    async def wait_for_authorization_code(self, timeout: float = AUTHORIZATION_TIMEOUT) -> str:
        """Serve the redirect URI until the browser delivers an authorization code.

        :raises TeslaAuthorizationError: if authorization fails or times out
        """
        runner, code_future = await self._start_callback_server()
        try:
            return await self._wait_for_code(code_future, timeout)
        finally:
            await runner.cleanup()

    async def _wait_for_code(self, code_future: asyncio.Future, timeout: float) -> str:
        try:
            code = await asyncio.wait_for(code_future, timeout)
        except asyncio.TimeoutError as exc:
            msg = "authorization timeout - please try again"
            raise TeslaAuthorizationError(msg) from exc
        _LOGGER.debug("Got authorization code")
        return code

    async def _start_callback_server(self):
        """Listen on the redirect URI and resolve a future with the received code."""
        redirect = urlparse(self.credentials.redirect_uri)
        code_future = asyncio.get_running_loop().create_future()

        app = web.Application()
        app.router.add_get(redirect.path or "/", self.callback_handler(code_future))
        runner = web.AppRunner(app)
        await runner.setup()
        site = web.TCPSite(runner, redirect.hostname, redirect.port or 80)
        await site.start()
        _LOGGER.debug("Waiting for authorization callback on %s", self.credentials.redirect_uri)
        return runner, code_future

    @staticmethod
    def callback_handler(code_future: asyncio.Future):
        """Build the aiohttp handler for the OAuth redirect."""

        async def handle(request: web.Request) -> web.Response:
            code = request.query.get("code")
            error = request.query.get("error")
            if error:
                msg = f"Authorization failed: {error}"
            elif not code:
                msg = "No authorization code received"
            else:
                if not code_future.done():
                    code_future.set_result(code)
                page = _PAGE.format(
                    title="Authorization Successful!",
                    text="You can close this window and return to the terminal.",
                )
                return web.Response(text=page, content_type="text/html")

            if not code_future.done():
                code_future.set_exception(TeslaAuthorizationError(msg))
            page = _PAGE.format(title="Authorization Failed", text=msg)
            return web.Response(text=page, content_type="text/html")

        return handle

    async def fetch_access_token(self, authorization_code: str) -> OAuth2Token:
        """Exchanges the authorization code for an access token.

        :param authorization_code: authorization code from the /authorize redirect
        :return: access token
        """
        if not authorization_code:
            msg = "no authorization code provided"
            raise TeslaAuthorizationError(msg)

        data = {
            "grant_type": "authorization_code",
            "client_id": self.credentials.client_id,
            "client_secret": self.credentials.client_secret,
            "code": authorization_code,
            "redirect_uri": self.credentials.redirect_uri,
        }

        _LOGGER.debug("Exchanging the authorization code for an access token.")
        try:
            resp = await self.client.post(
                TOKEN_URL,
                data=data,
                timeout=TIMEOUT,
                headers=self.headers,
            )
            token_data = resp.json()
        except httpx.HTTPError as exc:
            msg = f"token request failed: {exc}"
            raise TeslaAuthorizationError(msg) from exc
        except ValueError as exc:
            msg = "failed to decode token response"
            raise TeslaAuthorizationError(msg) from exc

        if not isinstance(token_data, dict):
            msg = "failed to decode token response"
            raise TeslaAuthorizationError(msg)
        if token_data.get("error"):
            msg = f"token error: {token_data['error']}"
            raise TeslaAuthorizationError(msg)
        if resp.is_error:
            raise TeslaAuthorizationError(resp.status_code)

        return OAuth2Token(
            {
                "access_token": token_data.get("access_token"),
                "refresh_token": token_data.get("refresh_token"),
                "expires_in": token_data.get("expires_in", 0),
            },
        )
