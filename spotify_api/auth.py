import base64
import json
import logging
import time
import urllib.parse
from typing import Any, Callable, Dict, Iterable, Optional

import httpx

from .callback_server import CallbackServer
from .errors import AuthExchangeError, CredentialStoreError
from .models import AppIdentity
from .token_manager import Credentials, TokenManager

logger = logging.getLogger(__name__)

SPOTIFY_ACCOUNTS_BASE_URL = "https://accounts.spotify.com"
SPOTIFY_TOKEN_URL = f"{SPOTIFY_ACCOUNTS_BASE_URL}/api/token"

SCOPES = (
    "user-read-playback-state",
    "user-modify-playback-state",
    "user-read-currently-playing",
)

# Spotify's expires_in is not read; every issued token is assumed to last an hour.
TOKEN_LIFETIME_SECONDS = 3600

GRANT_CLIENT_CREDENTIALS = "client_credentials"
GRANT_AUTHORIZATION_CODE = "authorization_code"
GRANT_REFRESH_TOKEN = "refresh_token"


def basic_auth_header(client_id: str, client_secret: str) -> str:
    """Return the `Basic base64(id:secret)` header value for the token endpoint."""

    raw = f"{client_id}:{client_secret}".encode("utf-8")
    return "Basic " + base64.b64encode(raw).decode("ascii")


def build_authorize_url(identity: AppIdentity, *, scopes: Optional[Iterable[str]] = None) -> str:
    scope_list = list(scopes if scopes is not None else SCOPES)
    params: Dict[str, str] = {
        "client_id": identity.client_id,
        "response_type": "code",
        "redirect_uri": identity.redirect_uri,
        # Comma-separated; the consent endpoint also accepts spaces.
        "scope": ",".join(s.strip() for s in scope_list if s.strip()),
    }
    return f"{SPOTIFY_ACCOUNTS_BASE_URL}/authorize?{urllib.parse.urlencode(params)}"


def spotify_app_setup_instructions(*, redirect_port: str = "8888") -> str:
    """Return user-facing setup instructions for creating a Spotify Developer app."""

    redirect_port = str(redirect_port or "").strip() or "8888"
    return (
        "Spotify app setup:\n"
        "1) Go to https://developer.spotify.com/dashboard\n"
        "2) Create an app (or select an existing app)\n"
        f"3) Add this Redirect URI in the app settings: http://localhost:{redirect_port}\n"
        "4) Copy the Client ID and Client Secret into the config with:\n"
        "   spotify-cli config --set-app-client-id <id> --set-app-client-secret <secret>"
        f" --set-redirect-port {redirect_port}\n\n"
        "Notes:\n"
        "- Redirect URI must match *exactly* what you configure in the Spotify dashboard.\n"
        "- The first playback command opens a browser so you can grant access.\n"
    )


def _default_open_browser(url: str) -> bool:
    from utils.browser import open_in_browser

    return open_in_browser(url)


def _mask(token: str) -> str:
    return f"{token[:4]}…" if token else "<empty>"


class SpotifyAuth:
    """Decides whether to reuse, refresh or mint Spotify tokens.

    Every authorize() call evaluates, in order:

    1. app (client-credentials) token missing or expired -> fetch a new one;
    2. user access token present and fresh -> reuse it;
    3. refresh token present and user token expired -> refresh;
    4. otherwise -> browser consent flow, wait for the redirect, exchange the code.

    The credential cache is written back after every call, even when a step
    raises, so tokens obtained before the failure are kept.
    """

    def __init__(
        self,
        identity: AppIdentity,
        *,
        token_manager: Optional[TokenManager] = None,
        listener: Optional[CallbackServer] = None,
        transport: Optional[httpx.BaseTransport] = None,
        open_browser: Optional[Callable[[str], Any]] = None,
        clock: Callable[[], float] = time.time,
        callback_timeout: Optional[float] = None,
    ):
        self.identity = identity
        self.token_manager = token_manager or TokenManager()
        self.listener = listener
        self.credentials = Credentials()
        self._transport = transport
        self._open_browser = open_browser or _default_open_browser
        self._clock = clock
        self._callback_timeout = callback_timeout

    def _now(self) -> int:
        return int(self._clock())

    def authorize(self) -> Credentials:
        self.credentials = self.token_manager.load()
        try:
            self._authorize(self.credentials)
        except BaseException:
            # Keep partial progress, but never let a failed write mask the original error.
            try:
                self.token_manager.save(self.credentials)
            except CredentialStoreError as e:
                logger.error("%s", e)
            raise
        self.token_manager.save(self.credentials)
        return self.credentials

    def _authorize(self, creds: Credentials) -> None:
        now = self._now()
        app_expired = now > creds.app_token_expiration or not creds.app_access_token
        user_expired = now > creds.user_token_expiration or not creds.user_access_token

        if app_expired:
            logger.debug("App token missing or expired; requesting client credentials")
            self.acquire_tokens(GRANT_CLIENT_CREDENTIALS)

        if not user_expired:
            logger.debug("Reusing cached user token %s", _mask(creds.user_access_token))
            return

        if creds.user_refresh_token:
            logger.debug("User token expired; refreshing")
            self.acquire_tokens(GRANT_REFRESH_TOKEN, creds.user_refresh_token)
            return

        code = self.authorize_user()
        self.acquire_tokens(GRANT_AUTHORIZATION_CODE, code)

    def authorize_user(self) -> str:
        """Run the consent flow and block until the redirect delivers a code."""
        if self.listener is None:
            self.listener = CallbackServer(self.identity.redirect_port)
        self.listener.start()

        auth_url = build_authorize_url(self.identity)
        print(f"\nPlease navigate to this URL to Authorize Spotify:\n\n{auth_url}\n")
        try:
            self._open_browser(auth_url)
        except Exception as e:
            logger.warning("Could not open a browser: %s", e)

        return self.listener.await_code(timeout=self._callback_timeout)

    def acquire_tokens(self, grant_type: str, code: str = "") -> None:
        """Exchange a grant at the token endpoint and record the result."""
        form: Dict[str, str] = {"grant_type": grant_type}
        if grant_type == GRANT_AUTHORIZATION_CODE:
            form["code"] = code
            form["redirect_uri"] = self.identity.redirect_uri
        elif grant_type == GRANT_REFRESH_TOKEN:
            form["refresh_token"] = code
            form["redirect_uri"] = self.identity.redirect_uri
        elif grant_type != GRANT_CLIENT_CREDENTIALS:
            raise ValueError(f"Unsupported grant_type: {grant_type}")

        payload = self._post_form(SPOTIFY_TOKEN_URL, form)
        expiration = self._now() + TOKEN_LIFETIME_SECONDS
        creds = self.credentials

        if grant_type == GRANT_CLIENT_CREDENTIALS:
            if payload.get("access_token"):
                creds.app_access_token = str(payload["access_token"])
                creds.app_token_expiration = expiration
            return

        if payload.get("access_token"):
            creds.user_access_token = str(payload["access_token"])
            creds.user_token_expiration = expiration
        if payload.get("refresh_token"):
            creds.user_refresh_token = str(payload["refresh_token"])
        logger.info("Spotify %s exchange succeeded", grant_type)

    def _post_form(self, url: str, form: Dict[str, str]) -> Dict[str, Any]:
        try:
            with httpx.Client(timeout=30.0, follow_redirects=False, transport=self._transport) as client:
                resp = client.post(
                    url,
                    data=form,
                    headers={
                        "Authorization": basic_auth_header(self.identity.client_id, self.identity.client_secret),
                        "Content-Type": "application/x-www-form-urlencoded",
                    },
                )
        except httpx.HTTPError as e:
            raise AuthExchangeError(f"Spotify token request failed: {e}") from e

        if resp.status_code != 200:
            raise AuthExchangeError(
                f"Error encountered during Authorization (HTTP {resp.status_code}): {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )

        try:
            payload = resp.json()
        except json.JSONDecodeError as e:
            raise AuthExchangeError(f"Spotify token response was not JSON: {resp.text}", body=resp.text) from e

        if not isinstance(payload, dict):
            raise AuthExchangeError(f"Spotify token response was not an object: {payload}", body=resp.text)

        return payload
