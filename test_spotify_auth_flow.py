import json
import os
import tempfile
import threading
import unittest
import urllib.parse

import httpx

# Ensure local imports work when running this file directly.
THIS_DIR = os.path.dirname(os.path.abspath(__file__))
if THIS_DIR not in os.sys.path:
    os.sys.path.insert(0, THIS_DIR)

from spotify_api.auth import TOKEN_LIFETIME_SECONDS, SpotifyAuth, basic_auth_header
from spotify_api.callback_server import CallbackServer
from spotify_api.errors import AuthExchangeError, AuthorizationDenied, CredentialStoreError
from spotify_api.models import AppIdentity
from spotify_api.token_manager import Credentials, TokenManager

NOW = 1_700_000_000
IDENTITY = AppIdentity(client_id="client-id", client_secret="client-secret", redirect_port="8888")


class FakeTokenEndpoint:
    """Synthetic accounts.spotify.com/api/token that records every exchange."""

    def __init__(self, status_code=200):
        self.status_code = status_code
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        form = {k: v[0] for k, v in urllib.parse.parse_qs(request.content.decode("utf-8")).items()}
        self.requests.append({"url": str(request.url), "headers": request.headers, "form": form})

        if self.status_code != 200:
            return httpx.Response(self.status_code, text='{"error":"invalid_client"}')

        grant = form.get("grant_type")
        if grant == "client_credentials":
            return httpx.Response(200, json={"access_token": "app-token", "token_type": "Bearer", "expires_in": 3600})
        if grant == "authorization_code":
            return httpx.Response(200, json={"access_token": "user-token", "refresh_token": "refresh-1", "expires_in": 3600})
        if grant == "refresh_token":
            return httpx.Response(200, json={"access_token": "user-token-2", "refresh_token": "refresh-2", "expires_in": 3600})
        return httpx.Response(400, text="unsupported_grant_type")

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def grants(self):
        return [r["form"]["grant_type"] for r in self.requests]


class FakeListener:
    def __init__(self, code="abc123", error=None):
        self.code = code
        self.error = error
        self.started = 0
        self.awaited = 0

    def start(self):
        self.started += 1

    def await_code(self, timeout=None):
        self.awaited += 1
        if self.error:
            raise self.error
        return self.code


class AuthFlowTestCase(unittest.TestCase):
    def setUp(self):
        self._td = tempfile.TemporaryDirectory()
        self.addCleanup(self._td.cleanup)
        self.token_manager = TokenManager(cache_path=os.path.join(self._td.name, ".tokens"))
        self.endpoint = FakeTokenEndpoint()
        self.opened_urls = []

    def make_auth(self, listener=None, endpoint=None):
        return SpotifyAuth(
            IDENTITY,
            token_manager=self.token_manager,
            listener=listener or FakeListener(),
            transport=(endpoint or self.endpoint).transport,
            open_browser=self.opened_urls.append,
            clock=lambda: NOW,
        )

    def seed(self, **fields):
        self.token_manager.save(Credentials(**fields))


class TestAuthorizeBranches(AuthFlowTestCase):
    def test_fresh_install_runs_client_credentials_then_consent(self):
        listener = FakeListener(code="abc123")
        creds = self.make_auth(listener).authorize()

        self.assertEqual(self.endpoint.grants(), ["client_credentials", "authorization_code"])
        code_exchange = self.endpoint.requests[1]["form"]
        self.assertEqual(code_exchange["code"], "abc123")
        self.assertEqual(code_exchange["redirect_uri"], "http://localhost:8888")
        self.assertNotIn("refresh_token", self.endpoint.requests[0]["form"])

        self.assertEqual(listener.started, 1)
        self.assertEqual(listener.awaited, 1)
        self.assertEqual(len(self.opened_urls), 1)
        self.assertIn("https://accounts.spotify.com/authorize?", self.opened_urls[0])

        self.assertEqual(creds.app_access_token, "app-token")
        self.assertEqual(creds.app_token_expiration, NOW + TOKEN_LIFETIME_SECONDS)
        self.assertEqual(creds.user_access_token, "user-token")
        self.assertEqual(creds.user_refresh_token, "refresh-1")
        self.assertEqual(creds.user_token_expiration, NOW + TOKEN_LIFETIME_SECONDS)
        self.assertEqual(self.token_manager.load(), creds)

    def test_every_exchange_uses_basic_auth_and_form_encoding(self):
        self.make_auth().authorize()

        for req in self.endpoint.requests:
            self.assertEqual(req["url"], "https://accounts.spotify.com/api/token")
            self.assertEqual(req["headers"]["authorization"], basic_auth_header("client-id", "client-secret"))
            self.assertEqual(req["headers"]["content-type"], "application/x-www-form-urlencoded")

    def test_valid_tokens_are_reused_without_network(self):
        self.seed(
            app_access_token="app",
            app_token_expiration=NOW + 100,
            user_access_token="user",
            user_refresh_token="refresh",
            user_token_expiration=NOW + 100,
        )
        auth = self.make_auth()

        first = auth.authorize()
        second = auth.authorize()

        self.assertEqual(self.endpoint.requests, [])
        self.assertEqual(first, second)
        self.assertEqual(second.user_access_token, "user")

    def test_expired_user_token_is_refreshed(self):
        self.seed(
            app_access_token="app",
            app_token_expiration=NOW + 100,
            user_access_token="stale",
            user_refresh_token="refresh-0",
            user_token_expiration=NOW - 1,
        )
        listener = FakeListener()
        creds = self.make_auth(listener).authorize()

        self.assertEqual(self.endpoint.grants(), ["refresh_token"])
        form = self.endpoint.requests[0]["form"]
        self.assertEqual(form["refresh_token"], "refresh-0")
        self.assertEqual(form["redirect_uri"], "http://localhost:8888")
        self.assertEqual(listener.awaited, 0)

        self.assertEqual(creds.user_access_token, "user-token-2")
        self.assertEqual(creds.user_refresh_token, "refresh-2")
        self.assertEqual(creds.user_token_expiration, NOW + TOKEN_LIFETIME_SECONDS)
        self.assertEqual(creds.app_access_token, "app")

    def test_refresh_keeps_previous_refresh_token_when_none_returned(self):
        self.seed(
            app_access_token="app",
            app_token_expiration=NOW + 100,
            user_access_token="stale",
            user_refresh_token="refresh-0",
            user_token_expiration=NOW - 1,
        )

        def handler(request):
            return httpx.Response(200, json={"access_token": "user-token-3"})

        auth = SpotifyAuth(
            IDENTITY,
            token_manager=self.token_manager,
            listener=FakeListener(),
            transport=httpx.MockTransport(handler),
            clock=lambda: NOW,
        )
        creds = auth.authorize()

        self.assertEqual(creds.user_access_token, "user-token-3")
        self.assertEqual(creds.user_refresh_token, "refresh-0")

    def test_missing_access_token_counts_as_expired(self):
        self.seed(
            app_access_token="app",
            app_token_expiration=NOW + 100,
            user_refresh_token="refresh-0",
            user_token_expiration=NOW + 100,
        )
        self.make_auth().authorize()

        self.assertEqual(self.endpoint.grants(), ["refresh_token"])

    def test_expired_app_token_is_renewed_independently(self):
        self.seed(
            app_access_token="old-app",
            app_token_expiration=NOW - 1,
            user_access_token="user",
            user_refresh_token="refresh",
            user_token_expiration=NOW + 100,
        )
        creds = self.make_auth().authorize()

        self.assertEqual(self.endpoint.grants(), ["client_credentials"])
        self.assertEqual(creds.app_access_token, "app-token")
        self.assertEqual(creds.app_token_expiration, NOW + TOKEN_LIFETIME_SECONDS)
        self.assertEqual(creds.user_access_token, "user")
        self.assertEqual(creds.user_refresh_token, "refresh")

    def test_no_refresh_token_falls_back_to_consent(self):
        self.seed(
            app_access_token="app",
            app_token_expiration=NOW + 100,
            user_access_token="stale",
            user_token_expiration=NOW - 1,
        )
        listener = FakeListener(code="xyz")
        self.make_auth(listener).authorize()

        self.assertEqual(self.endpoint.grants(), ["authorization_code"])
        self.assertEqual(self.endpoint.requests[0]["form"]["code"], "xyz")


class TestAuthorizeFailures(AuthFlowTestCase):
    def test_non_200_is_fatal_and_surfaces_body(self):
        endpoint = FakeTokenEndpoint(status_code=401)
        with self.assertRaises(AuthExchangeError) as ctx:
            self.make_auth(endpoint=endpoint).authorize()

        self.assertEqual(ctx.exception.status_code, 401)
        self.assertIn("invalid_client", ctx.exception.body)
        self.assertIn("invalid_client", str(ctx.exception))
        self.assertEqual(endpoint.grants(), ["client_credentials"])

    def test_tokens_are_saved_even_when_consent_fails(self):
        listener = FakeListener(error=AuthorizationDenied("access_denied"))
        with self.assertRaises(AuthorizationDenied):
            self.make_auth(listener).authorize()

        saved = self.token_manager.load()
        self.assertEqual(saved.app_access_token, "app-token")
        self.assertEqual(saved.user_access_token, "")

    def test_failed_save_does_not_hide_exchange_error(self):
        class FullDiskTokenManager(TokenManager):
            def save(self, credentials):
                raise CredentialStoreError("disk full")

        endpoint = FakeTokenEndpoint(status_code=401)
        auth = SpotifyAuth(
            IDENTITY,
            token_manager=FullDiskTokenManager(cache_path=self.token_manager.cache_path),
            listener=FakeListener(),
            transport=endpoint.transport,
            clock=lambda: NOW,
        )
        with self.assertLogs("spotify_api.auth", level="ERROR") as logs:
            with self.assertRaises(AuthExchangeError) as ctx:
                auth.authorize()

        self.assertEqual(ctx.exception.status_code, 401)
        self.assertIn("disk full", logs.output[0])

    def test_failed_save_after_success_is_raised(self):
        class FullDiskTokenManager(TokenManager):
            def save(self, credentials):
                raise CredentialStoreError("disk full")

        auth = SpotifyAuth(
            IDENTITY,
            token_manager=FullDiskTokenManager(cache_path=self.token_manager.cache_path),
            listener=FakeListener(),
            transport=self.endpoint.transport,
            open_browser=self.opened_urls.append,
            clock=lambda: NOW,
        )
        with self.assertRaises(CredentialStoreError):
            auth.authorize()

    def test_non_json_response_is_an_exchange_error(self):
        def handler(request):
            return httpx.Response(200, text="<html>oops</html>")

        auth = SpotifyAuth(
            IDENTITY,
            token_manager=self.token_manager,
            listener=FakeListener(),
            transport=httpx.MockTransport(handler),
            clock=lambda: NOW,
        )
        with self.assertRaises(AuthExchangeError):
            auth.authorize()

    def test_transport_error_is_an_exchange_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        auth = SpotifyAuth(
            IDENTITY,
            token_manager=self.token_manager,
            listener=FakeListener(),
            transport=httpx.MockTransport(handler),
            clock=lambda: NOW,
        )
        with self.assertRaises(AuthExchangeError):
            auth.authorize()


class TestConsentEndToEnd(AuthFlowTestCase):
    def test_redirect_to_listener_drives_code_exchange(self):
        listener = CallbackServer(0, host="127.0.0.1")
        self.addCleanup(listener.shutdown)
        redirect_responses = []

        def fake_browser(url):
            # The user approves in the browser; Spotify redirects to the listener.
            def redirect():
                with httpx.Client(trust_env=False, timeout=5.0) as browser:
                    redirect_responses.append(browser.get(f"http://127.0.0.1:{listener.port}/?code=abc123"))

            threading.Thread(target=redirect, daemon=True).start()

        auth = SpotifyAuth(
            IDENTITY,
            token_manager=self.token_manager,
            listener=listener,
            transport=self.endpoint.transport,
            open_browser=fake_browser,
            clock=lambda: NOW,
            callback_timeout=10.0,
        )
        creds = auth.authorize()

        code_exchanges = [r for r in self.endpoint.requests if r["form"]["grant_type"] == "authorization_code"]
        self.assertEqual(len(code_exchanges), 1)
        self.assertEqual(code_exchanges[0]["form"]["code"], "abc123")
        self.assertEqual(creds.user_access_token, "user-token")

        with open(self.token_manager.cache_path, "r", encoding="utf-8") as f:
            self.assertEqual(json.load(f)["userRefreshToken"], "refresh-1")


if __name__ == "__main__":
    unittest.main(verbosity=2)
