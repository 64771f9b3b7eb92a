import logging
import queue
import threading
import urllib.parse
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Optional, Tuple, Union

from .errors import AuthorizationDenied, CallbackTimeout

logger = logging.getLogger(__name__)

SUCCESS_PAGE = b"<html><body><h1>Success!</h1><p>You can close this window and return to the terminal.</p></body></html>"
FAILURE_PAGE = b"<html><body><h1>User Authorization failed</h1></body></html>"


def extract_code_from_path(path: str) -> dict:
    """Return {"code": ..., "error": ...} from a redirect request path (missing keys omitted)."""

    qs = urllib.parse.parse_qs(urllib.parse.urlparse(str(path or "")).query)
    out = {}
    if qs.get("code") and qs["code"][0]:
        out["code"] = str(qs["code"][0])
    if qs.get("error") and qs["error"][0]:
        out["error"] = str(qs["error"][0])
    return out


class _CallbackHandler(BaseHTTPRequestHandler):
    # Set per server class in CallbackServer.start().
    callback: "CallbackServer"

    def do_GET(self):
        params = extract_code_from_path(self.path)
        code = params.get("code")

        if code:
            self._respond(200, SUCCESS_PAGE)
            self.callback._deliver(("code", code))
        elif params.get("error"):
            self._respond(400, FAILURE_PAGE)
            self.callback._deliver(("error", params["error"]))
        else:
            # Favicon probes and the like; keep waiting for the real redirect.
            self._respond(400, FAILURE_PAGE)

    def _respond(self, status: int, body: bytes) -> None:
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        logger.debug("callback server: " + format, *args)


class CallbackServer:
    """Local listener that captures exactly one OAuth redirect.

    The handler thread puts the result into a single-slot queue without
    blocking; await_code() takes it out once.
    """

    def __init__(self, port: Union[int, str], *, host: str = ""):
        self.host = host
        self._requested_port = int(port)
        self._results: "queue.Queue[Tuple[str, str]]" = queue.Queue(maxsize=1)
        self._httpd: Optional[HTTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._consumed = False
        self._delivered = False
        self._lock = threading.Lock()

    @property
    def port(self) -> int:
        if self._httpd is not None:
            return int(self._httpd.server_address[1])
        return self._requested_port

    @property
    def running(self) -> bool:
        return self._httpd is not None

    def start(self) -> None:
        """Start serving in a daemon thread; calling it again is a no-op."""
        with self._lock:
            if self._httpd is not None:
                return

            handler = type("CallbackHandler", (_CallbackHandler,), {"callback": self})
            self._httpd = HTTPServer((self.host, self._requested_port), handler)
            self._thread = threading.Thread(
                target=self._httpd.serve_forever,
                name="spotify-callback-server",
                daemon=True,
            )
            self._thread.start()

        logger.info("Listening for the Spotify redirect on port %s", self.port)

    def await_code(self, timeout: Optional[float] = None) -> str:
        """Block until the redirect delivers a code (forever when timeout is None)."""
        with self._lock:
            if self._consumed:
                raise RuntimeError("The authorization callback has already been consumed.")
            self._consumed = True

        try:
            kind, value = self._results.get(timeout=timeout)
        except queue.Empty:
            raise CallbackTimeout(f"No authorization redirect received within {timeout} seconds.") from None

        if kind == "error":
            raise AuthorizationDenied(value)
        return value

    def shutdown(self) -> None:
        with self._lock:
            httpd, self._httpd = self._httpd, None
        if httpd is not None:
            httpd.shutdown()
            httpd.server_close()

    def _deliver(self, result: Tuple[str, str]) -> None:
        with self._lock:
            if self._delivered:
                logger.debug("Ignoring extra authorization redirect (%s)", result[0])
                return
            self._delivered = True
        self._results.put_nowait(result)
