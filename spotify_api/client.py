import json
import logging
from typing import Any, Dict, List, Optional

import httpx

from .devices import choose_device
from .errors import NoActiveDevice, NotFoundError, OperationNotPermitted, PlaybackAPIError
from .models import Device, PlaybackState, is_track_reference

logger = logging.getLogger(__name__)

SPOTIFY_API_BASE_URL = "https://api.spotify.com/v1"

SEARCH_KINDS = ("track", "album", "artist", "playlist", "show", "episode")


def classify_playback_response(operation: str, resp: httpx.Response) -> Optional[Dict[str, Any]]:
    """Turn a player endpoint response into a payload or a fatal error.

    - 2xx: success (204 carries no body, returns None)
    - 400: unexpected client error, remote body surfaced
    - 403: operation not currently permitted (e.g. pause while paused)
    - 404: no active device
    - anything else >= 400: generic API error
    """

    status = resp.status_code
    if 200 <= status < 300:
        if status == 204 or not resp.content:
            return None
        try:
            payload = resp.json()
        except json.JSONDecodeError:
            return None
        return payload if isinstance(payload, dict) else None

    body = resp.text
    if status == 400:
        raise PlaybackAPIError(
            operation,
            f"{operation} operation encountered unexpected client error. INFO: {body}",
            status_code=status,
            body=body,
        )
    if status == 403:
        raise OperationNotPermitted(
            operation,
            f"{operation} operation is not currently permitted (403 Forbidden).",
            status_code=status,
            body=body,
        )
    if status == 404:
        raise NoActiveDevice(
            operation,
            f"{operation} operation found no active device (404 Not Found). Is Spotify open on a device?",
            status_code=status,
            body=body,
        )
    if status >= 400:
        raise PlaybackAPIError(operation, f"{operation} failed with Spotify API error {status}: {body}", status_code=status, body=body)

    logger.warning("%s returned unexpected HTTP %s", operation, status)
    return None


class SpotifyClient:
    """Spotify Web API client for playback control.

    Every call is a single blocking request authenticated with the user's
    access token. Failures are not retried.
    """

    def __init__(self, access_token: str, *, transport: Optional[httpx.BaseTransport] = None):
        self.access_token = access_token
        self._transport = transport

    # -----------------
    # HTTP helpers
    # -----------------

    def _send(
        self,
        operation: str,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.access_token}"}
        query = {k: str(v) for k, v in (params or {}).items() if v is not None}

        try:
            with httpx.Client(base_url=SPOTIFY_API_BASE_URL, timeout=30.0, transport=self._transport) as client:
                resp = client.request(method.upper(), path, params=query or None, json=json_body, headers=headers)
        except httpx.HTTPError as e:
            raise PlaybackAPIError(operation, f"{operation} request failed: {e}") from e

        logger.debug("%s %s -> %s", method.upper(), path, resp.status_code)
        return resp

    def _player_call(self, operation: str, method: str, path: str, **kwargs: Any) -> Optional[Dict[str, Any]]:
        return classify_playback_response(operation, self._send(operation, method, path, **kwargs))

    def _query(self, operation: str, path: str, *, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        resp = self._send(operation, "GET", path, params=params)
        if resp.status_code >= 400:
            raise PlaybackAPIError(
                operation,
                f"{operation} failed with Spotify API error {resp.status_code}: {resp.text}",
                status_code=resp.status_code,
                body=resp.text,
            )
        if resp.status_code == 204 or not resp.content:
            return {}
        try:
            payload = resp.json()
        except json.JSONDecodeError as e:
            raise PlaybackAPIError(operation, f"Spotify API response was not JSON: {resp.text}", status_code=resp.status_code) from e
        return payload if isinstance(payload, dict) else {}

    # -----------------
    # Playback control
    # -----------------

    def play(self) -> None:
        """Resume playback on the active device (or the first one listed)."""
        device = choose_device(self.list_devices())
        self._player_call("Play", "PUT", "/me/player/play", params={"device_id": device.id})

    def play_on_device(self, device: Device) -> None:
        """Transfer playback to device and start playing there."""
        self._player_call("PlayOnDevice", "PUT", "/me/player/", json_body={"device_ids": [device.id], "play": True})

    def play_reference(self, reference: str) -> None:
        device = choose_device(self.list_devices())
        if is_track_reference(reference):
            body: Dict[str, Any] = {"uris": [reference]}
        else:
            body = {"context_uri": reference}
        self._player_call("PlayURI", "PUT", "/me/player/play", params={"device_id": device.id}, json_body=body)

    def pause(self) -> None:
        self._player_call("Pause", "PUT", "/me/player/pause")

    def next_track(self) -> None:
        self._player_call("NextTrack", "POST", "/me/player/next")

    def previous_track(self) -> None:
        self._player_call("PreviousTrack", "POST", "/me/player/previous")

    def volume(self, percent: int) -> None:
        # Range is enforced by Spotify, not here.
        self._player_call("Volume", "PUT", "/me/player/volume", params={"volume_percent": int(percent)})

    def toggle_shuffle(self, state: bool) -> None:
        self._player_call("Shuffle", "PUT", "/me/player/shuffle", params={"state": "true" if state else "false"})

    # -----------------
    # Queries
    # -----------------

    def list_devices(self) -> List[Device]:
        payload = self._query("Devices", "/me/player/devices")
        return [Device.from_spotify(d) for d in (payload.get("devices") or []) if isinstance(d, dict)]

    def current_state(self) -> PlaybackState:
        payload = self._query("CurrentState", "/me/player/currently-playing")
        if not payload:
            return PlaybackState(is_playing=False)
        return PlaybackState.from_spotify(payload)

    def search(self, query: str, kind: str) -> str:
        """Return the URI of the best match of the given kind.

        Raises NotFoundError rather than returning an empty reference.
        """
        if kind not in SEARCH_KINDS:
            raise ValueError(f"Search type must be one of {list(SEARCH_KINDS)}, got '{kind}'")

        payload = self._query("Search", "/search", params={"q": query, "type": kind, "limit": 1})
        section = payload.get(f"{kind}s")
        items = section.get("items") if isinstance(section, dict) else None
        for item in items or []:
            if isinstance(item, dict) and item.get("uri"):
                return str(item["uri"])

        raise NotFoundError(query, kind)
