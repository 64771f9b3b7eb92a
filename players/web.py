from __future__ import annotations

import time

from spotify_api.client import SpotifyClient


class WebPlayer:
    """Player backed by the Spotify Web API."""

    name = "web"

    def __init__(self, client: SpotifyClient, *, settle_seconds: float = 0.2) -> None:
        self.client = client
        # Spotify reports the previous track for a moment after a skip.
        self.settle_seconds = settle_seconds

    def play(self) -> str:
        self.client.play()
        return self._settled_state()

    def pause(self) -> str:
        self.client.pause()
        return self.state()

    def next_track(self) -> str:
        self.client.next_track()
        return self._settled_state()

    def previous_track(self) -> str:
        self.client.previous_track()
        return self._settled_state()

    def state(self) -> str:
        return self.client.current_state().describe()

    def _settled_state(self) -> str:
        if self.settle_seconds > 0:
            time.sleep(self.settle_seconds)
        return self.state()
