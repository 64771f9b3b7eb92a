from __future__ import annotations

import subprocess
from typing import Callable, Tuple

from utils.logger import log_debug

# JXA snippets for the Spotify desktop app
PLAY = "Application('Spotify').play()"
PAUSE = "Application('Spotify').pause()"
NEXT_TRACK = "Application('Spotify').nextTrack()"
PREVIOUS_TRACK = "Application('Spotify').previousTrack()"
PLAYER_STATE = "Application('Spotify').playerState()"
TRACK_NAME = "Application('Spotify').currentTrack().name()"
TRACK_ARTIST = "Application('Spotify').currentTrack().artist()"
TRACK_ALBUM = "Application('Spotify').currentTrack().album()"


class OSXPlayer:
    """Player that drives the macOS Spotify app through osascript."""

    name = "osx"

    def __init__(self, runner: Callable[..., subprocess.CompletedProcess] = subprocess.run) -> None:
        self._runner = runner

    def run_jxa(self, script: str) -> Tuple[str, bool]:
        """Run a JXA snippet; returns (output, ok)."""
        log_debug(f"osascript: {script}")
        try:
            result = self._runner(
                ["osascript", "-l", "JavaScript", "-e", script],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as e:
            return str(e), False
        output = ((result.stdout or "") + (result.stderr or "")).strip()
        return output, result.returncode == 0

    def play(self) -> str:
        msg, ok = self.run_jxa(PLAY)
        if not ok:
            return f"Error in playing music: {msg}"
        return self.state()

    def pause(self) -> str:
        msg, ok = self.run_jxa(PAUSE)
        if not ok:
            return f"Error in pausing music: {msg}"
        return self.state()

    def next_track(self) -> str:
        msg, ok = self.run_jxa(NEXT_TRACK)
        if not ok:
            return f"Error in skipping to next track: {msg}"
        return self.track_info()

    def previous_track(self) -> str:
        msg, ok = self.run_jxa(PREVIOUS_TRACK)
        if not ok:
            return f"Error in skipping to previous track: {msg}"
        return self.track_info()

    def state(self) -> str:
        state, ok = self.run_jxa(PLAYER_STATE)
        if not ok:
            return f"Error in reading player state: {state}"
        return f"=> Now {state}"

    def track_info(self) -> str:
        title, _ = self.run_jxa(TRACK_NAME)
        artist, _ = self.run_jxa(TRACK_ARTIST)
        album, _ = self.run_jxa(TRACK_ALBUM)
        return f"[Track]: {title}\n[Album]: {album}\n[Artist]: {artist}"
