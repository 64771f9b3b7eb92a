from __future__ import annotations

from typing import Callable

from players.base import Player
from players.osx import OSXPlayer
from players.web import WebPlayer
from spotify_api.client import SpotifyClient
from spotify_api.errors import ConfigError

__all__ = ["OSXPlayer", "Player", "WebPlayer", "build_player"]


def build_player(player_type: str, client_factory: Callable[[], SpotifyClient]) -> Player:
    """Pick the playback backend named by config's playerType.

    client_factory is only called for the web player, so the osx player
    never triggers Spotify authorization.
    """
    key = (player_type or "web").strip().lower()
    if key == "web":
        return WebPlayer(client_factory())
    if key == "osx":
        return OSXPlayer()
    raise ConfigError(f"Unknown playerType: {player_type} (expected 'web' or 'osx')")
