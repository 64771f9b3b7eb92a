"""Spotify Web API integration for the command-line controller.

- auth.py: token lifecycle (client credentials, consent flow, refresh)
- callback_server.py: one-shot localhost listener for the consent redirect
- client.py: playback control, devices, search, current state
- token_manager.py: on-disk token cache
"""

from .auth import SpotifyAuth
from .callback_server import CallbackServer
from .client import SpotifyClient
from .devices import choose_device, find_device
from .models import AppIdentity, Device, PlaybackState, Track
from .token_manager import Credentials, TokenManager

__all__ = [
    "AppIdentity",
    "CallbackServer",
    "Credentials",
    "Device",
    "PlaybackState",
    "SpotifyAuth",
    "SpotifyClient",
    "TokenManager",
    "Track",
    "choose_device",
    "find_device",
]
