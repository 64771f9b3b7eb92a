from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class AppIdentity:
    """Spotify app credentials from config.json."""

    client_id: str
    client_secret: str
    redirect_port: str

    @property
    def redirect_uri(self) -> str:
        return f"http://localhost:{self.redirect_port}"


@dataclass(frozen=True)
class Device:
    id: str
    name: str = ""
    type: str = ""
    is_active: bool = False
    is_restricted: bool = False

    @staticmethod
    def from_spotify(payload: Dict[str, Any]) -> "Device":
        return Device(
            id=str(payload.get("id") or ""),
            name=str(payload.get("name") or ""),
            type=str(payload.get("type") or ""),
            is_active=bool(payload.get("is_active", False)),
            is_restricted=bool(payload.get("is_restricted", False)),
        )


@dataclass(frozen=True)
class Track:
    name: str
    uri: str = ""
    album: str = ""
    artists: List[str] = field(default_factory=list)

    @staticmethod
    def from_spotify(payload: Dict[str, Any]) -> "Track":
        album = payload.get("album") if isinstance(payload.get("album"), dict) else {}
        artists = [
            str(a.get("name") or "")
            for a in (payload.get("artists") or [])
            if isinstance(a, dict) and a.get("name")
        ]
        return Track(
            name=str(payload.get("name") or ""),
            uri=str(payload.get("uri") or ""),
            album=str(album.get("name") or ""),
            artists=artists,
        )


@dataclass(frozen=True)
class PlaybackState:
    is_playing: bool
    track: Optional[Track] = None

    @staticmethod
    def from_spotify(payload: Dict[str, Any]) -> "PlaybackState":
        item = payload.get("item")
        track = Track.from_spotify(item) if isinstance(item, dict) else None
        return PlaybackState(is_playing=bool(payload.get("is_playing", False)), track=track)

    def describe(self) -> str:
        """Render the one-line status printed after playback commands."""
        status = "Playing" if self.is_playing else "Paused"
        if self.track is None or not self.track.name:
            return f"=> {status}"
        return f"=> {status} :: {self.track.name} - {', '.join(self.track.artists)}"


def is_track_reference(reference: str) -> bool:
    """True for `<provider>:track:<id>` references, which play via `uris`."""

    parts = str(reference or "").split(":")
    return len(parts) >= 3 and parts[1] == "track"
