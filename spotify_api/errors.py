from typing import Optional


class SpotifyCLIError(RuntimeError):
    """Base class for every fatal error the CLI reports to the user."""


class ConfigError(SpotifyCLIError):
    """A required config field is missing or invalid."""


class CredentialStoreError(SpotifyCLIError):
    """The credential cache could not be written."""


class AuthExchangeError(SpotifyCLIError):
    """The token endpoint rejected an exchange (or could not be reached)."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class AuthorizationDenied(SpotifyCLIError):
    """The consent redirect carried an error instead of a code."""

    def __init__(self, reason: str):
        super().__init__(f"Spotify authorization was denied: {reason}")
        self.reason = reason


class CallbackTimeout(SpotifyCLIError):
    """No consent redirect arrived before the wait timed out."""


class PlaybackAPIError(SpotifyCLIError):
    """A Web API call failed; no retry is attempted."""

    def __init__(self, operation: str, message: str, *, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.operation = operation
        self.status_code = status_code
        self.body = body


class OperationNotPermitted(PlaybackAPIError):
    """HTTP 403: e.g. pausing while already paused."""


class NoActiveDevice(PlaybackAPIError):
    """HTTP 404: no playback device is reachable."""


class NotFoundError(SpotifyCLIError):
    """A search returned no item of the requested kind."""

    def __init__(self, query: str, kind: str):
        super().__init__(f"Search found no {kind} matching '{query}'.")
        self.query = query
        self.kind = kind


class NoDevicesAvailable(SpotifyCLIError):
    """The account has no playback devices to choose from."""
