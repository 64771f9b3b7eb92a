import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict

from .errors import CredentialStoreError

logger = logging.getLogger(__name__)

PROGRAM_DIR = os.path.join(os.path.expanduser("~"), ".spotify-cli")
DEFAULT_TOKEN_CACHE_PATH = os.path.join(PROGRAM_DIR, ".tokens")


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError, OverflowError):
        return 0


@dataclass
class Credentials:
    """Token record cached between CLI invocations.

    Mutable on purpose: SpotifyAuth updates it in place while authorizing and
    the whole record is written back once at the end.
    """

    app_access_token: str = ""
    app_token_expiration: int = 0
    user_access_token: str = ""
    user_refresh_token: str = ""
    user_token_expiration: int = 0

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "Credentials":
        return Credentials(
            app_access_token=str(data.get("appAccessToken") or ""),
            app_token_expiration=_as_int(data.get("appTokenExpiration")),
            user_access_token=str(data.get("userAccessToken") or ""),
            user_refresh_token=str(data.get("userRefreshToken") or ""),
            user_token_expiration=_as_int(data.get("userTokenExpiration")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "appAccessToken": self.app_access_token,
            "appTokenExpiration": int(self.app_token_expiration),
            "userAccessToken": self.user_access_token,
            "userRefreshToken": self.user_refresh_token,
            "userTokenExpiration": int(self.user_token_expiration),
        }


class TokenManager:
    """Loads and saves the Credentials record on disk."""

    def __init__(self, *, cache_path: str = DEFAULT_TOKEN_CACHE_PATH):
        self.cache_path = cache_path

    def ensure_cache_dir(self) -> None:
        directory = os.path.dirname(self.cache_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

    def load(self) -> Credentials:
        """Load cached credentials; a missing or corrupt file gives an empty record."""
        if not os.path.exists(self.cache_path):
            logger.debug("No token cache at %s", self.cache_path)
            return Credentials()

        try:
            with open(self.cache_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable token cache %s: %s", self.cache_path, e)
            return Credentials()

        if not isinstance(data, dict):
            logger.warning("Ignoring token cache %s: expected a JSON object", self.cache_path)
            return Credentials()

        return Credentials.from_dict(data)

    def save(self, credentials: Credentials) -> None:
        """Persist credentials, replacing the cache file atomically."""
        tmp_path = f"{self.cache_path}.tmp"
        try:
            self.ensure_cache_dir()
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(credentials.to_dict(), f, indent=2)
            try:
                os.chmod(tmp_path, 0o600)
            except OSError:
                logger.debug("Could not restrict permissions on %s", tmp_path)
            os.replace(tmp_path, self.cache_path)
        except OSError as e:
            raise CredentialStoreError(f"Failed to save tokens to {self.cache_path}: {e}") from e

        logger.debug("Saved tokens to %s", self.cache_path)

    def clear(self) -> bool:
        try:
            if os.path.exists(self.cache_path):
                os.remove(self.cache_path)
            return True
        except OSError as e:
            logger.warning("Failed to remove token cache %s: %s", self.cache_path, e)
            return False
