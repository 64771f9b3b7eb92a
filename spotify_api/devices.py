from typing import Optional, Sequence

from .errors import NoDevicesAvailable
from .models import Device


def choose_device(devices: Sequence[Device]) -> Device:
    """Return the device playback should target.

    The last active device in list order wins. With no active device the
    first one is used.
    """
    if not devices:
        raise NoDevicesAvailable("No Spotify devices available. Open Spotify on a device and try again.")

    chosen = devices[0]
    for device in devices:
        if device.is_active:
            chosen = device
    return chosen


def find_device(devices: Sequence[Device], search: str) -> Optional[Device]:
    """Match a device by any partial id, name or type ('mbp', '064a', 'smartphone')."""

    needle = str(search or "").strip().lower()
    if not needle:
        return None
    for device in devices:
        if needle in device.id.lower() or needle in device.name.lower() or needle in device.type.lower():
            return device
    return None
