from typing import List, Optional

import questionary

from spotify_api.models import Device
from utils.logger import log_warning

CANCEL = "__cancel__"


def device_label(device: Device) -> str:
    label = f"{device.name} ({device.type})"
    if device.is_active:
        label += " [active]"
    if device.is_restricted:
        label += " [restricted]"
    return label


def pick_device(devices: List[Device]) -> Optional[Device]:
    """Let the user choose a playback device. Returns None when cancelled."""

    if not devices:
        log_warning("No Spotify devices available.")
        return None

    choices = [
        questionary.Choice(title=device_label(d), value=d.id, disabled="restricted" if d.is_restricted else None)
        for d in devices
    ]
    choices.append(questionary.Choice(title="Cancel", value=CANCEL))

    chosen_id = questionary.select("Play on which device?", choices=choices).ask()
    if chosen_id in (None, CANCEL):
        return None
    return next((d for d in devices if d.id == chosen_id), None)
