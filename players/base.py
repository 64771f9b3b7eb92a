from __future__ import annotations

from typing import Protocol


class Player(Protocol):
    """
    Playback backend interface. Keep it minimal.

    Every method returns a short status line for the CLI to print.
    """

    name: str

    def play(self) -> str: ...

    def pause(self) -> str: ...

    def next_track(self) -> str: ...

    def previous_track(self) -> str: ...

    def state(self) -> str: ...
