from __future__ import annotations

from typing import Protocol


class ChannelClient(Protocol):
    name: str

    def send_text(self, identifier: str, text: str) -> None: ...
