"""LISTEN / UNLISTEN / NOTIFY builders."""
from __future__ import annotations

from typing import Any

from relq.pg_format import ident, literal, to_json
from relq.query.base import Statement


class ListenBuilder(Statement):
    def __init__(self, channel: str) -> None:
        self.channel = channel

    def to_string(self) -> str:
        return f"LISTEN {ident(self.channel)}"


class UnlistenBuilder(Statement):
    """``UNLISTEN "channel"``; ``*`` (the default) stops every channel."""

    def __init__(self, channel: str = "*") -> None:
        self.channel = channel

    def all_(self) -> UnlistenBuilder:
        self.channel = "*"
        return self

    def to_string(self) -> str:
        if self.channel == "*":
            return "UNLISTEN *"
        return f"UNLISTEN {ident(self.channel)}"


_NO_PAYLOAD = object()


class NotifyBuilder(Statement):
    """``NOTIFY "channel"[, 'payload']``.

    A non-string payload is serialized as compact JSON before quoting.
    """

    def __init__(self, channel: str, payload: Any = _NO_PAYLOAD) -> None:
        self.channel = channel
        self.payload = payload

    def with_payload(self, payload: Any) -> NotifyBuilder:
        self.payload = payload
        return self

    def to_string(self) -> str:
        sql = f"NOTIFY {ident(self.channel)}"
        if self.payload is not _NO_PAYLOAD:
            text = self.payload if isinstance(self.payload, str) else to_json(self.payload)
            sql += f", {literal(text)}"
        return sql
