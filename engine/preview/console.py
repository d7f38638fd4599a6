"""
CodeNANO Preview — Console Bridge

Receives the structured messages the sandbox shim posts to its parent,
validates them against the wire schema, filters by origin, suppresses
rapid duplicates and appends them to a bounded console list.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from typing import Annotated, Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from engine.preview.sandbox import NULL_ORIGIN
from engine.preview.types import (
    CONSOLE_CAPACITY,
    CONSOLE_DEDUPE_WINDOW,
    ConsoleKind,
    ConsoleMessage,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Wire schema
# ---------------------------------------------------------------------------


class _BridgeMessageBase(BaseModel):
    model_config = {"extra": "ignore", "frozen": True}

    content: str
    timestamp: datetime | None = None


class ConsoleLogMsg(_BridgeMessageBase):
    type: Literal["console-log"]


class ConsoleErrorMsg(_BridgeMessageBase):
    type: Literal["console-error"]


class ConsoleWarnMsg(_BridgeMessageBase):
    type: Literal["console-warn"]


class ConsoleInfoMsg(_BridgeMessageBase):
    type: Literal["console-info"]


BridgeMessage = Annotated[
    ConsoleLogMsg | ConsoleErrorMsg | ConsoleWarnMsg | ConsoleInfoMsg,
    Field(discriminator="type"),
]

_bridge_adapter: TypeAdapter[BridgeMessage] = TypeAdapter(BridgeMessage)


def parse_bridge_message(payload: Any) -> BridgeMessage | None:
    """Validate a raw postMessage payload. Returns None when it is not a console message."""
    try:
        return _bridge_adapter.validate_python(payload)
    except ValidationError:
        logger.debug("console: dropped malformed payload %r", payload)
        return None


def message_kind(message: BridgeMessage) -> ConsoleKind:
    """'console-warn' → 'warn'."""
    return message.type.removeprefix("console-")  # type: ignore[return-value]


# ---------------------------------------------------------------------------
# Bounded console list
# ---------------------------------------------------------------------------


class ConsoleLog:
    """Append-only list of console messages keeping the most recent `capacity` entries."""

    def __init__(self, capacity: int = CONSOLE_CAPACITY) -> None:
        self._entries: deque[ConsoleMessage] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or 0

    def append(self, message: ConsoleMessage) -> None:
        self._entries.append(message)

    def clear(self) -> None:
        self._entries.clear()

    @property
    def messages(self) -> list[ConsoleMessage]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[ConsoleMessage]:
        return iter(list(self._entries))


# ---------------------------------------------------------------------------
# Bridge
# ---------------------------------------------------------------------------


class ConsoleBridge:
    """
    Host-side listener for sandbox console traffic.

    Accepts messages whose origin is the host origin or the literal "null"
    (data: URI frames). A message whose (content, type) pair was accepted
    less than `dedupe_window` seconds ago is suppressed.
    """

    def __init__(
        self,
        host_origin: str,
        log: ConsoleLog | None = None,
        dedupe_window: float = CONSOLE_DEDUPE_WINDOW,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.host_origin = host_origin
        self.log = log if log is not None else ConsoleLog()
        self.dedupe_window = dedupe_window
        self._clock = clock
        self._last_seen: dict[tuple[str, str], float] = {}

    def accepts_origin(self, origin: str | None) -> bool:
        return origin is not None and origin in (self.host_origin, NULL_ORIGIN)

    def receive(self, origin: str | None, payload: Any) -> ConsoleMessage | None:
        """
        Handle one message event. Returns the appended entry, or None when
        the event was rejected (origin, schema) or suppressed as a duplicate.
        """
        if not self.accepts_origin(origin):
            logger.debug("console: ignored message from origin %r", origin)
            return None

        parsed = parse_bridge_message(payload)
        if parsed is None:
            return None

        return self.add(message_kind(parsed), parsed.content, parsed.timestamp)

    def add(self, kind: ConsoleKind, content: str, timestamp: datetime | None = None) -> ConsoleMessage | None:
        """Append a message (bridge traffic or a host notice) unless it is a recent duplicate."""
        now = self._clock()
        key = (content, kind)
        last = self._last_seen.get(key)
        if last is not None and now - last < self.dedupe_window:
            return None
        self._last_seen[key] = now
        self._prune(now)

        entry = ConsoleMessage(
            id=uuid4().hex,
            type=kind,
            content=content,
            timestamp=timestamp or datetime.now(UTC),
        )
        self.log.append(entry)
        return entry

    def clear(self) -> None:
        self.log.clear()
        self._last_seen.clear()

    def _prune(self, now: float) -> None:
        if len(self._last_seen) <= self.log.capacity:
            return
        cutoff = now - self.dedupe_window
        self._last_seen = {k: ts for k, ts in self._last_seen.items() if ts >= cutoff}
