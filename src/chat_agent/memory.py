"""Durable conversation store backed by a single JSON document (atomic writes)."""
from __future__ import annotations

import json
import logging
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from .typing import METADATA_KEYS, Message, StoredMessage
from .utils import atomic_write_json, read_json

logger = logging.getLogger(__name__)


class PersistenceError(OSError):
    """The store document could not be read, parsed or written."""


# -----------------------------
# Helpers
# -----------------------------
def _new_id() -> str:
    return str(uuid.uuid4())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: datetime) -> str:
    # e.g. 2024-05-01T12:00:00.000Z, sorts as a plain string.
    return ts.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _default_data() -> Dict[str, List[StoredMessage]]:
    return {"messages": []}


# -----------------------------
# MessageStore
# -----------------------------
class MessageStore:
    """Append-only log of conversation turns persisted as ``{"messages": [...]}``.

    Every message gets an ``id`` and ``createdAt`` when it is first written.
    Reads strip them again, so callers only ever see plain messages.

    Each append is one transaction: load the whole document, append, and
    atomically replace the file. The lock serializes writers inside one
    process only.
    """

    def __init__(
        self,
        path: str = "db.json",
        *,
        id_factory: Callable[[], str] = _new_id,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self.path = Path(path)
        self._id_factory = id_factory
        self._clock = clock
        self._lock = threading.RLock()

        if not self.path.exists():
            with self._lock:
                self._write(_default_data())
            logger.debug("Created empty message store at %s", self.path)

    # --------- metadata ----------
    def enrich_with_metadata(self, message: Message) -> StoredMessage:
        """Return a copy of ``message`` with a fresh ``id`` and ``createdAt``."""
        return {
            **message,
            "id": self._id_factory(),
            "createdAt": _iso(self._clock()),
        }  # type: ignore[return-value]

    @staticmethod
    def strip_metadata(message: StoredMessage) -> Message:
        """Return a copy of ``message`` without the store metadata."""
        return {k: v for k, v in message.items() if k not in METADATA_KEYS}  # type: ignore[return-value]

    # --------- core API ----------
    def append_messages(self, messages: Iterable[Message]) -> None:
        """Enrich and durably append ``messages`` in order."""
        enriched = [self.enrich_with_metadata(m) for m in messages]
        if not enriched:
            return

        with self._lock:
            data = self._load()
            data["messages"].extend(enriched)
            self._write(data)
        logger.debug("Appended %d message(s) to %s", len(enriched), self.path)

    def get_all_messages(self) -> List[Message]:
        """Full history in storage order, metadata removed."""
        with self._lock:
            data = self._load()
        return [self.strip_metadata(m) for m in data["messages"]]

    def record_tool_response(self, tool_call_id: str, tool_result: Any) -> None:
        """Append a ``tool`` turn answering the tool call ``tool_call_id``.

        ``tool_result`` is stored as given; serialize structured results first.
        The id is not checked against earlier assistant turns.
        """
        self.append_messages(
            [{"role": "tool", "content": tool_result, "tool_call_id": tool_call_id}]
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._load()["messages"])

    # --------- internals ----------
    def _load(self) -> Dict[str, List[StoredMessage]]:
        if not self.path.exists():
            return _default_data()
        try:
            data = read_json(self.path)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Failed to read message store {self.path}: {e}") from e

        if (
            not isinstance(data, dict)
            or not isinstance(data.get("messages"), list)
            or not all(isinstance(m, dict) for m in data["messages"])
        ):
            raise PersistenceError(
                f"Invalid message store format in {self.path}, expected {{'messages': [...]}}."
            )
        return data

    def _write(self, data: Dict[str, List[StoredMessage]]) -> None:
        try:
            atomic_write_json(self.path, data)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(f"Failed to write message store {self.path}: {e}") from e


def make_store(cfg: Optional[Dict[str, Any]] = None) -> MessageStore:
    """Create a MessageStore from a config dict (e.g., loaded YAML)."""
    mem_cfg = (cfg or {}).get("memory", {}) if isinstance(cfg, dict) else {}
    return MessageStore(str(mem_cfg.get("path") or "db.json"))
