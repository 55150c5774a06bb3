from typing import Any, List, TypedDict, NotRequired


class Message(TypedDict):
    """A single conversation turn as sent to the model endpoint."""

    role: str            # "system" | "user" | "assistant" | "tool"
    content: Any         # text, or an opaque serialized tool payload

    # Role-dependent fields
    tool_call_id: NotRequired[str]        # only for role == "tool"
    tool_calls: NotRequired[List[dict]]   # assistant turns that request tools
    name: NotRequired[str]


class StoredMessage(Message):
    """A Message as persisted in the store."""

    id: str              # uuid4, assigned once on first write
    createdAt: str       # ISO-8601 UTC timestamp, millisecond precision


METADATA_KEYS = ("id", "createdAt")
