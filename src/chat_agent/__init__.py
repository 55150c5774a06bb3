"""Tool-calling chat agent with a durable JSON message store.

Typical usage
-------------
from chat_agent import MessageStore, ToolRegistry, create_from_config, load_config, run_agent

cfg = load_config()
history = run_agent(
    "What's the weather in Oslo?",
    llm=create_from_config(cfg),
    memory=MessageStore("db.json"),
    tools=ToolRegistry([...]),
)

or serve it over HTTP with the provided launcher:

python scripts/run_server.py --host 127.0.0.1 --port 8000
"""

from __future__ import annotations

from .agent import AgentLoopError, final_answer, run_agent
from .config import ConfigError, load_config
from .llm import ChatModel, create_from_config, message_from_reply
from .memory import MessageStore, PersistenceError, make_store
from .tools import Tool, ToolDescriptor, ToolRegistry

__all__ = [
    "AgentLoopError",
    "ChatModel",
    "ConfigError",
    "MessageStore",
    "PersistenceError",
    "Tool",
    "ToolDescriptor",
    "ToolRegistry",
    "create_from_config",
    "final_answer",
    "load_config",
    "make_store",
    "message_from_reply",
    "run_agent",
    "__version__",
    "get_version",
]

# ---------------------------------------------------------------------
# Version handling
# ---------------------------------------------------------------------
__version__ = "0.1.0"

def get_version() -> str:
    """Return the package version."""
    return __version__
