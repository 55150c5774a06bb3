"""Chat-completion client that injects the system prompt and offers tools to the model."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import httpx
from openai import OpenAI
from openai.types.chat import ChatCompletionMessage

from .config import get_system_prompt
from .tools import ToolDescriptor
from .typing import Message

logger = logging.getLogger(__name__)


# -----------------------------
# Types & defaults
# -----------------------------

MODELS = [
    "gpt-4o-mini",
    "mistral-nemo:latest",
    "nemotron-mini:latest",
    "codellama:13b",
    "llama3.1:latest",
]


@dataclass
class InvocationConfig:
    model: str = MODELS[1]
    temperature: float = 0.1


# -----------------------------
# Chat model
# -----------------------------

class ChatModel:
    """Thin wrapper around an OpenAI-compatible ``chat.completions`` endpoint.

    Every request carries the system prompt as its first message and uses a
    fixed tool policy: the model picks tools itself (``tool_choice="auto"``)
    and may request at most one per reply (``parallel_tool_calls=False``).
    """

    def __init__(
        self,
        client: Any,
        system_prompt: str,
        *,
        model: str = MODELS[1],
        temperature: float = 0.1,
    ) -> None:
        """
        Parameters
        ----------
        client : Any
            ``openai.OpenAI`` instance, or anything exposing
            ``client.chat.completions.create(**kwargs)``.
        system_prompt : str
            Prepended to every conversation sent to the model.
        model, temperature
            Defaults used when :meth:`invoke` is called without them.
        """
        self._client = client
        self.system_prompt = system_prompt
        self._defaults = InvocationConfig(model=model, temperature=float(temperature))

    def build_request(
        self,
        messages: Sequence[Message],
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        tools: Optional[Sequence[ToolDescriptor]] = None,
    ) -> Dict[str, Any]:
        """Keyword arguments for ``chat.completions.create``."""
        return {
            "model": model or self._defaults.model,
            "temperature": self._defaults.temperature if temperature is None else float(temperature),
            "messages": [{"role": "system", "content": self.system_prompt}, *messages],
            "tools": [t.to_llm_format() for t in tools or []],
            "tool_choice": "auto",
            "parallel_tool_calls": False,
        }

    def invoke(
        self,
        messages: Sequence[Message],
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        tools: Optional[Sequence[ToolDescriptor]] = None,
    ) -> ChatCompletionMessage:
        """Send the conversation and return the reply message of the first choice.

        The reply may hold text, a tool call, or both; interpreting it is up to
        the caller. Endpoint errors (``openai.APIError``) propagate unchanged.
        """
        kwargs = self.build_request(messages, model=model, temperature=temperature, tools=tools)
        if logger.isEnabledFor(logging.DEBUG):
            tool_names = [t["function"]["name"] for t in kwargs["tools"]]
            logger.debug(
                "Invoking %s with %d message(s), tools=%s",
                kwargs["model"], len(kwargs["messages"]), tool_names,
            )
        response = self._client.chat.completions.create(**kwargs)
        return response.choices[0].message


def message_from_reply(reply: Any) -> Message:
    """Turn an SDK reply message into a plain dict the store can persist."""
    if isinstance(reply, dict):
        return dict(reply)  # type: ignore[return-value]
    return reply.model_dump(exclude_none=True)


# -----------------------------
# Convenience factory
# -----------------------------

def create_client(model_cfg: Dict[str, Any]) -> OpenAI:
    api_key = model_cfg.get("api_key") or os.environ.get("OPENAI_API_KEY")
    base_url = model_cfg.get("base_url")
    if not api_key:
        # Local OpenAI-compatible servers accept any key, the SDK insists on one.
        if not base_url:
            raise RuntimeError("No model.api_key configured and OPENAI_API_KEY is not set.")
        api_key = "not-needed"
    timeout = float(model_cfg.get("timeout") or 60.0)
    return OpenAI(
        api_key=api_key,
        base_url=base_url,
        http_client=httpx.Client(timeout=timeout),
    )


def create_from_config(cfg: Dict[str, Any], client: Any = None) -> ChatModel:
    """Create ChatModel from a config dict (e.g., loaded YAML)."""
    model_cfg = (cfg or {}).get("model", {}) if isinstance(cfg, dict) else {}
    return ChatModel(
        client or create_client(model_cfg),
        get_system_prompt(cfg or {}),
        model=model_cfg.get("name") or MODELS[1],
        temperature=model_cfg.get("temperature", 0.1),
    )
