"""Tool descriptors and a small registry that executes requested tool calls."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type, Union

import openai
from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ParametersSchema = Union[Type[BaseModel], Dict[str, Any]]


def _is_model(parameters: Any) -> bool:
    return isinstance(parameters, type) and issubclass(parameters, BaseModel)


@dataclass(frozen=True)
class ToolDescriptor:
    """Name + parameter schema of a capability the model may request.

    ``parameters`` is either a pydantic model class or a JSON-schema dict
    describing an object.
    """
    name: str
    parameters: ParametersSchema
    description: Optional[str] = None

    def to_llm_format(self) -> Dict[str, Any]:
        """Convert to the OpenAI-compatible tool definition."""
        if _is_model(self.parameters):
            return openai.pydantic_function_tool(
                self.parameters, name=self.name, description=self.description
            )  # type: ignore[return-value]

        function: Dict[str, Any] = {"name": self.name, "parameters": dict(self.parameters)}
        if self.description:
            function["description"] = self.description
        return {"type": "function", "function": function}


@dataclass
class Tool:
    """A registered tool: its descriptor plus the Python callable behind it."""
    name: str
    parameters: ParametersSchema
    function: Callable[..., Any]
    description: Optional[str] = None

    @property
    def descriptor(self) -> ToolDescriptor:
        return ToolDescriptor(self.name, self.parameters, self.description)


def serialize_result(result: Any) -> str:
    """Tool payloads are opaque to the store; everything non-text goes in as JSON."""
    if isinstance(result, str):
        return result
    if isinstance(result, BaseModel):
        return result.model_dump_json()
    return json.dumps(result, ensure_ascii=False, default=str)


class ToolRegistry:
    """Maps tool names to callables and runs the tool calls a reply asks for."""

    def __init__(self, tools: Optional[List[Tool]] = None) -> None:
        self.tools: Dict[str, Tool] = {}
        for tool in tools or []:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        if tool.name in self.tools:
            raise ValueError(f"Tool already registered: {tool.name!r}")
        self.tools[tool.name] = tool
        logger.debug("Registered tool: %s", tool.name)

    def descriptors(self) -> List[ToolDescriptor]:
        return [t.descriptor for t in self.tools.values()]

    def __contains__(self, name: object) -> bool:
        return name in self.tools

    def __len__(self) -> int:
        return len(self.tools)

    def run(self, tool_call: Any) -> str:
        """Execute one tool call from an assistant reply.

        Failures come back as an error string rather than an exception, so the
        model gets to see them as the tool's output on the next turn.
        """
        name = tool_call.function.name
        tool = self.tools.get(name)
        if tool is None:
            logger.error("Model requested unknown tool: %s", name)
            return f"Error: Unknown tool '{name}'"

        try:
            arguments = json.loads(tool_call.function.arguments or "{}")
        except json.JSONDecodeError as e:
            logger.error("Invalid JSON arguments for %s: %s", name, e)
            return f"Error: invalid arguments for {name}: {e}"
        if not isinstance(arguments, dict):
            return f"Error: arguments for {name} must be a JSON object"

        if _is_model(tool.parameters):
            try:
                arguments = tool.parameters.model_validate(arguments).model_dump()
            except ValidationError as e:
                logger.error("Argument validation failed for %s: %s", name, e)
                return f"Error: invalid arguments for {name}: {e}"

        try:
            result = tool.function(**arguments)
        except Exception as e:
            logger.exception("Tool execution error (%s)", name)
            return f"Error executing {name}: {e}"
        return serialize_result(result)
