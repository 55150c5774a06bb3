from __future__ import annotations

import json
from pathlib import Path

import pytest
from pydantic import BaseModel

from chat_agent.agent import AgentLoopError, final_answer, run_agent
from chat_agent.llm import ChatModel
from chat_agent.memory import MessageStore
from chat_agent.tools import Tool, ToolRegistry


class CityArgs(BaseModel):
    city: str


def _weather(city: str) -> dict:
    return {"city": city, "temp_c": 21}


def test_plain_reply_is_stored(tmp_path: Path, fake_client, completion):
    memory = MessageStore(str(tmp_path / "db.json"))
    client = fake_client([completion(content="Hello!")])

    history = run_agent("Hi", llm=ChatModel(client, "sys"), memory=memory)

    assert history == [
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello!"},
    ]
    assert memory.get_all_messages() == history
    assert final_answer(history) == "Hello!"


def test_tool_call_loop_records_response_and_reinvokes(tmp_path: Path, fake_client, completion):
    memory = MessageStore(str(tmp_path / "db.json"))
    client = fake_client(
        [
            completion(tool_calls=[{"id": "call_42", "name": "weather", "arguments": '{"city": "Oslo"}'}]),
            completion(content="It is 21°C in Oslo."),
        ]
    )
    tools = ToolRegistry([Tool("weather", CityArgs, _weather)])

    history = run_agent("Weather in Oslo?", llm=ChatModel(client, "sys"), memory=memory, tools=tools)

    roles = [m["role"] for m in history]
    assert roles == ["user", "assistant", "tool", "assistant"]
    assert history[1]["tool_calls"][0]["id"] == "call_42"
    assert history[2]["tool_call_id"] == "call_42"
    assert json.loads(history[2]["content"]) == {"city": "Oslo", "temp_c": 21}
    assert final_answer(history) == "It is 21°C in Oslo."

    # The second request sees the tool result as context, and every request
    # offers the tool under the fixed call policy.
    assert len(client.calls) == 2
    second = client.calls[1]["messages"]
    assert second[0]["role"] == "system"
    assert second[-1] == history[2]
    for call in client.calls:
        assert [t["function"]["name"] for t in call["tools"]] == ["weather"]
        assert call["tool_choice"] == "auto"
        assert call["parallel_tool_calls"] is False


def test_history_from_earlier_runs_is_sent(tmp_path: Path, fake_client, completion):
    memory = MessageStore(str(tmp_path / "db.json"))
    memory.append_messages([{"role": "user", "content": "old"}, {"role": "assistant", "content": "older"}])
    client = fake_client([completion(content="new")])

    run_agent("again", llm=ChatModel(client, "sys"), memory=memory)

    sent = client.calls[0]["messages"]
    assert [m["content"] for m in sent] == ["sys", "old", "older", "again"]


def test_iteration_limit(tmp_path: Path, fake_client, completion):
    memory = MessageStore(str(tmp_path / "db.json"))
    looping = [
        completion(tool_calls=[{"id": f"call_{i}", "name": "weather", "arguments": '{"city": "X"}'}])
        for i in range(3)
    ]
    client = fake_client(looping)
    tools = ToolRegistry([Tool("weather", CityArgs, _weather)])

    with pytest.raises(AgentLoopError):
        run_agent("loop", llm=ChatModel(client, "sys"), memory=memory, tools=tools, max_iterations=3)

    # Everything up to the limit is still on record.
    assert [m["role"] for m in memory.get_all_messages()] == ["user"] + ["assistant", "tool"] * 3


def test_final_answer_without_assistant():
    assert final_answer([{"role": "user", "content": "x"}]) == ""
