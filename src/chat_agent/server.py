"""FastAPI application exposing the agent loop and its stored history."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import openai
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .agent import AgentLoopError, final_answer, run_agent
from .config import load_config
from .llm import ChatModel, create_from_config
from .memory import MessageStore, PersistenceError, make_store
from .tools import ToolRegistry

logger = logging.getLogger(__name__)


# -----------------------------
# Pydantic request/response
# -----------------------------
class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1)


class ChatResponse(BaseModel):
    response: str
    messages: List[Dict[str, Any]]


# -----------------------------
# App factory
# -----------------------------
def create_app(
    config_path: Optional[str] = None,
    model: Optional[ChatModel] = None,
    memory: Optional[MessageStore] = None,
    tools: Optional[ToolRegistry] = None,
) -> FastAPI:
    cfg = load_config(config_path)

    # CORS
    cors_origins = cfg.get("server", {}).get("cors_origins", ["*"])
    max_iterations = int(cfg.get("agent", {}).get("max_iterations", 10))

    # Services
    if model is None:
        model = create_from_config(cfg)
    if memory is None:
        memory = make_store(cfg)
    if tools is None:
        tools = ToolRegistry()

    app = FastAPI(title="Chat Agent", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {
            "ok": True,
            "store": str(memory.path),
            "tools": sorted(tools.tools),
        }

    @app.get("/messages")
    def messages() -> List[Dict[str, Any]]:
        try:
            return memory.get_all_messages()
        except PersistenceError as e:
            raise HTTPException(status_code=500, detail=str(e))

    @app.post("/chat", response_model=ChatResponse)
    def chat(req: ChatRequest):
        msg = (req.message or "").strip()
        if not msg:
            raise HTTPException(status_code=400, detail="Message cannot be empty.")

        try:
            history = run_agent(msg, llm=model, memory=memory, tools=tools, max_iterations=max_iterations)
        except openai.APIError as e:
            logger.error("Model endpoint error: %s", e)
            raise HTTPException(status_code=502, detail=f"Model endpoint error: {e}")
        except (PersistenceError, AgentLoopError) as e:
            raise HTTPException(status_code=500, detail=str(e))

        return ChatResponse(response=final_answer(history), messages=history)

    return app
