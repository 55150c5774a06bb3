"""Send one message through the agent loop and print the final answer."""

from __future__ import annotations

import argparse
import logging
import os
import sys

SRC_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from chat_agent import (  # noqa: E402
    create_from_config,
    final_answer,
    load_config,
    make_store,
    run_agent,
)


def main() -> None:
    parser = argparse.ArgumentParser(description="Chat with the agent from the command line.")
    parser.add_argument("message", help="User message to send")
    parser.add_argument("--config", type=str, default=None, help="Path to a YAML config")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    cfg = load_config(args.config)
    history = run_agent(
        args.message,
        llm=create_from_config(cfg),
        memory=make_store(cfg),
        max_iterations=int(cfg["agent"]["max_iterations"]),
    )
    print(final_answer(history))


if __name__ == "__main__":
    main()
