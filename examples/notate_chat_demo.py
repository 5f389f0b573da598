"""Minimal console demonstration of the NotateAI assistant.

Scripts are printed instead of evaluated, so no notation editor is needed.
"""

import asyncio
from pathlib import Path

from notate_ai import build_assistant, has_api_key, run_notate_chat


class PrintingEngine:
    def evaluate(self, script_path: Path) -> None:
        print("--- script ---")
        print(Path(script_path).read_text(encoding="utf-8"))


class ConsoleDocument:
    def has_active_document(self) -> bool:
        return True

    def begin_change(self) -> None:
        print("[begin change]")

    def end_change(self) -> None:
        print("[end change]")

    def rollback_change(self) -> None:
        print("[rollback change]")


if __name__ == "__main__":
    if not has_api_key():
        raise SystemExit("Set GEMINI_API_KEY in .env first")
    assistant = build_assistant(ConsoleDocument(), PrintingEngine())
    question = "Write a C major scale in quarter notes on the first staff"
    result = asyncio.run(run_notate_chat(assistant, question))
    print("User:", question)
    if result["ok"]:
        print("NotateAI:", result["reply_text"])
        for line in result["failure_messages"]:
            print("!", line)
    else:
        print("Error:", result["error"]["message"])
