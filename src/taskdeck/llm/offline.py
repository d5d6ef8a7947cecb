# src/taskdeck/llm/offline.py

from __future__ import annotations

from collections.abc import Iterable

from ..core.ports import ChatMessage


class OfflineLLMClient:
    """
    Deterministic client used when no completion service is configured.

    Behavior:
    - command translation prompts -> "" (no suggestion)
    - normal chat -> a short notice that echoes the user message
    """

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        sp = (system_prompt or "").lower()

        if "translator from natural language" in sp:
            yield ""
            return

        user_text = ""
        for m in reversed(messages):
            if m["role"] == "user":
                user_text = m["content"]
                break

        yield (
            "Offline mode: no AI service is configured.\n"
            "Set TASKDECK_LLM_API_KEY (or OPENAI_API_KEY) to enable real responses.\n\n"
            f"You said: {user_text}"
        )
