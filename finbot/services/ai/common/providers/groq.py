"""Groq provider (OpenAI-compatible API)."""

from __future__ import annotations

from .chat_completions import ChatCompletionsProvider


class GroqProvider(ChatCompletionsProvider):
    name = "groq"
    endpoint = "https://api.groq.com/openai/v1/chat/completions"
    default_model = "llama-3.3-70b-versatile"
