"""
Google Gemini chat-completion client.

Wraps ChatGoogleGenerativeAI with a per-call timeout. No retries: retry
policy belongs to callers.

Dependencies: langchain_google_genai, langchain_core
System role: Completion adapter
"""

import asyncio
import logging

from langchain_core.messages import HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from docrag.boundary.llm.base import describe_upstream_error
from docrag.configs.llm import LLMSettings
from docrag.core.exceptions import CompletionServiceError

logger = logging.getLogger(__name__)


class GeminiCompletionClient:
    """Async completion client backed by Google Gemini."""

    def __init__(
        self,
        settings: LLMSettings | None = None,
        model: ChatGoogleGenerativeAI | None = None,
    ) -> None:
        """
        Initialize the Gemini chat client.

        Args:
            settings: LLM settings (defaults loaded from environment)
            model: Pre-built LangChain chat model (for tests)
        """
        self._settings = settings or LLMSettings()
        if model is None:
            kwargs = {
                "model": self._settings.chat_model,
                "temperature": self._settings.temperature,
                "max_retries": 0,
            }
            if self._settings.api_key:
                kwargs["google_api_key"] = self._settings.api_key
            model = ChatGoogleGenerativeAI(**kwargs)
        self._model = model
        logger.info(f"{__name__}:__init__ - Initialized with model={self._settings.chat_model}")

    async def complete(self, prompt: str) -> str:
        """
        Send a prompt and return the generated text.

        Args:
            prompt: Fully assembled prompt

        Returns:
            str: Generated text

        Raises:
            CompletionServiceError: Upstream error, timeout, or empty response
        """
        try:
            response = await asyncio.wait_for(
                self._model.ainvoke([HumanMessage(content=prompt)]),
                timeout=self._settings.request_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise CompletionServiceError(
                f"Completion call timed out after {self._settings.request_timeout_seconds}s",
                status="timeout",
            ) from e
        except Exception as e:
            status, body = describe_upstream_error(e)
            logger.error(f"{__name__}:complete - {type(e).__name__}: status={status}")
            raise CompletionServiceError(
                f"Completion service failed: {type(e).__name__}",
                status=status,
                body=body,
            ) from e

        text = self._content_to_text(response.content)
        if not text.strip():
            raise CompletionServiceError("Completion service returned no text", body=repr(response)[:500])
        return text

    @staticmethod
    def _content_to_text(content: object) -> str:
        """Flatten LangChain message content (str or list of parts) to text."""
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            parts = []
            for part in content:
                if isinstance(part, str):
                    parts.append(part)
                elif isinstance(part, dict) and part.get("type", "text") == "text":
                    parts.append(str(part.get("text", "")))
            return "".join(parts)
        return str(content or "")
