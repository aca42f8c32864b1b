"""Upstream chat completion client.

The orchestrator only depends on ``ChatCompletionClient``; the OpenAI
implementation is the production binding.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List

import structlog
from openai import APIError, APITimeoutError

from api.features.chat.exceptions import UpstreamUnavailableError
from infra.resources import OpenAIResource

logger = structlog.get_logger("chatbot.chat.client")

ChatMessagePayload = Dict[str, str]


class ChatCompletionClient(ABC):
    """Given a model and messages, return a completion.

    The completion exposes ``choices[i].message.content`` in the OpenAI shape.
    """

    @abstractmethod
    async def create_chat_completion(
        self, model: str, messages: List[ChatMessagePayload]
    ) -> Any:
        ...


class OpenAIChatClient(ChatCompletionClient):
    """Chat completions through the shared AsyncOpenAI client."""

    def __init__(self, openai_resource: OpenAIResource):
        self.openai_resource = openai_resource

    async def create_chat_completion(
        self, model: str, messages: List[ChatMessagePayload]
    ) -> Any:
        client = self.openai_resource.get_client()
        try:
            return await client.chat.completions.create(model=model, messages=messages)
        except APITimeoutError as e:
            logger.error("openai_request_timed_out", model=model, error=str(e))
            raise UpstreamUnavailableError("Request timed out") from e
        except APIError as e:
            logger.error(
                "openai_request_failed",
                model=model,
                error_type=type(e).__name__,
                status_code=getattr(e, "status_code", None),
                error=str(e),
            )
            raise UpstreamUnavailableError("Request failed") from e
