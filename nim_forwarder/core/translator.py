# nim_forwarder/core/translator.py
import os
import time
import uuid
import logging
from typing import Callable, Dict, Any

from .config import DEFAULT_TEMPERATURE, DEFAULT_MAX_TOKENS
from .routing import ModelRouter
from nim_forwarder.models.api import (
    ChatCompletionRequest,
    ChatCompletionResponse,
    ChatChoice,
    ChatMessage,
    NimChatRequest,
    NimChatResponse,
    NimChoice,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(' ' * 5 + os.path.basename(__file__))

# Asks NIM chat templates to emit a reasoning trace alongside the answer
THINKING_EXTENSION: Dict[str, Any] = {"chat_template_kwargs": {"thinking": True}}

THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"


def _zero_usage() -> Dict[str, int]:
    return {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}


def generate_completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4().hex}"


class RequestTranslator:
    """Builds the NVIDIA NIM request payload from an OpenAI style request."""

    def __init__(self, router: ModelRouter, thinking_mode_enabled: bool = False):
        self.router = router
        self.thinking_mode_enabled = thinking_mode_enabled

    def build(self, request: ChatCompletionRequest) -> NimChatRequest:
        nim_model = self.router.resolve(request.model)
        if nim_model == self.router.default_model and request.model != nim_model:
            logger.info(f"No mapping for model '{request.model}', using default '{nim_model}'")

        # A falsy value (0, 0.0) falls back to the default, same as an omitted one
        return NimChatRequest(
            model=nim_model,
            messages=request.messages,
            temperature=request.temperature or DEFAULT_TEMPERATURE,
            max_tokens=request.max_tokens or DEFAULT_MAX_TOKENS,
            extra_body=dict(THINKING_EXTENSION) if self.thinking_mode_enabled else None,
        )


class ResponseTranslator:
    """
    Builds the OpenAI style response from a NIM response.
    Reasoning text is only surfaced when `reasoning_visible` is set, wrapped in think markers.
    """

    def __init__(
        self,
        reasoning_visible: bool = False,
        id_factory: Callable[[], str] = generate_completion_id,
        clock: Callable[[], float] = time.time,
    ):
        self.reasoning_visible = reasoning_visible
        self.id_factory = id_factory
        self.clock = clock

    def build(self, client_model: Any, upstream: NimChatResponse) -> ChatCompletionResponse:
        return ChatCompletionResponse(
            id=self.id_factory(),
            created=int(self.clock()),
            model=client_model,
            choices=[self._translate_choice(choice) for choice in upstream.choices],
            usage=upstream.usage if upstream.usage is not None else _zero_usage(),
        )

    def _translate_choice(self, choice: NimChoice) -> ChatChoice:
        message = choice.message
        content = message.content if message.content is not None else ""
        if self.reasoning_visible and message.reasoning_content:
            content = f"{THINK_OPEN}\n{message.reasoning_content}\n{THINK_CLOSE}\n\n{content}"

        return ChatChoice(
            index=choice.index,
            message=ChatMessage(role=message.role, content=content),
            finish_reason=choice.finish_reason,
        )
