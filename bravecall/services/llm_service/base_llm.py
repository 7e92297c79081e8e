"""Base LLM interface and implementations.

Every pipeline stage talks to the model through `BaseLLM.generate`:
chat messages in, text out, exceptions on failure. What a failure means
for the turn is decided by the calling stage, not here.
"""

import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

import aiohttp
import openai

logger = logging.getLogger(__name__)

MAX_PROMPT_CHARS = 10000


class LLMProvider(Enum):
    """Supported LLM providers."""
    OPENAI = "openai"
    HUGGINGFACE = "huggingface"


@dataclass(frozen=True)
class ChatMessage:
    """One chat message; role is "user" or "assistant"."""
    role: str
    content: str


@dataclass(frozen=True)
class LLMConfig:
    """Configuration for LLM inference."""
    provider: LLMProvider
    model_name: str
    endpoint: Optional[str] = None
    api_key: Optional[str] = None
    max_tokens: int = 512
    temperature: float = 0.7
    top_p: float = 0.9
    timeout_seconds: int = 30

    @classmethod
    def from_env(cls) -> "LLMConfig":
        """Create config from LLM_PROVIDER, LLM_MODEL, LLM_API_KEY, LLM_ENDPOINT."""
        return cls(
            provider=LLMProvider(os.getenv("LLM_PROVIDER", "openai")),
            model_name=os.getenv("LLM_MODEL", "gpt-4o-mini"),
            endpoint=os.getenv("LLM_ENDPOINT") or None,
            api_key=os.getenv("LLM_API_KEY") or None,
            timeout_seconds=int(os.getenv("LLM_TIMEOUT_SECONDS", "30")),
        )


@dataclass
class LLMResponse:
    """Response from LLM inference."""
    text: str
    model: str
    provider: str
    tokens_used: Optional[int] = None
    latency_ms: Optional[float] = None
    metadata: Optional[Dict] = None


class BaseLLM(ABC):
    """Abstract base class for LLM implementations."""

    def __init__(self, config: LLMConfig):
        self.config = config
        logger.info(
            "LLM_INITIALIZED",
            extra={
                "provider": config.provider.value,
                "model": config.model_name
            }
        )

    @abstractmethod
    async def generate(
        self,
        messages: List[ChatMessage],
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """Generate a reply to a chat.

        Args:
            messages: Chronological chat, current message last
            system_prompt: Optional system prompt
            json_mode: Ask the provider for a JSON object reply
            temperature: Per-call override of the configured temperature
            max_tokens: Per-call override of the configured token limit

        Returns:
            LLMResponse object

        Raises:
            ValueError: If the chat is empty or too long
            Exception: Any transport/provider error, after logging
        """
        pass

    def validate_messages(self, messages: List[ChatMessage]) -> bool:
        """Validate the chat before sending it to the provider."""
        if not messages or not messages[-1].content.strip():
            logger.warning("LLM_EMPTY_PROMPT")
            return False

        total = sum(len(m.content) for m in messages)
        if total > MAX_PROMPT_CHARS:
            logger.warning(
                "LLM_PROMPT_TOO_LONG",
                extra={"length": total}
            )
            return False

        return True


class OpenAILLM(BaseLLM):
    """OpenAI chat completions."""

    def __init__(self, config: LLMConfig):
        super().__init__(config)

        if not config.api_key:
            raise ValueError("OpenAI API key required")

        self.client = openai.AsyncOpenAI(api_key=config.api_key)

    async def generate(
        self,
        messages: List[ChatMessage],
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        if not self.validate_messages(messages):
            raise ValueError("Invalid prompt")

        payload = []
        if system_prompt:
            payload.append({"role": "system", "content": system_prompt})
        payload.extend({"role": m.role, "content": m.content} for m in messages)

        extra_args = {}
        if json_mode:
            extra_args["response_format"] = {"type": "json_object"}

        start_time = time.time()

        try:
            response = await self.client.chat.completions.create(
                model=self.config.model_name,
                messages=payload,
                max_tokens=max_tokens if max_tokens is not None else self.config.max_tokens,
                temperature=temperature if temperature is not None else self.config.temperature,
                top_p=self.config.top_p,
                timeout=self.config.timeout_seconds,
                **extra_args,
            )
        except Exception as e:
            logger.error(
                "OPENAI_GENERATION_FAILED",
                extra={
                    "model": self.config.model_name,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            raise

        latency_ms = (time.time() - start_time) * 1000
        generated_text = response.choices[0].message.content or ""
        tokens_used = response.usage.total_tokens if response.usage else None

        logger.info(
            "OPENAI_GENERATION_SUCCEEDED",
            extra={
                "model": self.config.model_name,
                "latency_ms": latency_ms,
                "tokens_used": tokens_used,
                "json_mode": json_mode,
            }
        )

        return LLMResponse(
            text=generated_text,
            model=self.config.model_name,
            provider=self.config.provider.value,
            tokens_used=tokens_used,
            latency_ms=latency_ms,
        )


class HuggingFaceLLM(BaseLLM):
    """HuggingFace text-generation inference endpoint.

    The endpoint takes a single prompt string, so the chat is flattened
    into "Child: ..." / "Friend: ..." lines.
    """

    def __init__(self, config: LLMConfig):
        super().__init__(config)

        if not config.endpoint:
            raise ValueError("HuggingFace endpoint required")

        self.endpoint = config.endpoint
        self.headers = {}

        if config.api_key:
            self.headers["Authorization"] = f"Bearer {config.api_key}"

    @staticmethod
    def flatten(
        messages: List[ChatMessage],
        system_prompt: Optional[str],
        json_mode: bool,
    ) -> str:
        lines = []
        if system_prompt:
            lines.append(system_prompt)
            lines.append("")
        for message in messages:
            speaker = "Child" if message.role == "user" else "Friend"
            lines.append(f"{speaker}: {message.content}")
        if json_mode:
            lines.append("")
            lines.append("Respond with a single JSON object only.")
        else:
            lines.append("Friend:")
        return "\n".join(lines)

    async def generate(
        self,
        messages: List[ChatMessage],
        system_prompt: Optional[str] = None,
        json_mode: bool = False,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        if not self.validate_messages(messages):
            raise ValueError("Invalid prompt")

        payload = {
            "inputs": self.flatten(messages, system_prompt, json_mode),
            "parameters": {
                "max_new_tokens": max_tokens if max_tokens is not None else self.config.max_tokens,
                # Inference endpoints reject temperature == 0
                "temperature": max(
                    temperature if temperature is not None else self.config.temperature, 0.01
                ),
                "top_p": self.config.top_p,
                "return_full_text": False
            }
        }

        start_time = time.time()

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.endpoint,
                    headers=self.headers,
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds)
                ) as response:
                    response.raise_for_status()
                    result = await response.json()
        except Exception as e:
            logger.error(
                "HUGGINGFACE_GENERATION_FAILED",
                extra={
                    "model": self.config.model_name,
                    "error": str(e),
                    "error_type": type(e).__name__,
                }
            )
            raise

        latency_ms = (time.time() - start_time) * 1000

        if isinstance(result, list) and len(result) > 0:
            generated_text = result[0].get("generated_text", "")
        else:
            generated_text = result.get("generated_text", "")

        logger.info(
            "HUGGINGFACE_GENERATION_SUCCEEDED",
            extra={
                "model": self.config.model_name,
                "latency_ms": latency_ms
            }
        )

        return LLMResponse(
            text=generated_text,
            model=self.config.model_name,
            provider=self.config.provider.value,
            latency_ms=latency_ms,
            metadata={"endpoint": self.endpoint}
        )


def create_llm(config: LLMConfig) -> BaseLLM:
    """Factory function to create LLM instance.

    Raises:
        ValueError: If provider not supported
    """
    if config.provider == LLMProvider.OPENAI:
        return OpenAILLM(config)
    elif config.provider == LLMProvider.HUGGINGFACE:
        return HuggingFaceLLM(config)
    else:
        raise ValueError(f"Unsupported provider: {config.provider}")
