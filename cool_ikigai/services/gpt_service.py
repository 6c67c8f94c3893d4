# cool_ikigai/services/gpt_service.py
"""
OpenAI chat completions for Bob's free chat, the conversation that happens
outside of the scripted Ikigai dialogue.
"""
from typing import Optional, Dict, Any, List
from dataclasses import dataclass
import logging
import time
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion

from cool_ikigai.core.config import settings
from cool_ikigai.core.service_base import BaseService, ServiceConfig
from cool_ikigai.core.exceptions import (
    GPTServiceError,
    ConfigurationError,
    ValidationError
)
from cool_ikigai.models.flow_models import Message, Sender

logger = logging.getLogger(__name__)

# Transcript entries sent with a free-chat request
MAX_HISTORY_MESSAGES = 20


@dataclass
class GPTConfig(ServiceConfig):
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    max_tokens: Optional[int] = None
    temperature: float = 0.7
    timeout: int = 30
    max_retries: int = 2


class GPTService(BaseService[GPTConfig]):
    """Async chat completion client; settings are used when no config is passed"""

    def __init__(self, config: Optional[GPTConfig] = None):
        super().__init__(config or GPTConfig(
            api_key=settings.OPENAI_API_KEY,
            model=settings.GPT_MODEL,
            temperature=settings.GPT_TEMPERATURE
        ), logger)

    def _validate_config(self) -> None:
        if not self.config.api_key:
            raise ConfigurationError(
                "OpenAI API key is required (OPENAI_API_KEY)",
                component="gpt_service"
            )
        if not 0 <= self.config.temperature <= 2:
            raise ConfigurationError(
                f"Temperature must be between 0 and 2, got {self.config.temperature}",
                component="gpt_service"
            )

    async def _initialize_client(self) -> AsyncOpenAI:
        return AsyncOpenAI(
            api_key=self.config.api_key,
            timeout=self.config.timeout,
            max_retries=self.config.max_retries
        )

    def _request_params(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float],
        max_tokens: Optional[int]
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "model": self.config.model,
            "messages": messages,
            "temperature": self.config.temperature if temperature is None else temperature,
        }
        if max_tokens or self.config.max_tokens:
            params["max_tokens"] = max_tokens or self.config.max_tokens
        return params

    async def _chat(
        self,
        messages: List[Dict[str, str]],
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> str:
        """Send one chat request and return the stripped reply text"""
        params = self._request_params(messages, temperature, max_tokens)
        self.logger.debug(f"Chat request: {len(messages)} messages to {params['model']}")

        try:
            response: ChatCompletion = await self.client.chat.completions.create(**params)
        except Exception as e:
            self.logger.error(f"Chat request to {params['model']} failed", exc_info=True)
            raise GPTServiceError(
                message=f"Failed to generate completion: {e}",
                model=self.config.model,
                original_error=e
            ) from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise GPTServiceError(message="Empty completion returned by the model", model=self.config.model)

        return content.strip()

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> str:
        """
        One-shot completion for a single prompt.

        Raises:
            ValidationError: Blank prompt
            GPTServiceError: The request failed or returned nothing
        """
        await self.ensure_initialized()

        if not prompt or not prompt.strip():
            raise ValidationError(field="prompt", message="Prompt cannot be empty")

        messages = [{"role": "system", "content": system_prompt}] if system_prompt else []
        messages.append({"role": "user", "content": prompt})
        return await self._chat(messages, temperature=temperature, max_tokens=max_tokens)

    async def get_answer(
        self,
        transcript: List[Message],
        system_prompt: Optional[str] = None
    ) -> str:
        """
        Bob's free-chat reply to the latest user message.

        Only the last MAX_HISTORY_MESSAGES transcript entries are sent; Bob's
        own lines go out with the assistant role.

        Raises:
            ValidationError: The transcript holds no user message
            GPTServiceError: The request failed or returned nothing
        """
        await self.ensure_initialized()

        if not any(message.sender == Sender.USER for message in transcript):
            raise ValidationError(field="transcript", message="Transcript contains no user message")

        messages = [{"role": "system", "content": system_prompt}] if system_prompt else []
        messages.extend(
            {"role": "user" if message.sender == Sender.USER else "assistant", "content": message.text}
            for message in transcript[-MAX_HISTORY_MESSAGES:]
        )
        return await self._chat(messages)

    async def health_check(self) -> Dict[str, Any]:
        started = time.monotonic()
        try:
            await self.complete("Réponds OK", temperature=0, max_tokens=5)
        except Exception as e:
            return {"healthy": False, "status": "error", "details": {"model": self.config.model, "error": str(e)}}

        return {
            "healthy": True,
            "status": "connected",
            "details": {
                "model": self.config.model,
                "latency_ms": int((time.monotonic() - started) * 1000)
            }
        }
