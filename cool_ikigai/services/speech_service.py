# cool_ikigai/services/speech_service.py
"""
Speech output for Cool Ikigai.

- ElevenLabsService turns text into MP3 audio through the ElevenLabs API.
- SpeechSink is the contract the conversation session speaks through.
- ClientPlaybackSink queues audio for the browser and waits until the
  client reports that playback ended (or errored, or timed out).
"""
import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Dict, Any
import logging

import httpx

from cool_ikigai.core.config import settings
from cool_ikigai.core.service_base import BaseService, ServiceConfig
from cool_ikigai.core.exceptions import ConfigurationError, SpeechServiceError, ValidationError

logger = logging.getLogger(__name__)

ELEVENLABS_BASE_URL = "https://api.elevenlabs.io/v1"

VOICE_IDS: Dict[str, str] = {
    "rachel": "21m00Tcm4TlvDq8ikWAM",
    "antoni": "ErXwobaYiN019PkySvjV",
    "bella": "EXAVITQu4vr4xnSDxMaL",
    "josh": "TxGEqnHWrfWFTfGW9XjX",
}


@dataclass
class ElevenLabsConfig(ServiceConfig):
    """Configuration for the ElevenLabs text-to-speech service"""
    api_key: Optional[str] = None
    voice: str = "rachel"
    model_id: str = "eleven_multilingual_v2"
    stability: float = 0.5
    similarity_boost: float = 0.75
    timeout: float = 30.0
    base_url: str = ELEVENLABS_BASE_URL


class ElevenLabsService(BaseService[ElevenLabsConfig]):
    """Async text-to-speech client"""

    def __init__(
        self,
        config: Optional[ElevenLabsConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        if config is None:
            config = ElevenLabsConfig(
                api_key=settings.ELEVENLABS_API_KEY,
                voice=settings.ELEVENLABS_VOICE,
                model_id=settings.ELEVENLABS_MODEL
            )
        self._transport = transport

        super().__init__(config, logger)

    @property
    def enabled(self) -> bool:
        return bool(self.config.api_key)

    def _validate_config(self) -> None:
        super()._validate_config()

        if not self.config.api_key:
            raise ConfigurationError(
                component="elevenlabs",
                message="ElevenLabs API key is required. Set ELEVENLABS_API_KEY environment variable."
            )

    async def _initialize_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            transport=self._transport,
            headers={
                "xi-api-key": self.config.api_key,
                "Accept": "audio/mpeg",
                "Content-Type": "application/json",
            },
        )

    def resolve_voice_id(self, voice: Optional[str] = None) -> str:
        """Named voices map to their ids; anything else is taken as an id"""
        name = voice or self.config.voice
        return VOICE_IDS.get(name.lower(), name)

    async def synthesize(self, text: str, voice: Optional[str] = None) -> bytes:
        """
        Convert text to MP3 audio.

        Args:
            text: What Bob says
            voice: Voice name or id, defaults to the configured voice

        Returns:
            MP3 bytes

        Raises:
            ValidationError: If text is empty
            SpeechServiceError: If the API call fails
        """
        if not text or not text.strip():
            raise ValidationError(field="text", message="Text is required")

        await self.ensure_initialized()
        voice_id = self.resolve_voice_id(voice)

        payload = {
            "text": text,
            "model_id": self.config.model_id,
            "voice_settings": {
                "stability": self.config.stability,
                "similarity_boost": self.config.similarity_boost,
            },
        }

        try:
            response = await self.client.post(f"/text-to-speech/{voice_id}", json=payload)
        except httpx.HTTPError as e:
            self.logger.error(f"ElevenLabs request failed: {e}")
            raise SpeechServiceError(
                message=f"Text-to-speech request failed: {e}",
                voice=voice_id
            ) from e

        if response.status_code != 200:
            self.logger.error(f"ElevenLabs API error: {response.status_code} {response.text[:200]}")
            raise SpeechServiceError(
                message=f"ElevenLabs API error: {response.status_code}",
                voice=voice_id,
                status_code=response.status_code
            )

        return response.content

    async def health_check(self) -> Dict[str, Any]:
        return {
            "healthy": True,
            "status": "configured" if self.enabled else "disabled",
            "details": {"voice": self.config.voice, "model": self.config.model_id}
        }

    async def _cleanup(self) -> None:
        if self._client is not None:
            await self._client.aclose()


@dataclass
class AudioChunk:
    """One utterance waiting for the client. audio is None for browser speech."""
    text: str
    audio: Optional[bytes] = None
    media_type: str = "audio/mpeg"


class SpeechSink(ABC):
    """Where the session sends what Bob says"""

    @abstractmethod
    async def speak(self, text: str) -> None:
        """Render text as speech; returns when playback ended or errored"""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop any in-flight speech immediately"""
        pass

    def playback_ended(self) -> None:
        """Signal from the client that the current utterance finished"""
        pass


class ClientPlaybackSink(SpeechSink):
    """
    Speech sink for a browser client.

    speak() synthesizes audio when ElevenLabs is configured, queues it in
    the outbox and waits for playback_ended(). Without audio the chunk
    carries only text and the client uses its built-in speech synthesis.
    """

    def __init__(
        self,
        tts_service: Optional[ElevenLabsService] = None,
        playback_timeout: Optional[float] = None
    ):
        self.tts_service = tts_service
        self.playback_timeout = settings.SPEECH_PLAYBACK_TIMEOUT if playback_timeout is None else playback_timeout
        self.outbox: "asyncio.Queue[AudioChunk]" = asyncio.Queue()
        self._ended: Optional[asyncio.Event] = None

    async def speak(self, text: str) -> None:
        audio = None
        if self.tts_service is not None and self.tts_service.enabled:
            try:
                audio = await self.tts_service.synthesize(text)
            except SpeechServiceError as e:
                logger.warning(f"Falling back to client speech: {e}")

        ended = asyncio.Event()
        self._ended = ended
        self.outbox.put_nowait(AudioChunk(text=text, audio=audio))

        try:
            await asyncio.wait_for(ended.wait(), timeout=self.playback_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"No playback confirmation after {self.playback_timeout}s, releasing turn")
        finally:
            if self._ended is ended:
                self._ended = None

    def playback_ended(self) -> None:
        if self._ended is not None:
            self._ended.set()

    def stop(self) -> None:
        while not self.outbox.empty():
            self.outbox.get_nowait()
        if self._ended is not None:
            self._ended.set()

    def next_chunk(self) -> Optional[AudioChunk]:
        """Pop the next queued chunk for the client, if any"""
        try:
            return self.outbox.get_nowait()
        except asyncio.QueueEmpty:
            return None
