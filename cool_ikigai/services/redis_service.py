# cool_ikigai/services/redis_service.py
"""
Persistence for finished calls and saved Ikigai results.

Redis is optional: without REDIS_URL, or when the server cannot be reached
at startup, every write is logged and reported as not stored.
"""
import json
import time
import redis.asyncio as redis
from typing import Optional, Dict, Any, List
from dataclasses import dataclass
from datetime import datetime, timezone
import logging

from cool_ikigai.core.config import settings
from cool_ikigai.core.service_base import BaseService, ServiceConfig
from cool_ikigai.core.exceptions import ValidationError
from cool_ikigai.models.flow_models import Message

logger = logging.getLogger(__name__)

CALL_HISTORY_KEY = "ikigai:call_history"
RESULT_KEY_PREFIX = "ikigai:result:"
RESULT_FIELDS = ("passions", "talents", "worldNeeds", "monetization")


@dataclass
class RedisConfig(ServiceConfig):
    url: Optional[str] = None
    socket_timeout: float = 5.0
    max_connections: int = 10
    health_check_interval: int = 30
    result_ttl_days: int = 15


class RedisService(BaseService[RedisConfig]):

    def __init__(self, config: Optional[RedisConfig] = None):
        super().__init__(config or RedisConfig(
            url=settings.REDIS_URL,
            result_ttl_days=settings.RESULT_TTL_DAYS
        ), logger)

    async def _initialize_client(self) -> Optional[redis.Redis]:
        if not self.config.url:
            self.logger.warning("REDIS_URL not set, calls and results will not be persisted")
            return None

        client = redis.from_url(
            self.config.url,
            decode_responses=True,
            socket_timeout=self.config.socket_timeout,
            max_connections=self.config.max_connections,
            health_check_interval=self.config.health_check_interval
        )
        try:
            await client.ping()
        except Exception as e:
            self.logger.error(f"Redis unreachable, persistence disabled: {e}")
            return None

        self.logger.info("Connected to Redis")
        return client

    def is_connected(self) -> bool:
        return self._client is not None

    async def append_call_history(self, messages: List[Message], date: Optional[datetime] = None) -> bool:
        """
        Push one finished call ({messages, date}) onto the history list.

        Returns:
            False when Redis is disabled or the write failed
        """
        await self.ensure_initialized()
        if not self._client:
            self.logger.debug("Redis disabled, call history dropped")
            return False

        entry = {
            "messages": [message.model_dump(mode="json") for message in messages],
            "date": (date or datetime.now(timezone.utc)).isoformat(),
        }
        try:
            await self._client.rpush(CALL_HISTORY_KEY, json.dumps(entry, ensure_ascii=False))
        except Exception as e:
            self.logger.error(f"Could not append to {CALL_HISTORY_KEY}: {e}")
            return False
        return True

    async def get_call_history(self) -> List[Dict[str, Any]]:
        await self.ensure_initialized()
        if not self._client:
            return []

        try:
            return [json.loads(entry) for entry in await self._client.lrange(CALL_HISTORY_KEY, 0, -1)]
        except Exception as e:
            self.logger.warning(f"Could not read {CALL_HISTORY_KEY}: {e}")
            return []

    async def save_ikigai_result(self, data: Dict[str, Any]) -> str:
        """
        Store a result under a millisecond-timestamp id for RESULT_TTL_DAYS.

        The id is returned even when nothing could be stored.

        Raises:
            ValidationError: One of the four domains is missing
        """
        missing = [field for field in RESULT_FIELDS if not data.get(field)]
        if missing:
            raise ValidationError("Missing required fields", field=", ".join(missing))

        result_id = str(int(time.time() * 1000))

        await self.ensure_initialized()
        if not self._client:
            self.logger.warning(f"Ikigai result {result_id} not persisted, Redis disabled")
            return result_id

        ttl = self.config.result_ttl_days * 24 * 60 * 60
        try:
            await self._client.setex(f"{RESULT_KEY_PREFIX}{result_id}", ttl, json.dumps(data, ensure_ascii=False))
        except Exception as e:
            self.logger.error(f"Could not store Ikigai result {result_id}: {e}")
        else:
            self.logger.info(f"Ikigai result {result_id} kept for {self.config.result_ttl_days} days")

        return result_id

    async def health_check(self) -> Dict[str, Any]:
        if not self.config.url:
            return {"healthy": True, "status": "disabled", "details": {}}

        await self.ensure_initialized()
        if not self._client:
            return {"healthy": False, "status": "disconnected", "details": {}}

        started = time.monotonic()
        try:
            await self._client.ping()
        except Exception as e:
            return {"healthy": False, "status": "error", "details": {"error": str(e)}}

        return {
            "healthy": True,
            "status": "connected",
            "details": {"latency_ms": int((time.monotonic() - started) * 1000)}
        }

    async def _cleanup(self) -> None:
        if self._client:
            await self._client.aclose()
