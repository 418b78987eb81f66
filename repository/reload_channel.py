# repository/reload_channel.py
import asyncio
import json
import logging
from typing import AsyncIterator, Dict, Optional
from redis.asyncio import Redis
from config.cache import get_redis
from config.settings import settings
from repository.namespaces import RELOADS, check_namespace

logger = logging.getLogger(__name__)


class ReloadChannel:
    """
    Flow:
    - publish() bumps a per-project revision counter and broadcasts it on a
      Redis pub/sub channel.
    - Preview frames (through the reload-events stream) re-request their
      entry document when a new revision arrives.
    """

    def __init__(self, ttl_seconds: int = settings.PERSISTENCE_TTL_SECONDS) -> None:
        self._ttl = int(ttl_seconds)

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @staticmethod
    def _channel(project_id: str) -> str:
        return f"{RELOADS}:{check_namespace(project_id)}:events"

    @staticmethod
    def _revision_key(project_id: str) -> str:
        return f"{RELOADS}:{check_namespace(project_id)}:revision"

    async def revision(self, project_id: str) -> int:
        r = await self._client()
        raw = await r.get(self._revision_key(project_id))
        return int(raw or 0)

    async def publish(self, project_id: str) -> int:
        r = await self._client()
        rev = int(await r.incr(self._revision_key(project_id)))
        await r.expire(self._revision_key(project_id), self._ttl)
        payload = json.dumps({"projectId": project_id, "revision": rev})
        receivers = await r.publish(self._channel(project_id), payload)
        logger.info(
            "reload.publish project=%s revision=%d receivers=%d",
            project_id,
            rev,
            int(receivers or 0),
        )
        return rev

    async def listen(
        self, project_id: str, *, timeout: Optional[float] = None
    ) -> AsyncIterator[Dict[str, object]]:
        """
        Yield each reload message for the project. With a timeout, stop after
        that many seconds pass without a message.
        """
        r = await self._client()
        pubsub = r.pubsub()
        await pubsub.subscribe(self._channel(project_id))
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        try:
            while True:
                wait = 1.0 if deadline is None else max(0.0, deadline - loop.time())
                # None also comes back for the swallowed subscribe confirmation
                msg = await pubsub.get_message(ignore_subscribe_messages=True, timeout=wait)
                if msg is None:
                    if deadline is not None and loop.time() >= deadline:
                        return
                    continue
                if timeout is not None:
                    deadline = loop.time() + timeout
                try:
                    yield json.loads(msg["data"])
                except (TypeError, ValueError):
                    logger.warning("reload.message.malformed project=%s", project_id)
        finally:
            await pubsub.unsubscribe(self._channel(project_id))
            await pubsub.aclose()
