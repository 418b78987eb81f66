# repository/archive_repository.py
from typing import Optional
from redis.asyncio import Redis
from config.cache import get_redis
from config.settings import settings
from repository.namespaces import ARCHIVES, check_namespace


class ArchiveRepository:
    """
    Redis-backed byte storage for the original uploaded archives keyed by
    project id. Export and full reloads read from here, never from the
    preview BlobStore.

    TTL is refreshed by touch(project_id) during active sessions.
    """

    def __init__(self, ttl_seconds: int = settings.PERSISTENCE_TTL_SECONDS) -> None:
        self._ttl = int(ttl_seconds)

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @staticmethod
    def _key(project_id: str) -> str:
        return f"{ARCHIVES}:{check_namespace(project_id)}"

    async def put(self, project_id: str, data: bytes) -> None:
        r = await self._client()
        await r.set(self._key(project_id), data, ex=self._ttl)

    async def get(self, project_id: str) -> Optional[bytes]:
        r = await self._client()
        raw = await r.get(self._key(project_id))
        return bytes(raw) if raw is not None else None

    async def touch(self, project_id: str) -> bool:
        r = await self._client()
        return bool(await r.expire(self._key(project_id), self._ttl))

    async def delete(self, project_id: str) -> int:
        r = await self._client()
        return int(await r.delete(self._key(project_id)))
