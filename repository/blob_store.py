# repository/blob_store.py
from dataclasses import dataclass
from typing import List, Optional
from redis.asyncio import Redis
from config.cache import get_redis
from config.settings import settings
from repository.namespaces import PREVIEW_FILES, check_namespace

_DATA = b"data"
_TYPE = b"type"


def _text(raw) -> str:
    return raw.decode("utf-8") if isinstance(raw, (bytes, bytearray)) else str(raw)


@dataclass(frozen=True)
class StoredBlob:
    namespace: str
    path: str
    data: bytes
    content_type: str


class BlobStore:
    """
    Redis-backed preview files keyed by (namespace, path).

    Flow:
    - Each blob is one hash {data, type} written by a single HSET, so a reader
      sees either the previous blob, the new one, or nothing.
    - A per-namespace index set tracks paths so clear() never scans the keyspace.
    - The namespace's entry-point path lives next to the index and is cleared
      with it.
    """

    def __init__(self, ttl_seconds: int = settings.PERSISTENCE_TTL_SECONDS) -> None:
        self._ttl = int(ttl_seconds)

    @staticmethod
    async def _client() -> Redis:
        return await get_redis()

    @staticmethod
    def _key(namespace: str, path: str) -> str:
        return f"{PREVIEW_FILES}:{namespace}:file:{path}"

    @staticmethod
    def _index_key(namespace: str) -> str:
        return f"{PREVIEW_FILES}:{namespace}:index"

    @staticmethod
    def _entry_key(namespace: str) -> str:
        return f"{PREVIEW_FILES}:{namespace}:entry"

    # ---------------- Blobs ----------------

    async def put(
        self, namespace: str, path: str, data: bytes, content_type: str
    ) -> None:
        check_namespace(namespace)
        r = await self._client()
        key = self._key(namespace, path)
        index = self._index_key(namespace)
        async with r.pipeline(transaction=True) as pipe:
            pipe.hset(key, mapping={_DATA: data, _TYPE: content_type.encode("utf-8")})
            pipe.expire(key, self._ttl)
            pipe.sadd(index, path)
            pipe.expire(index, self._ttl)
            await pipe.execute()

    async def get(self, namespace: str, path: str) -> Optional[StoredBlob]:
        check_namespace(namespace)
        r = await self._client()
        h = await r.hgetall(self._key(namespace, path))
        if not h or _DATA not in h:
            return None
        ctype = h.get(_TYPE) or b""
        return StoredBlob(
            namespace=namespace,
            path=path,
            data=bytes(h[_DATA]),
            content_type=ctype.decode("utf-8"),
        )

    async def paths(self, namespace: str) -> List[str]:
        check_namespace(namespace)
        r = await self._client()
        members = await r.smembers(self._index_key(namespace))
        return sorted(_text(m) for m in members or [])

    async def clear(self, namespace: str) -> int:
        """Delete every blob of the namespace; returns the number of keys removed."""
        check_namespace(namespace)
        r = await self._client()
        index = self._index_key(namespace)

        async def _delete_indexed(pipe) -> None:
            # WATCH on the index: a put landing mid-clear aborts and retries
            members = await pipe.smembers(index)
            keys = [self._key(namespace, _text(m)) for m in members or []]
            keys += [index, self._entry_key(namespace)]
            pipe.multi()
            pipe.delete(*keys)

        results = await r.transaction(_delete_indexed, index)
        return int(results[0])

    # ---------------- Entry point ----------------

    async def set_entry_point(self, namespace: str, path: str) -> None:
        check_namespace(namespace)
        r = await self._client()
        await r.set(self._entry_key(namespace), path.encode("utf-8"), ex=self._ttl)

    async def get_entry_point(self, namespace: str) -> Optional[str]:
        check_namespace(namespace)
        r = await self._client()
        raw = await r.get(self._entry_key(namespace))
        if raw is None:
            return None
        return _text(raw)
