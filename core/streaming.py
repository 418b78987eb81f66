# core/streaming.py
import json
import logging
from typing import AsyncIterator, Dict, Final, Optional
from model.api import StreamEvent
from repository.reload_channel import ReloadChannel

LINE_SEP: Final[str] = "\n"
logger = logging.getLogger(__name__)


def ndjson_line(obj: Dict[str, object]) -> bytes:
    return (json.dumps(obj, separators=(",", ":")) + LINE_SEP).encode("utf-8")


async def make_reload_stream(
    *,
    project_id: str,
    reloads: ReloadChannel,
    idle_timeout: Optional[float] = None,
) -> AsyncIterator[bytes]:
    """
    NDJSON feed for a preview frame:
      - one "hello" event carrying the current revision
      - a "reload" event per published live-config write
      - "done" when the feed ends (idle timeout or client gone)
    """
    current = await reloads.revision(project_id)
    yield ndjson_line(
        StreamEvent(
            type="hello", payload={"projectId": project_id, "revision": current}
        ).model_dump()
    )
    logger.info("reload.stream.start project=%s revision=%d", project_id, current)
    try:
        async for msg in reloads.listen(project_id, timeout=idle_timeout):
            yield ndjson_line(StreamEvent(type="reload", payload=msg).model_dump())
    finally:
        logger.info("reload.stream.end project=%s", project_id)
    yield ndjson_line(StreamEvent(type="done", payload={}).model_dump())
