# service/live_config_writer.py
import asyncio
import logging
from typing import Dict, Optional
from config.settings import settings
from model.variable import LiveConfig
from repository.blob_store import BlobStore
from repository.reload_channel import ReloadChannel
from util.constants import CONFIG_FILE

logger = logging.getLogger(__name__)


class LiveConfigWriter:
    """
    Debounced write-then-reload cycle for live variable edits.

    Every schedule() call replaces the pending values for the project and
    restarts its quiet window; only when the window elapses without another
    edit is the live config written to the BlobStore and one reload published.
    """

    def __init__(
        self,
        blobs: BlobStore,
        reloads: ReloadChannel,
        debounce_seconds: float = settings.live_reload_debounce_seconds,
    ) -> None:
        self._blobs = blobs
        self._reloads = reloads
        self._debounce = debounce_seconds
        self._pending: Dict[str, asyncio.Task] = {}
        self._latest: Dict[str, Dict[str, str]] = {}

    def schedule(self, project_id: str, values: Dict[str, str]) -> None:
        previous = self._pending.get(project_id)
        if previous is not None and not previous.done():
            previous.cancel()
            logger.debug("live_config.coalesced project=%s", project_id)
        self._latest[project_id] = dict(values)
        snapshot = LiveConfig.from_values(dict(values))
        task = asyncio.create_task(self._run(project_id, snapshot))
        self._pending[project_id] = task
        task.add_done_callback(lambda t, pid=project_id: self._forget(pid, t))

    def _forget(self, project_id: str, task: asyncio.Task) -> None:
        if self._pending.get(project_id) is task:
            del self._pending[project_id]
            self._latest.pop(project_id, None)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "live_config.cycle.error project=%s err=%s",
                project_id,
                type(task.exception()).__name__,
            )

    async def _run(self, project_id: str, snapshot: LiveConfig) -> int:
        await asyncio.sleep(self._debounce)
        return await self.write_now(project_id, snapshot)

    async def write_now(self, project_id: str, snapshot: LiveConfig) -> int:
        """Write the live config document and publish one reload; returns the revision."""
        payload = snapshot.model_dump_json().encode("utf-8")
        await self._blobs.put(project_id, CONFIG_FILE, payload, "application/json")
        rev = await self._reloads.publish(project_id)
        logger.info(
            "live_config.written project=%s variables=%d revision=%d",
            project_id,
            len(snapshot.variables),
            rev,
        )
        return rev

    async def flush(self, project_id: str) -> Optional[int]:
        """Wait for the pending cycle of a project (if any) and return its revision."""
        task = self._pending.get(project_id)
        if task is None:
            return None
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            # Superseded while waiting; follow the newest cycle instead
            return await self.flush(project_id)

    def pending(self, project_id: str) -> Optional[Dict[str, str]]:
        """Values scheduled but not yet written, if a cycle is waiting."""
        latest = self._latest.get(project_id)
        return dict(latest) if latest is not None else None

    def cancel(self, project_id: str) -> None:
        self._latest.pop(project_id, None)
        task = self._pending.pop(project_id, None)
        if task is not None:
            task.cancel()

    async def close(self) -> None:
        tasks = list(self._pending.values())
        self._pending.clear()
        self._latest.clear()
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
