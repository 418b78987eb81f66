# service/project_service.py
import asyncio
import logging
from typing import Any, Dict
from uuid import uuid4
from fastapi import UploadFile
from pydantic import ValidationError
from config.settings import settings
from core.archive_ingest import IngestResult, ingest_archive, read_manifest
from core.variable_values import encode_values
from model.api import (
    LiveConfigAccepted,
    ReloadProjectResponse,
    UploadProjectResponse,
    VariablesResponse,
)
from model.variable import LiveConfig, Manifest
from repository.archive_repository import ArchiveRepository
from repository.blob_store import BlobStore
from service.live_config_writer import LiveConfigWriter
from util.constants import CONFIG_FILE
from util.errors import ProjectNotFound
from util.timing import timed

logger = logging.getLogger(__name__)


def preview_url(project_id: str, entry_path: str) -> str:
    return f"/{settings.PREVIEW_PREFIX.strip('/')}/{project_id}/{entry_path}"


class ProjectService:
    def __init__(
        self,
        blobs: BlobStore,
        archives: ArchiveRepository,
        live_writer: LiveConfigWriter,
    ) -> None:
        self._blobs = blobs
        self._archives = archives
        self._live = live_writer

    async def create_project(self, file: UploadFile) -> UploadProjectResponse:
        """
        Ingest first so a bad archive never leaves a half-created project,
        then persist the original and publish the preview files.
        Logs: project id, byte size, entry point (no payloads).
        """
        try:
            data = await file.read()
            await file.seek(0)
        except Exception:
            logger.error("upload.read.error")
            raise

        result = await asyncio.to_thread(ingest_archive, data)
        project_id = str(uuid4())
        try:
            await self._archives.put(project_id, data)
        except Exception:
            logger.error("upload.persist.error project=%s", project_id)
            raise
        await self._publish(project_id, result)

        logger.info(
            "upload.ok project=%s bytes=%d entry=%s",
            project_id,
            len(data),
            result.entry_path,
        )
        return UploadProjectResponse(
            projectId=project_id,
            entryPoint=result.entry_path,
            previewUrl=preview_url(project_id, result.entry_path),
            version=result.manifest.version,
            variables=result.manifest.variables,
            decompressionFallbacks=result.fallbacks,
        )

    async def reload(self, project_id: str) -> ReloadProjectResponse:
        """Full re-ingestion of the stored original (clear, then one put per entry)."""
        data = await self._original(project_id)
        result = await asyncio.to_thread(ingest_archive, data)
        self._live.cancel(project_id)
        await self._publish(project_id, result)
        await self._archives.touch(project_id)
        return ReloadProjectResponse(
            projectId=project_id,
            entryPoint=result.entry_path,
            previewUrl=preview_url(project_id, result.entry_path),
            files=len(result.entries),
        )

    async def _publish(self, project_id: str, result: IngestResult) -> None:
        # clear must land before any put; puts are independent of each other
        with timed(logger, "preview.publish", project=project_id, files=len(result.entries)):
            removed = await self._blobs.clear(project_id)
            await asyncio.gather(
                *(
                    self._blobs.put(project_id, path, f.data, f.content_type)
                    for path, f in result.entries.items()
                )
            )
            await self._blobs.set_entry_point(project_id, result.entry_path)
        logger.info(
            "preview.published project=%s files=%d cleared=%d",
            project_id,
            len(result.entries),
            removed,
        )

    async def _original(self, project_id: str) -> bytes:
        data = await self._archives.get(project_id)
        if data is None:
            raise ProjectNotFound(project_id)
        return data

    async def manifest(self, project_id: str) -> Manifest:
        data = await self._original(project_id)
        return await asyncio.to_thread(read_manifest, data)

    async def current_values(self, project_id: str, manifest: Manifest) -> Dict[str, str]:
        """
        Manifest defaults, overlaid with the stored live config, overlaid with
        any edit still waiting in the debounce window.
        """
        values = manifest.default_values()
        blob = await self._blobs.get(project_id, CONFIG_FILE)
        if blob is not None:
            try:
                live = LiveConfig.model_validate_json(blob.data).as_values()
            except ValidationError:
                logger.warning("live_config.unparseable project=%s", project_id)
                live = {}
            values.update({k: v for k, v in live.items() if k in values})
        pending = self._live.pending(project_id)
        if pending:
            values.update({k: v for k, v in pending.items() if k in values})
        return values

    async def get_variables(self, project_id: str) -> VariablesResponse:
        manifest = await self.manifest(project_id)
        return VariablesResponse(
            projectId=project_id,
            version=manifest.version,
            variables=manifest.variables,
            values=await self.current_values(project_id, manifest),
        )

    async def update_live_config(
        self, project_id: str, raw_values: Dict[str, Any]
    ) -> LiveConfigAccepted:
        manifest = await self.manifest(project_id)
        encoded = encode_values(manifest.by_name(), raw_values)
        merged = await self.current_values(project_id, manifest)
        merged.update(encoded)
        self._live.schedule(project_id, merged)
        logger.info(
            "live_config.scheduled project=%s changed=%d", project_id, len(encoded)
        )
        return LiveConfigAccepted(projectId=project_id, values=merged)

    async def delete(self, project_id: str) -> int:
        self._live.cancel(project_id)
        removed = await self._blobs.clear(project_id)
        removed += await self._archives.delete(project_id)
        logger.info("project.deleted project=%s keys=%d", project_id, removed)
        return removed
