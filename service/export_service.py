# service/export_service.py
import asyncio
import logging
from typing import Dict, Optional
from config.settings import settings
from core.archive_ingest import read_manifest
from core.export_transcoder import ExportArtifact, transcode
from core.variable_values import encode_values
from model.api import ExportRequest
from repository.archive_repository import ArchiveRepository
from util.enums import ExportNetwork
from util.errors import ProjectNotFound
from util.timing import timed

logger = logging.getLogger(__name__)


def ceiling_for(network: ExportNetwork) -> Optional[int]:
    ceilings: Dict[ExportNetwork, Optional[int]] = {
        ExportNetwork.MINTEGRAL: settings.EXPORT_CEILING_MINTEGRAL_BYTES,
        ExportNetwork.APPLOVIN: settings.EXPORT_CEILING_APPLOVIN_BYTES,
    }
    return ceilings.get(network)


class ExportService:
    """
    Builds a downloadable artifact from the original upload. Reads only the
    immutable archive, so concurrent exports need no coordination.
    """

    def __init__(self, archives: ArchiveRepository) -> None:
        self._archives = archives

    async def export(self, project_id: str, req: ExportRequest) -> ExportArtifact:
        archive = await self._archives.get(project_id)
        if archive is None:
            raise ProjectNotFound(project_id)

        manifest = await asyncio.to_thread(read_manifest, archive)
        values = manifest.default_values()
        if req.values:
            values.update(encode_values(manifest.by_name(), req.values))

        logger.info(
            "export.start project=%s network=%s bytes=%d",
            project_id,
            req.network.value,
            len(archive),
        )
        with timed(logger, "export.run", project=project_id, network=req.network.value):
            artifact = await asyncio.to_thread(
                transcode,
                archive,
                values,
                req.network,
                req.projectName,
                ceiling_for(req.network),
            )
        logger.info(
            "export.ok project=%s network=%s size=%d",
            project_id,
            req.network.value,
            artifact.size,
        )
        return artifact
