# controller/export_controller.py
from fastapi import APIRouter, Depends
from fastapi.responses import Response
from controller.controller_dependencies import api_rate_limiter, get_export_service
from model.api import ExportRequest
from service.export_service import ExportService
from util.constants import InternalURIs

export_router = APIRouter(dependencies=[Depends(api_rate_limiter)])


@export_router.post(InternalURIs.PROJECT_EXPORT)
async def export_project(
    project_id: str,
    payload: ExportRequest,
    service: ExportService = Depends(get_export_service),
) -> Response:
    artifact = await service.export(project_id, payload)
    return Response(
        content=artifact.data,
        media_type=artifact.media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{artifact.filename}"',
            "X-Export-Size": str(artifact.size),
            "X-Export-Network": artifact.network.value,
        },
    )
