# controller/project_controller.py
from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import StreamingResponse
from controller.controller_dependencies import (
    api_rate_limiter,
    enforce_max_upload_size,
    get_project_service,
    get_reload_channel,
)
from core.streaming import make_reload_stream
from model.api import (
    LiveConfigAccepted,
    LiveConfigRequest,
    ReloadProjectResponse,
    UploadProjectResponse,
    VariablesResponse,
)
from repository.namespaces import check_namespace
from repository.reload_channel import ReloadChannel
from service.project_service import ProjectService
from util.constants import InternalURIs

project_router = APIRouter(dependencies=[Depends(api_rate_limiter)])


@project_router.post(
    InternalURIs.PROJECTS,
    response_model=UploadProjectResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_max_upload_size)],
)
async def upload_project(
    file: UploadFile = File(...),
    service: ProjectService = Depends(get_project_service),
) -> UploadProjectResponse:
    return await service.create_project(file)


@project_router.post(InternalURIs.PROJECT_RELOAD, response_model=ReloadProjectResponse)
async def reload_project(
    project_id: str,
    service: ProjectService = Depends(get_project_service),
) -> ReloadProjectResponse:
    return await service.reload(project_id)


@project_router.get(InternalURIs.PROJECT_VARIABLES, response_model=VariablesResponse)
async def get_variables(
    project_id: str,
    service: ProjectService = Depends(get_project_service),
) -> VariablesResponse:
    return await service.get_variables(project_id)


@project_router.put(
    InternalURIs.PROJECT_LIVE_CONFIG,
    response_model=LiveConfigAccepted,
    status_code=status.HTTP_202_ACCEPTED,
)
async def update_live_config(
    project_id: str,
    payload: LiveConfigRequest,
    service: ProjectService = Depends(get_project_service),
) -> LiveConfigAccepted:
    return await service.update_live_config(project_id, payload.values)


@project_router.get(InternalURIs.PROJECT_RELOAD_EVENTS)
async def reload_events(
    project_id: str,
    reloads: ReloadChannel = Depends(get_reload_channel),
):
    check_namespace(project_id)
    generator = make_reload_stream(project_id=project_id, reloads=reloads)
    return StreamingResponse(generator, media_type="application/x-ndjson")


@project_router.delete(InternalURIs.PROJECT)
async def delete_project(
    project_id: str,
    service: ProjectService = Depends(get_project_service),
):
    removed = await service.delete(project_id)
    return {"ok": True, "removed": removed}
