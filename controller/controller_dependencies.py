# controller/controller_dependencies.py
from fastapi import File, HTTPException, Request, UploadFile
from fastapi_limiter.depends import RateLimiter
from config.settings import settings
from repository.archive_repository import ArchiveRepository
from repository.blob_store import BlobStore
from repository.reload_channel import ReloadChannel
from service.export_service import ExportService
from service.live_config_writer import LiveConfigWriter
from service.project_service import ProjectService
from util.enums import ErrorMessage

# Shared instance so tests can swap it out through app.dependency_overrides
api_rate_limiter = RateLimiter(
    times=settings.RATE_LIMIT_TIMES, seconds=settings.RATE_LIMIT_SECONDS
)


def get_live_writer(request: Request) -> LiveConfigWriter:
    return request.app.state.live_writer


def get_project_service(request: Request) -> ProjectService:
    _blobs = BlobStore()
    _archives = ArchiveRepository()
    _service = ProjectService(_blobs, _archives, get_live_writer(request))
    return _service


def get_export_service() -> ExportService:
    return ExportService(ArchiveRepository())


def get_reload_channel() -> ReloadChannel:
    return ReloadChannel()


def _too_large() -> HTTPException:
    info = ErrorMessage.FILE_TOO_LARGE.value
    return HTTPException(
        status_code=info.http_status,
        detail={
            "ok": False,
            "error": info.code,
            "maxMb": settings.MAX_ARCHIVE_MB,
        },
    )


async def enforce_max_upload_size(
    request: Request, file: UploadFile = File(...)
) -> UploadFile:
    max_bytes = settings.max_archive_bytes
    # Fast pre-check via Content-Length if present
    cl = request.headers.get("content-length")
    if cl and cl.isdigit() and int(cl) > max_bytes:
        raise _too_large()

    # Hard cap while reading initial bytes (works even if no Content-Length)
    blob = await file.read(max_bytes + 1)
    if len(blob) > max_bytes:
        raise _too_large()

    # Reset so downstream can re-read file stream
    await file.seek(0)
    return file
