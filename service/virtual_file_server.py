# service/virtual_file_server.py
import json
import logging
from typing import Optional, Tuple
from fastapi import FastAPI, status
from fastapi.responses import Response, PlainTextResponse
from config.settings import settings
from core.content_types import serve_content_type
from core.html_inject import inject_config
from repository.blob_store import BlobStore, StoredBlob
from util.constants import CONFIG_FILE, ENTRY_DOCUMENT
from util.errors import HomaError

logger = logging.getLogger(__name__)

NO_STORE = {"Cache-Control": "no-store"}


class PreviewRequestError(Exception):
    def __init__(self, message: str, http_status: int) -> None:
        super().__init__(message)
        self.message = message
        self.http_status = http_status


class VirtualFileServer:
    """
    Serves /<prefix>/<namespace>/<path> straight out of the BlobStore.

    One instance per process. install() puts it on app.state, replacing any
    previous instance without waiting for that one's requests to drain; the
    HTTP middleware looks the current instance up on every request, so
    in-flight traffic switches over as soon as claim() has run.
    """

    def __init__(self, blobs: BlobStore, prefix: str = settings.PREVIEW_PREFIX) -> None:
        self._blobs = blobs
        self._prefix = "/" + prefix.strip("/") + "/"
        self._active = False

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def active(self) -> bool:
        return self._active

    # ---------------- Lifecycle ----------------

    def install(self, app: FastAPI) -> "VirtualFileServer":
        previous: Optional[VirtualFileServer] = getattr(app.state, "file_server", None)
        app.state.file_server = self
        self.claim()
        if previous is not None and previous is not self:
            previous.retire()
        logger.info("preview.server.installed prefix=%s", self._prefix)
        return self

    def claim(self) -> None:
        self._active = True

    def retire(self) -> None:
        self._active = False
        logger.info("preview.server.retired prefix=%s", self._prefix)

    # ---------------- Routing ----------------

    def owns(self, path: str) -> bool:
        return path.startswith(self._prefix) or path == self._prefix.rstrip("/")

    def resolve(self, path: str) -> Tuple[str, str]:
        """'/preview/ns/Build/a.js' -> ('ns', 'Build/a.js')."""
        parts = path[len(self._prefix):].split("/") if self.owns(path) else []
        if len(parts) < 2 or not parts[0] or not "/".join(parts[1:]):
            raise PreviewRequestError("Invalid preview URL", status.HTTP_400_BAD_REQUEST)
        return parts[0], "/".join(parts[1:])

    # ---------------- Serving ----------------

    async def handle(self, path: str) -> Response:
        try:
            namespace, file_path = self.resolve(path)
        except PreviewRequestError as e:
            return PlainTextResponse(e.message, status_code=e.http_status, headers=NO_STORE)

        try:
            blob = await self._blobs.get(namespace, file_path)
            if blob is None:
                logger.warning("preview.miss ns=%s path=%s", namespace, file_path)
                return PlainTextResponse(
                    f"File not found: {file_path}",
                    status_code=status.HTTP_404_NOT_FOUND,
                    headers=NO_STORE,
                )

            body = blob.data
            if await self._is_entry_document(namespace, file_path):
                body = await self._with_live_config(namespace, blob)
        except HomaError as e:
            return PlainTextResponse(e.message, status_code=e.http_status, headers=NO_STORE)
        except Exception:
            logger.error("preview.error ns=%s path=%s", namespace, file_path, exc_info=True)
            return PlainTextResponse(
                "Internal Server Error",
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                headers=NO_STORE,
            )

        ctype = serve_content_type(file_path, blob.content_type)
        logger.debug("preview.serve ns=%s path=%s type=%s", namespace, file_path, ctype)
        # No Content-Encoding: stored bytes are already decoded (or kept raw on purpose).
        return Response(content=body, media_type=ctype, headers=NO_STORE)

    async def _is_entry_document(self, namespace: str, file_path: str) -> bool:
        entry = await self._blobs.get_entry_point(namespace)
        if entry is not None:
            return file_path == entry
        return file_path.endswith(ENTRY_DOCUMENT)

    async def _with_live_config(self, namespace: str, page: StoredBlob) -> bytes:
        cfg = await self._blobs.get(namespace, CONFIG_FILE)
        if cfg is None:
            logger.info("preview.config.absent ns=%s", namespace)
            return page.data
        try:
            config = json.loads(cfg.data.decode("utf-8-sig"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            logger.warning("preview.config.unparseable ns=%s", namespace)
            return page.data
        html = page.data.decode("utf-8", errors="replace")
        return inject_config(html, config).encode("utf-8")
