# util/errors.py
from typing import Any, Dict, Iterable, Optional
from util.enums import ErrorMessage


class HomaError(Exception):
    """
    Base for domain failures raised by core/ and repository/.
    Each subclass maps to one ErrorMessage entry; `extra` is merged into the
    JSON envelope returned to the caller.
    """

    error: ErrorMessage = ErrorMessage.INTERNAL_ERROR

    def __init__(self, message: Optional[str] = None, **extra: Any) -> None:
        self.message = message or self.error.value.message
        self.extra: Dict[str, Any] = extra
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        return self.error.value.http_status

    def to_payload(self) -> Dict[str, Any]:
        return {
            "ok": False,
            "error": self.error.value.code,
            "message": self.message,
            **self.extra,
        }


class ManifestMissing(HomaError):
    error = ErrorMessage.MANIFEST_MISSING


class ManifestInvalid(HomaError):
    error = ErrorMessage.MANIFEST_INVALID


class ArchiveUnreadable(HomaError):
    error = ErrorMessage.ARCHIVE_UNREADABLE


class NoEntryPoint(HomaError):
    error = ErrorMessage.NO_ENTRY_POINT


class MissingBuildArtifact(HomaError):
    error = ErrorMessage.MISSING_BUILD_ARTIFACT

    def __init__(self, missing: Iterable[str]) -> None:
        missing = sorted(missing)
        super().__init__(
            "Missing WebGL build files: " + ", ".join(missing), missing=missing
        )


class ExportSizeExceeded(HomaError):
    error = ErrorMessage.EXPORT_SIZE_EXCEEDED

    def __init__(self, network: str, size: int, ceiling: int) -> None:
        self.network = network
        self.size = size
        self.ceiling = ceiling
        super().__init__(
            f"{network} export exceeds {format_size(ceiling)} limit. "
            f"Current size: {format_size(size)}",
            network=network,
            size=size,
            ceiling=ceiling,
        )


class InvalidNamespace(HomaError):
    error = ErrorMessage.INVALID_NAMESPACE


class VariableParseError(HomaError):
    error = ErrorMessage.INVALID_VARIABLE

    def __init__(self, name: str, var_type: str, raw: Any, reason: str) -> None:
        self.name = name
        self.var_type = var_type
        self.raw = raw
        self.reason = reason
        super().__init__(
            f"Invalid value for '{name}' ({var_type}): {reason}",
            variable=name,
            type=var_type,
        )


class ProjectNotFound(HomaError):
    error = ErrorMessage.PROJECT_NOT_FOUND

    def __init__(self, project_id: str) -> None:
        super().__init__(projectId=project_id)


def format_size(num_bytes: int) -> str:
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes / 1024:.2f} KB"
    return f"{num_bytes / (1024 * 1024):.2f} MB"
