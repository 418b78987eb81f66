# util/enums.py
from enum import Enum
from typing import NamedTuple
from fastapi import status


class Color(str, Enum):
    RESET = "\033[0m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    BLUE = "\033[34m"

    def __str__(self):
        return self.value


class Environment(str, Enum):
    DEV = "dev"
    PROD = "prod"


class ErrorInfo(NamedTuple):
    code: str
    message: str
    http_status: int


class ErrorMessage(Enum):
    MANIFEST_MISSING = ErrorInfo(
        "manifest_missing",
        "homa_config.json not found in archive",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    MANIFEST_INVALID = ErrorInfo(
        "manifest_invalid",
        "homa_config.json is not a valid manifest",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    ARCHIVE_UNREADABLE = ErrorInfo(
        "archive_unreadable",
        "Uploaded file is not a readable zip archive",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    NO_ENTRY_POINT = ErrorInfo(
        "no_entry_point",
        "No index.html found",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    MISSING_BUILD_ARTIFACT = ErrorInfo(
        "missing_build_artifact",
        "Missing WebGL build files",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    EXPORT_SIZE_EXCEEDED = ErrorInfo(
        "export_size_exceeded",
        "Export exceeds the size limit",
        status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    )
    INVALID_NAMESPACE = ErrorInfo(
        "invalid_namespace", "Invalid project id", status.HTTP_400_BAD_REQUEST
    )
    INVALID_VARIABLE = ErrorInfo(
        "invalid_variable",
        "Invalid variable value",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    PROJECT_NOT_FOUND = ErrorInfo(
        "project_not_found", "Unknown or expired project", status.HTTP_404_NOT_FOUND
    )
    FILE_TOO_LARGE = ErrorInfo(
        "file_too_large",
        "Uploaded archive is too large",
        status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    )
    INTERNAL_ERROR = ErrorInfo(
        "internal_error", "Internal Error", status.HTTP_500_INTERNAL_SERVER_ERROR
    )


class Compression(str, Enum):
    NONE = "none"
    GZIP = "gzip"
    BROTLI = "brotli"


class ExportNetwork(str, Enum):
    MINTEGRAL = "mintegral"
    APPLOVIN = "applovin"
