# repository/namespaces.py
import re
from typing import Final
from util.errors import InvalidNamespace

ROOT: Final[str] = "homa"

PROJECTS: Final[str] = f"{ROOT}:projects"
ARCHIVES: Final[str] = f"{PROJECTS}:archive"  # original uploaded zip per project
PREVIEW_FILES: Final[str] = f"{ROOT}:preview"  # per-project (namespace, path) blobs
RELOADS: Final[str] = f"{ROOT}:reload"  # pub/sub channels + revision counters

_NAMESPACE_RE = re.compile(r"^[A-Za-z0-9_.-]{1,128}$")


def check_namespace(namespace: str) -> str:
    # ':' would let one namespace's key prefix cover another's
    if not namespace or not _NAMESPACE_RE.match(namespace):
        raise InvalidNamespace(f"Invalid project id: {namespace!r}")
    return namespace
