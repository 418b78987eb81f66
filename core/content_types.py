# core/content_types.py
from typing import Final, Optional, Tuple
from util.constants import OCTET_STREAM
from util.enums import Compression

COMPRESSION_SUFFIXES: Final[Tuple[Tuple[str, Compression], ...]] = (
    (".gz", Compression.GZIP),
    (".br", Compression.BROTLI),
)

# Ingest-time classification, applied to the cleaned path.
_INGEST_TYPES: Final[Tuple[Tuple[str, str], ...]] = (
    (".html", "text/html"),
    (".js", "application/javascript"),
    (".css", "text/css"),
    (".png", "image/png"),
    (".jpg", "image/jpeg"),
    (".wasm", "application/wasm"),
    (".json", "application/json"),
    (".data", OCTET_STREAM),
)

# Serve-time override for WebGL artifacts; matches still-compressed names too.
_SERVE_OVERRIDES: Final[Tuple[Tuple[Tuple[str, ...], str], ...]] = (
    ((".html",), "text/html"),
    ((".js", ".js.gz", ".js.br"), "application/javascript"),
    ((".wasm", ".wasm.gz", ".wasm.br"), "application/wasm"),
    ((".data", ".data.gz", ".data.br"), OCTET_STREAM),
    ((".json",), "application/json"),
    ((".css",), "text/css"),
)


def declared_compression(path: str) -> Compression:
    for suffix, kind in COMPRESSION_SUFFIXES:
        if path.endswith(suffix):
            return kind
    return Compression.NONE


def clean_path(path: str) -> str:
    """Strip one trailing compression suffix: 'Build/a.wasm.gz' -> 'Build/a.wasm'."""
    for suffix, _ in COMPRESSION_SUFFIXES:
        if path.endswith(suffix):
            return path[: -len(suffix)]
    return path


def content_type_for(path: str) -> str:
    cleaned = clean_path(path)
    for suffix, ctype in _INGEST_TYPES:
        if cleaned.endswith(suffix):
            return ctype
    return OCTET_STREAM


def serve_override(path: str) -> Optional[str]:
    for suffixes, ctype in _SERVE_OVERRIDES:
        if path.endswith(suffixes):
            return ctype
    return None


def serve_content_type(path: str, stored_type: Optional[str]) -> str:
    return serve_override(path) or stored_type or OCTET_STREAM
