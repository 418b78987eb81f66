# core/archive_ingest.py
import gzip
import io
import json
import logging
import zipfile
import zlib
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union
import brotli
from pydantic import ValidationError
from core.content_types import clean_path, content_type_for, declared_compression
from core.html_inject import inject_viewport_style
from model.variable import Manifest
from util.constants import CONFIG_FILE, DOCUMENT_SUFFIX, ENTRY_DOCUMENT
from util.enums import Compression
from util.errors import ArchiveUnreadable, ManifestInvalid, ManifestMissing, NoEntryPoint
from util.timing import timed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArchiveEntry:
    path: str
    payload: bytes
    compression: Compression


@dataclass(frozen=True)
class Decompressed:
    data: bytes


@dataclass(frozen=True)
class KeptOriginal:
    data: bytes
    reason: str


DecompressionOutcome = Union[Decompressed, KeptOriginal]


@dataclass(frozen=True)
class IngestedFile:
    data: bytes
    content_type: str
    outcome: Optional[DecompressionOutcome] = None  # None when not compressed

    @property
    def kept_original(self) -> bool:
        return isinstance(self.outcome, KeptOriginal)


@dataclass
class IngestResult:
    entry_path: str
    manifest: Manifest
    entries: Dict[str, IngestedFile] = field(default_factory=dict)

    @property
    def fallbacks(self) -> List[str]:
        """Paths whose payload could not be decompressed and was stored as-is."""
        return sorted(p for p, f in self.entries.items() if f.kept_original)


def open_archive(data: bytes) -> zipfile.ZipFile:
    try:
        return zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, ValueError) as e:
        raise ArchiveUnreadable(f"Uploaded file is not a readable zip archive: {e}")


def read_entries(zf: zipfile.ZipFile) -> List[ArchiveEntry]:
    out: List[ArchiveEntry] = []
    for info in zf.infolist():
        if info.is_dir():
            continue
        try:
            payload = zf.read(info)
        except (zipfile.BadZipFile, zlib.error, RuntimeError, EOFError) as e:
            raise ArchiveUnreadable(f"Cannot read {info.filename}: {e}")
        out.append(
            ArchiveEntry(
                path=info.filename,
                payload=payload,
                compression=declared_compression(info.filename),
            )
        )
    return out


def parse_manifest(raw: bytes) -> Manifest:
    try:
        return Manifest.model_validate(json.loads(raw.decode("utf-8-sig")))
    except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
        raise ManifestInvalid(f"{CONFIG_FILE} is not a valid manifest: {e}")


def decompress(entry: ArchiveEntry) -> DecompressionOutcome:
    """
    Decompress a declared-compressed entry. Any codec failure yields
    KeptOriginal carrying the untouched payload.
    """
    try:
        if entry.compression is Compression.GZIP:
            return Decompressed(gzip.decompress(entry.payload))
        if entry.compression is Compression.BROTLI:
            return Decompressed(brotli.decompress(entry.payload))
    except (OSError, EOFError, zlib.error, brotli.error) as e:
        return KeptOriginal(entry.payload, f"{type(e).__name__}: {e}")
    return Decompressed(entry.payload)


def select_entry_point(paths: Iterable[str]) -> str:
    """
    Root index.html first, then any */index.html, then any .html document.
    Within a tier the shallowest path wins and lexicographic order breaks
    ties, so the choice never depends on archive order.
    """
    ordered = sorted(paths, key=lambda p: (p.count("/"), p))
    if ENTRY_DOCUMENT in ordered:
        return ENTRY_DOCUMENT
    for p in ordered:
        if clean_path(p).endswith(ENTRY_DOCUMENT):
            return p
    for p in ordered:
        if clean_path(p).endswith(DOCUMENT_SUFFIX):
            return p
    raise NoEntryPoint()


def _ingest_entry(entry: ArchiveEntry) -> IngestedFile:
    ctype = content_type_for(entry.path)
    if entry.compression is Compression.NONE:
        return IngestedFile(entry.payload, ctype)

    outcome = decompress(entry)
    if isinstance(outcome, KeptOriginal):
        logger.warning(
            "ingest.decompress.fallback path=%s codec=%s reason=%s",
            entry.path,
            entry.compression.value,
            outcome.reason,
        )
    return IngestedFile(outcome.data, ctype, outcome)


def ingest_archive(data: bytes) -> IngestResult:
    """
    Unpack an uploaded build into {path: IngestedFile} plus its entry point.
    Blocking; callers on the event loop go through asyncio.to_thread.
    """
    with timed(logger, "ingest.archive", bytes=len(data)):
        with open_archive(data) as zf:
            try:
                zf.getinfo(CONFIG_FILE)
            except KeyError:
                raise ManifestMissing()
            entries = read_entries(zf)

        manifest: Optional[Manifest] = None
        files: Dict[str, IngestedFile] = {}
        for entry in entries:
            if entry.path == CONFIG_FILE:
                manifest = parse_manifest(entry.payload)
            files[entry.path] = _ingest_entry(entry)

        if manifest is None:
            raise ManifestMissing()

        entry_path = select_entry_point(files)
        page = files[entry_path]
        html = inject_viewport_style(page.data.decode("utf-8", errors="replace"))
        files[entry_path] = IngestedFile(html.encode("utf-8"), "text/html", page.outcome)

    result = IngestResult(entry_path=entry_path, manifest=manifest, entries=files)
    logger.info(
        "ingest.ok entries=%d entry=%s variables=%d fallbacks=%d",
        len(files),
        entry_path,
        len(manifest.variables),
        len(result.fallbacks),
    )
    return result


def read_manifest(data: bytes) -> Manifest:
    """Parse only the manifest of an archive (no entry decompression)."""
    with open_archive(data) as zf:
        try:
            raw = zf.read(CONFIG_FILE)
        except KeyError:
            raise ManifestMissing()
    return parse_manifest(raw)
