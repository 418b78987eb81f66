# core/export_transcoder.py
"""
Re-packages an original build archive for a specific ad network.

All functions here are blocking and pure (bytes in, artifact out); the export
service runs them in a worker thread.
"""
import base64
import gzip
import io
import logging
import posixpath
import re
import zipfile
import zlib
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from core.archive_ingest import open_archive, select_entry_point
from core.html_inject import escape_inline_script, insert_before_head_close, script_json
from core.shims import mintegral_shim, mraid_shim
from util.constants import BUILD_DIR
from util.enums import ExportNetwork
from util.errors import (
    ArchiveUnreadable,
    ExportSizeExceeded,
    MissingBuildArtifact,
    format_size,
)
from util.timing import timed

logger = logging.getLogger(__name__)

ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)

LOADER_SUFFIX = ".loader.js"
FRAMEWORK_SUFFIX = ".framework.js.gz"
WASM_SUFFIX = ".wasm.gz"
DATA_SUFFIX = ".data.gz"
REQUIRED_BUILD_SUFFIXES = (LOADER_SUFFIX, FRAMEWORK_SUFFIX, WASM_SUFFIX, DATA_SUFFIX)

MOBILE_META = """
    <meta name="viewport" content="width=device-width, initial-scale=1.0, maximum-scale=1.0, user-scalable=no">
    <meta name="apple-mobile-web-app-capable" content="yes">
    <meta name="mobile-web-app-capable" content="yes">
"""


@dataclass(frozen=True)
class ExportArtifact:
    network: ExportNetwork
    filename: str
    media_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def folder_name_for(project_name: Optional[str]) -> str:
    name = re.sub(r"[^A-Za-z0-9_-]+", "_", project_name or "").strip("_")
    return name or "playable"


def enforce_ceiling(network: ExportNetwork, size: int, ceiling: Optional[int]) -> None:
    if ceiling is not None and size > ceiling:
        logger.warning(
            "export.ceiling.exceeded network=%s size=%d ceiling=%d",
            network.value,
            size,
            ceiling,
        )
        raise ExportSizeExceeded(network.value, size, ceiling)


def safe_member_name(path: str) -> str:
    """
    Normalise an archive member name for re-rooting under the export folder.
    Absolute names and names that climb out with '..' are rejected.
    """
    name = posixpath.normpath(path.replace("\\", "/"))
    if name.startswith("/") or name == ".." or name.startswith("../") or name == ".":
        raise ArchiveUnreadable(f"Unsafe path in archive: {path}")
    return name


def _read_all(zf: zipfile.ZipFile) -> Dict[str, bytes]:
    return {
        safe_member_name(i.filename): zf.read(i)
        for i in zf.infolist()
        if not i.is_dir()
    }


# ---------------- Bundle-in-bundle (Mintegral) ----------------


def export_bundle_in_bundle(
    archive: bytes,
    values: Dict[str, Any],
    project_name: Optional[str] = None,
    ceiling: Optional[int] = None,
) -> ExportArtifact:
    """
    name.zip > name/ > name.html, with every other archive file copied under
    name/ untouched and the Mintegral shim injected into the document.
    """
    folder = folder_name_for(project_name)
    with open_archive(archive) as zf:
        files = _read_all(zf)

    entry = select_entry_point(files)
    html = files[entry].decode("utf-8", errors="replace")
    html = insert_before_head_close(html, mintegral_shim(values))
    doc_ext = entry.rsplit(".", 1)[-1] if "." in entry else "html"

    buf = io.BytesIO()
    with timed(logger, "export.mintegral.zip", files=len(files)):
        with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as out:
            _write(out, f"{folder}/{folder}.{doc_ext}", html.encode("utf-8"))
            for path in sorted(files):
                if path == entry:
                    continue
                _write(out, f"{folder}/{path}", files[path])

    data = buf.getvalue()
    enforce_ceiling(ExportNetwork.MINTEGRAL, len(data), ceiling)
    logger.info("export.mintegral.ok size=%s", format_size(len(data)))
    return ExportArtifact(ExportNetwork.MINTEGRAL, f"{folder}.zip", "application/zip", data)


def _write(zf: zipfile.ZipFile, name: str, data: bytes) -> None:
    info = zipfile.ZipInfo(name, date_time=ZIP_EPOCH)
    info.external_attr = 0o644 << 16
    zf.writestr(info, data, compress_type=zipfile.ZIP_DEFLATED, compresslevel=9)


# ---------------- Self-contained document (AppLovin) ----------------


def find_build_artifacts(paths: List[str]) -> Dict[str, str]:
    """
    Map each required suffix to one path under a Build/ directory. When several
    files share a suffix the lexicographically last one wins.
    """
    found: Dict[str, str] = {}
    for path in sorted(paths):
        if BUILD_DIR not in path:
            continue
        for suffix in REQUIRED_BUILD_SUFFIXES:
            if path.endswith(suffix):
                found[suffix] = path
    missing = [s for s in REQUIRED_BUILD_SUFFIXES if s not in found]
    if missing:
        raise MissingBuildArtifact(missing)
    return found


def check_gzip_artifact(path: str, data: bytes) -> bool:
    """
    Trial-decode a gzip artifact. A failure is logged and the bytes are still
    embedded as-is; the runtime decoder will surface the problem in-browser.
    """
    try:
        gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as e:
        logger.warning(
            "export.artifact.undecodable path=%s err=%s", path, type(e).__name__
        )
        return False
    return True


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def render_single_document(
    *,
    title: str,
    shim: str,
    loader_js: str,
    framework_b64: str,
    wasm_b64: str,
    data_b64: str,
) -> str:
    return f"""<!DOCTYPE html>
<html lang="en-us">
<head>
    <meta charset="utf-8">{MOBILE_META}
    <title>{title}</title>
    <style>
        html, body {{ margin: 0; padding: 0; width: 100%; height: 100%; overflow: hidden; background: #000; }}
        #unity-container {{ width: 100%; height: 100%; position: absolute; top: 0; left: 0; }}
        #unity-canvas {{ width: 100% !important; height: 100% !important; display: block; }}
    </style>
{shim}</head>
<body>
    <div id="unity-container">
        <canvas id="unity-canvas"></canvas>
    </div>
    <script>
{loader_js}
    </script>
    <script>
        async function decompressAsset(base64Data, mimeType) {{
            var binary = atob(base64Data);
            var bytes = new Uint8Array(binary.length);
            for (var i = 0; i < binary.length; i++) {{
                bytes[i] = binary.charCodeAt(i);
            }}
            var stream = new Blob([bytes]).stream().pipeThrough(new DecompressionStream('gzip'));
            var blob = await new Response(stream).blob();
            return URL.createObjectURL(blob.slice(0, blob.size, mimeType));
        }}

        (async function() {{
            try {{
                var urls = await Promise.all([
                    decompressAsset("{framework_b64}", "application/javascript"),
                    decompressAsset("{wasm_b64}", "application/wasm"),
                    decompressAsset("{data_b64}", "application/octet-stream")
                ]);
                var canvas = document.querySelector("#unity-canvas");
                var config = {{
                    frameworkUrl: urls[0],
                    codeUrl: urls[1],
                    dataUrl: urls[2],
                    streamingAssetsUrl: "StreamingAssets",
                    companyName: "Homa",
                    productName: {script_json(title)},
                    productVersion: "1.0"
                }};
                createUnityInstance(canvas, config).then(function(instance) {{
                    window.unityInstance = instance;
                }}).catch(function(message) {{
                    console.error('Unity Error: ' + message);
                }});
            }} catch (e) {{
                console.error('Failed to load playable: ' + e.message);
            }}
        }})();
    </script>
</body>
</html>
"""


def export_single_document(
    archive: bytes,
    values: Dict[str, Any],
    project_name: Optional[str] = None,
    ceiling: Optional[int] = None,
) -> ExportArtifact:
    """
    One HTML file embedding the loader inline and the framework/wasm/data
    payloads as base64 of their still-gzipped bytes.
    """
    title = folder_name_for(project_name)
    with open_archive(archive) as zf:
        paths = [i.filename for i in zf.infolist() if not i.is_dir()]
        artifacts = find_build_artifacts(paths)
        blobs: Dict[str, Tuple[str, bytes]] = {
            suffix: (path, zf.read(path)) for suffix, path in artifacts.items()
        }

    for suffix in (FRAMEWORK_SUFFIX, WASM_SUFFIX, DATA_SUFFIX):
        check_gzip_artifact(*blobs[suffix])

    loader_js = escape_inline_script(
        blobs[LOADER_SUFFIX][1].decode("utf-8", errors="replace")
    )
    with timed(logger, "export.applovin.encode"):
        html = render_single_document(
            title=title,
            shim=mraid_shim(values),
            loader_js=loader_js,
            framework_b64=_b64(blobs[FRAMEWORK_SUFFIX][1]),
            wasm_b64=_b64(blobs[WASM_SUFFIX][1]),
            data_b64=_b64(blobs[DATA_SUFFIX][1]),
        )

    data = html.encode("utf-8")
    enforce_ceiling(ExportNetwork.APPLOVIN, len(data), ceiling)
    logger.info("export.applovin.ok size=%s", format_size(len(data)))
    return ExportArtifact(ExportNetwork.APPLOVIN, f"{title}.html", "text/html", data)


_EXPORTERS = {
    ExportNetwork.MINTEGRAL: export_bundle_in_bundle,
    ExportNetwork.APPLOVIN: export_single_document,
}


def transcode(
    archive: bytes,
    values: Dict[str, Any],
    network: ExportNetwork,
    project_name: Optional[str] = None,
    ceiling: Optional[int] = None,
) -> ExportArtifact:
    try:
        exporter = _EXPORTERS[ExportNetwork(network)]
    except (KeyError, ValueError):
        raise ValueError(f"Unknown network: {network}")
    return exporter(archive, values, project_name=project_name, ceiling=ceiling)
