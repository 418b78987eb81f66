# core/html_inject.py
import json
import re
from typing import Any, Final
from util.constants import CONFIG_GLOBAL

HEAD_CLOSE: Final[str] = "</head>"
_HEAD_OPEN_RE = re.compile(r"<head(?:\s[^>]*)?>", re.IGNORECASE)

# The generated WebGL page hardcodes a pixel resolution; force full viewport.
VIEWPORT_STYLE: Final[str] = """
<style>
    html, body { width: 100%; height: 100%; margin: 0; padding: 0; overflow: hidden; }
    #unity-container { width: 100% !important; height: 100% !important; position: absolute; top: 0; left: 0; }
    #unity-canvas { width: 100% !important; height: 100% !important; }
</style>
"""


def insert_before_head_close(html: str, snippet: str) -> str:
    """Insert before the first </head>, or prepend when the document has none."""
    if HEAD_CLOSE in html:
        return html.replace(HEAD_CLOSE, snippet + HEAD_CLOSE, 1)
    return snippet + html


def insert_after_head_open(html: str, snippet: str) -> str:
    m = _HEAD_OPEN_RE.search(html)
    if m is None:
        return snippet + html
    return html[: m.end()] + snippet + html[m.end():]


def script_json(obj: Any) -> str:
    """
    Deterministic JSON for embedding inside <script>: stable key order, compact
    separators, and '</' escaped so the payload cannot terminate the tag.
    """
    text = json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return (
        text.replace("</", "<\\/")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


def config_script(config: Any) -> str:
    return f"<script>{CONFIG_GLOBAL} = {script_json(config)};</script>"


def inject_viewport_style(html: str) -> str:
    return insert_before_head_close(html, VIEWPORT_STYLE)


def inject_config(html: str, config: Any) -> str:
    return insert_after_head_open(html, config_script(config))


def escape_inline_script(source: str) -> str:
    """Keep literal close-script sequences from ending an inline <script> early."""
    return re.sub(r"</(script)", r"<\\/\1", source, flags=re.IGNORECASE)
