"""Tests for core/archive_ingest.py - unpacking uploaded builds."""

import gzip
import json
import logging

import brotli
import pytest

from conftest import WASM_PLAIN, make_manifest
from core.archive_ingest import (
    Decompressed,
    KeptOriginal,
    ingest_archive,
    read_manifest,
    select_entry_point,
)
from util.errors import ArchiveUnreadable, ManifestInvalid, ManifestMissing, NoEntryPoint


class TestIngestArchive:
    """Per-entry decoding and classification."""

    @pytest.mark.unit
    def test_uncompressed_entries_round_trip(self, zip_of):
        manifest = json.dumps({"version": "1", "variables": []}).encode()
        files = {
            "index.html": b"<html><head></head><body></body></html>",
            "Build/game.loader.js": b"var loader = 1;",
            "TemplateData/logo.png": bytes(range(256)),
            "homa_config.json": manifest,
        }
        result = ingest_archive(zip_of(files))

        assert result.entries["Build/game.loader.js"].data == b"var loader = 1;"
        assert result.entries["TemplateData/logo.png"].data == bytes(range(256))
        assert result.entries["homa_config.json"].data == manifest
        assert result.entries["TemplateData/logo.png"].outcome is None

    @pytest.mark.unit
    def test_gzip_entry_is_decompressed(self, build_zip):
        result = ingest_archive(build_zip())
        wasm = result.entries["Build/game.wasm.gz"]

        assert wasm.data == WASM_PLAIN
        assert isinstance(wasm.outcome, Decompressed)
        assert wasm.content_type == "application/wasm"

    @pytest.mark.unit
    def test_corrupt_gzip_keeps_original_bytes(self, build_zip):
        corrupt = b"\x1f\x8b\x08\x00not really gzip"
        result = ingest_archive(build_zip(extra={"Build/game.data.gz": corrupt}))
        data = result.entries["Build/game.data.gz"]

        assert data.data == corrupt
        assert isinstance(data.outcome, KeptOriginal)
        assert result.fallbacks == ["Build/game.data.gz"]
        # the rest of the archive still made it
        assert "Build/game.loader.js" in result.entries

    @pytest.mark.unit
    def test_brotli_entry_is_decompressed(self, build_zip):
        payload = b"body { color: red; }" * 10
        result = ingest_archive(
            build_zip(extra={"TemplateData/style.css.br": brotli.compress(payload)})
        )
        css = result.entries["TemplateData/style.css.br"]

        assert css.data == payload
        assert css.content_type == "text/css"

    @pytest.mark.unit
    def test_corrupt_brotli_keeps_original_bytes(self, build_zip):
        junk = b"\xff\xfe definitely not brotli"
        result = ingest_archive(build_zip(extra={"Build/game.framework.js.br": junk}))
        entry = result.entries["Build/game.framework.js.br"]

        assert entry.data == junk
        assert entry.kept_original

    @pytest.mark.unit
    def test_content_types_use_cleaned_path(self, build_zip):
        result = ingest_archive(build_zip(extra={"TemplateData/a.jpg": b"jpg", "x.bin": b"?"}))
        types = {p: f.content_type for p, f in result.entries.items()}

        assert types["index.html"] == "text/html"
        assert types["Build/game.loader.js"] == "application/javascript"
        assert types["Build/game.framework.js.gz"] == "application/javascript"
        assert types["Build/game.data.gz"] == "application/octet-stream"
        assert types["homa_config.json"] == "application/json"
        assert types["TemplateData/a.jpg"] == "image/jpeg"
        assert types["x.bin"] == "application/octet-stream"

    @pytest.mark.unit
    def test_manifest_is_parsed(self, build_zip):
        result = ingest_archive(build_zip())

        assert result.manifest.version == "1.0"
        assert [v.name for v in result.manifest.variables] == ["speed"]
        assert result.manifest.variables[0].value == "5"

    @pytest.mark.unit
    def test_unknown_variable_kind_is_skipped(self, build_zip, caplog):
        manifest = make_manifest(
            variables=[
                {"name": "speed", "type": "int", "value": "5"},
                {"name": "logo", "type": "Asset:Sprite", "value": "logo.png"},
            ]
        )
        with caplog.at_level(logging.WARNING, logger="model.variable"):
            result = ingest_archive(build_zip(manifest=manifest))

        assert [v.name for v in result.manifest.variables] == ["speed"]
        assert "manifest.variable.skipped name=logo type=Asset:Sprite" in caplog.text

    @pytest.mark.unit
    def test_directories_are_skipped(self, build_zip):
        result = ingest_archive(build_zip(extra={"Build/": b""}))
        assert "Build/" not in result.entries


class TestEntryDocument:
    """Entry point selection and viewport rewrite."""

    @pytest.mark.unit
    def test_viewport_style_inserted_before_head_close(self, build_zip):
        result = ingest_archive(build_zip())
        html = result.entries["index.html"].data.decode()

        assert result.entry_path == "index.html"
        style_at = html.index("#unity-canvas { width: 100% !important")
        assert style_at < html.index("</head>")
        assert html.count("</head>") == 1

    @pytest.mark.unit
    def test_viewport_style_prepended_without_head(self, build_zip):
        result = ingest_archive(build_zip(extra={"index.html": b"<canvas></canvas>"}))
        html = result.entries["index.html"].data.decode()

        assert html.lstrip().startswith("<style>")
        assert html.endswith("<canvas></canvas>")

    @pytest.mark.unit
    def test_fallback_is_lexicographic(self):
        assert select_entry_point(["b.html", "a.html", "x.js"]) == "a.html"

    @pytest.mark.unit
    def test_canonical_name_beats_other_documents(self):
        assert select_entry_point(["a.html", "game/index.html"]) == "game/index.html"

    @pytest.mark.unit
    def test_root_index_beats_nested_index(self):
        paths = ["StreamingAssets/web/index.html", "index.html", "homa_config.json"]
        assert select_entry_point(paths) == "index.html"

    @pytest.mark.unit
    def test_shallowest_nested_index_wins(self):
        paths = ["b/index.html", "A/deep/index.html", "z.html"]
        assert select_entry_point(paths) == "b/index.html"

    @pytest.mark.unit
    def test_nested_index_does_not_shadow_root_document(self, build_zip):
        result = ingest_archive(
            build_zip(extra={"StreamingAssets/web/index.html": b"<html></html>"})
        )
        assert result.entry_path == "index.html"

    @pytest.mark.unit
    def test_no_document_raises(self):
        with pytest.raises(NoEntryPoint):
            select_entry_point(["Build/game.loader.js"])

    @pytest.mark.unit
    def test_archive_without_document_fails(self, build_zip):
        with pytest.raises(NoEntryPoint):
            ingest_archive(build_zip(drop=("index.html",)))


class TestFatalErrors:
    """Ingestion aborts as a whole."""

    @pytest.mark.unit
    def test_missing_manifest(self, build_zip):
        with pytest.raises(ManifestMissing):
            ingest_archive(build_zip(drop=("homa_config.json",)))

    @pytest.mark.unit
    def test_invalid_manifest(self, build_zip):
        with pytest.raises(ManifestInvalid):
            ingest_archive(build_zip(extra={"homa_config.json": b"{not json"}))

    @pytest.mark.unit
    def test_not_a_zip(self):
        with pytest.raises(ArchiveUnreadable):
            ingest_archive(gzip.compress(b"hello"))

    @pytest.mark.unit
    def test_read_manifest_only(self, build_zip):
        manifest = read_manifest(build_zip())
        assert manifest.by_name()["speed"].max == 20
