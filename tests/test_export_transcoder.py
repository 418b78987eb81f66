"""Tests for core/export_transcoder.py - per-network packaging."""

import base64
import io
import os
import zipfile

import pytest

from core.export_transcoder import (
    ZIP_EPOCH,
    export_bundle_in_bundle,
    export_single_document,
    find_build_artifacts,
    folder_name_for,
    safe_member_name,
    transcode,
)
from core.html_inject import escape_inline_script
from util.enums import ExportNetwork
from util.errors import ArchiveUnreadable, ExportSizeExceeded, MissingBuildArtifact

VALUES = {"speed": "9"}


def names_in(data: bytes):
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return sorted(zf.namelist())


class TestBundleInBundle:
    @pytest.mark.unit
    def test_layout(self, build_zip):
        artifact = export_bundle_in_bundle(build_zip(), VALUES, project_name="My Game")

        assert artifact.filename == "My_Game.zip"
        assert artifact.media_type == "application/zip"
        assert names_in(artifact.data) == [
            "My_Game/Build/game.data.gz",
            "My_Game/Build/game.framework.js.gz",
            "My_Game/Build/game.loader.js",
            "My_Game/Build/game.wasm.gz",
            "My_Game/My_Game.html",
            "My_Game/homa_config.json",
        ]

    @pytest.mark.unit
    def test_document_carries_shim_and_files_are_untouched(self, build_zip):
        archive = build_zip()
        artifact = export_bundle_in_bundle(archive, VALUES)

        with zipfile.ZipFile(io.BytesIO(artifact.data)) as out, zipfile.ZipFile(
            io.BytesIO(archive)
        ) as src:
            html = out.read("playable/playable.html").decode()
            assert out.read("playable/Build/game.wasm.gz") == src.read("Build/game.wasm.gz")
            assert all(i.date_time == ZIP_EPOCH for i in out.infolist())

        assert 'window.HomaVars = {"speed":"9"};' in html
        assert "window.gameEnd = function()" in html
        assert html.index("[Mintegral]") < html.index("</head>")

    @pytest.mark.unit
    def test_export_is_deterministic(self, build_zip):
        archive = build_zip()
        a = export_bundle_in_bundle(archive, VALUES, project_name="x")
        b = export_bundle_in_bundle(archive, VALUES, project_name="x")
        assert a.data == b.data

    @pytest.mark.unit
    def test_over_ceiling_fails(self, build_zip):
        # random bytes do not deflate, so the artifact stays large
        archive = build_zip(extra={"TemplateData/noise.bin": os.urandom(64 * 1024)})
        with pytest.raises(ExportSizeExceeded) as exc:
            export_bundle_in_bundle(archive, VALUES, ceiling=32 * 1024)

        assert exc.value.ceiling == 32 * 1024
        assert exc.value.size > 32 * 1024
        assert "mintegral export exceeds 32.00 KB limit" in exc.value.message

    @pytest.mark.unit
    def test_under_ceiling_passes(self, build_zip):
        artifact = export_bundle_in_bundle(build_zip(), VALUES, ceiling=5 * 1024 * 1024)
        assert artifact.size < 5 * 1024 * 1024

    @pytest.mark.unit
    def test_uses_same_entry_document_as_preview(self, build_zip):
        nested = b"<html><head></head><body>streaming</body></html>"
        artifact = export_bundle_in_bundle(
            build_zip(extra={"StreamingAssets/web/index.html": nested}), VALUES
        )

        with zipfile.ZipFile(io.BytesIO(artifact.data)) as out:
            html = out.read("playable/playable.html").decode()
            assert out.read("playable/StreamingAssets/web/index.html") == nested
        assert "unity-canvas" in html

    @pytest.mark.unit
    def test_member_climbing_out_of_folder_is_rejected(self, build_zip):
        archive = build_zip(extra={"../../evil.js": b"alert(1)"})
        with pytest.raises(ArchiveUnreadable, match="Unsafe path"):
            export_bundle_in_bundle(archive, VALUES)

    @pytest.mark.unit
    def test_member_names_are_normalised(self, build_zip):
        archive = build_zip(extra={"TemplateData/../TemplateData/./logo.png": b"png"})
        artifact = export_bundle_in_bundle(archive, VALUES)
        assert "playable/TemplateData/logo.png" in names_in(artifact.data)


class TestSingleDocument:
    @pytest.mark.unit
    def test_embeds_gzipped_payloads_as_base64(self, build_zip):
        archive = build_zip()
        artifact = export_single_document(archive, VALUES, project_name="Demo")
        html = artifact.data.decode()

        assert artifact.filename == "Demo.html"
        assert artifact.media_type == "text/html"
        with zipfile.ZipFile(io.BytesIO(archive)) as src:
            for name in ("Build/game.wasm.gz", "Build/game.data.gz", "Build/game.framework.js.gz"):
                assert base64.b64encode(src.read(name)).decode() in html
        assert "function createUnityInstance" in html
        assert "new DecompressionStream('gzip')" in html

    @pytest.mark.unit
    def test_mraid_shim_present(self, build_zip):
        html = export_single_document(build_zip(), VALUES).data.decode()

        assert 'window.HomaVars = {"speed":"9"};' in html
        assert "mraid.addEventListener('ready', onMRAIDReady)" in html
        assert "window.openAppStore" in html
        assert "touchstart" in html

    @pytest.mark.unit
    def test_missing_artifact(self, build_zip):
        archive = build_zip(drop=("Build/game.wasm.gz",))
        with pytest.raises(MissingBuildArtifact) as exc:
            export_single_document(archive, VALUES)
        assert exc.value.extra["missing"] == [".wasm.gz"]

    @pytest.mark.unit
    def test_loader_cannot_close_its_script_tag(self, build_zip):
        loader = b'var s = "</script><script>alert(1)</script>";'
        html = export_single_document(
            build_zip(extra={"Build/game.loader.js": loader}), VALUES
        ).data.decode()

        assert "</script><script>alert(1)" not in html
        assert '<\\/script><script>alert(1)<\\/script>' in html

    @pytest.mark.unit
    def test_corrupt_gzip_artifact_is_carried_through(self, build_zip):
        bad = b"\x1f\x8b garbage"
        html = export_single_document(
            build_zip(extra={"Build/game.data.gz": bad}), VALUES
        ).data.decode()
        assert base64.b64encode(bad).decode() in html

    @pytest.mark.unit
    def test_values_cannot_break_out_of_script(self, build_zip):
        html = export_single_document(
            build_zip(), {"title": "</script><b>x</b>"}
        ).data.decode()
        assert '"title":"<\\/script><b>x<\\/b>"' in html


class TestHelpers:
    @pytest.mark.unit
    def test_last_artifact_wins(self):
        paths = [
            "Build/a.loader.js",
            "Build/b.loader.js",
            "Build/a.framework.js.gz",
            "Build/a.wasm.gz",
            "Build/a.data.gz",
        ]
        assert find_build_artifacts(paths)[".loader.js"] == "Build/b.loader.js"

    @pytest.mark.unit
    def test_artifacts_outside_build_dir_ignored(self):
        with pytest.raises(MissingBuildArtifact):
            find_build_artifacts(["a.loader.js", "a.framework.js.gz", "a.wasm.gz", "a.data.gz"])

    @pytest.mark.unit
    def test_folder_name(self):
        assert folder_name_for("  Tap & Go!! ") == "Tap_Go"
        assert folder_name_for(None) == "playable"
        assert folder_name_for("***") == "playable"

    @pytest.mark.unit
    def test_escape_inline_script_is_case_insensitive(self):
        assert escape_inline_script("</SCRIPT>") == "<\\/SCRIPT>"

    @pytest.mark.unit
    def test_transcode_dispatches(self, build_zip):
        artifact = transcode(build_zip(), VALUES, ExportNetwork.APPLOVIN)
        assert artifact.network is ExportNetwork.APPLOVIN

    @pytest.mark.unit
    @pytest.mark.parametrize("bad", ["../x", "/etc/passwd", "a/../../x", "..\\x"])
    def test_safe_member_name_rejects_escapes(self, bad):
        with pytest.raises(ArchiveUnreadable):
            safe_member_name(bad)

    @pytest.mark.unit
    def test_safe_member_name_keeps_plain_paths(self):
        assert safe_member_name("Build/game.wasm.gz") == "Build/game.wasm.gz"
