"""
CLI tests with a fake registry.

Tests command wiring, option overrides, output and exit codes without
touching a real registry: the puller factory is patched to route every
request through the in-memory registry.
"""
from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from oci_puller import __version__
from oci_puller.cli import app
from oci_puller.puller import Puller
from oci_puller.storage.transport import Transport

from .fakes.fake_registry import AUTH_SERVICE, AUTH_URL, REGISTRY_URL

AMD64 = {"architecture": "amd64", "os": "linux"}
ARM64_V8 = {"architecture": "arm64", "os": "linux", "variant": "v8"}


@pytest.fixture
def seen_settings(monkeypatch, registry):
    """Point the CLI at the fake registry and record the settings it used."""
    monkeypatch.setenv("OCI_PULLER_REGISTRY_URL", REGISTRY_URL)
    monkeypatch.setenv("OCI_PULLER_AUTH_REALM", AUTH_URL)
    monkeypatch.setenv("OCI_PULLER_AUTH_SERVICE", AUTH_SERVICE)
    seen = []

    def create_puller(dest, settings):
        seen.append(settings)
        return Puller(dest, settings, transport=Transport(settings, transport=registry.transport()))

    monkeypatch.setattr("oci_puller.cli._create_puller", create_puller)
    return seen


class TestPullCommand:
    """Test the pull command end to end."""

    def setup_method(self):
        """Set up test environment."""
        self.runner = CliRunner()

    def test_pull_writes_layout(self, seen_settings, registry, tmp_path):
        image = registry.add_image("library/alpine", "3.18", [b"layer"])
        out = tmp_path / "out"

        result = self.runner.invoke(app, [str(out), "alpine:3.18"])

        assert result.exit_code == 0, result.output
        assert "Download of 1 image(s)" in result.output
        assert "nerdctl load" in result.output
        assert "Manifest:" in result.output
        index = json.loads((out / "index.json").read_text())
        assert index["manifests"][0]["digest"] == image["digest"]

    def test_several_images(self, seen_settings, registry, tmp_path):
        registry.add_image("library/alpine", "3.18", [b"a"])
        registry.add_image("library/busybox", "1.36", [b"b"])

        result = self.runner.invoke(app, [str(tmp_path / "out"), "alpine:3.18", "busybox:1.36"])

        assert result.exit_code == 0, result.output
        assert "Download of 2 image(s)" in result.output

    def test_targetarch_from_environment(self, seen_settings, registry, tmp_path, monkeypatch):
        monkeypatch.setenv("TARGETARCH", "arm64")
        monkeypatch.setenv("TARGETVARIANT", "v8")
        amd = registry.add_image("library/alpine", None, [b"amd"])
        arm = registry.add_image("library/alpine", None, [b"arm"], architecture="arm64")
        registry.add_index("library/alpine", "3.18", [(AMD64, amd), (ARM64_V8, arm)])

        result = self.runner.invoke(app, [str(tmp_path / "out"), "alpine:3.18"])

        assert result.exit_code == 0, result.output
        assert seen_settings[0].target_arch == "arm64"
        assert "Platform: linux/arm64/v8" in result.output

    def test_options_override_environment(self, seen_settings, registry, tmp_path, monkeypatch):
        monkeypatch.setenv("TARGETARCH", "s390x")
        registry.add_image("library/alpine", "3.18", [b"layer"])

        result = self.runner.invoke(app, [
            str(tmp_path / "out"), "alpine:3.18",
            "--arch", "arm64", "--variant", "v8", "--no-verify",
        ])

        assert result.exit_code == 0, result.output
        settings = seen_settings[0]
        assert settings.target_arch == "arm64"
        assert settings.target_variant == "v8"
        assert settings.verify_digests is False

    def test_verbose_lists_blobs(self, seen_settings, registry, tmp_path):
        registry.add_image("library/alpine", "3.18", [b"layer"])

        result = self.runner.invoke(app, [str(tmp_path / "out"), "alpine:3.18", "--verbose"])

        assert result.exit_code == 0, result.output
        assert "Blobs" in result.output


class TestPullCommandErrors:
    """Test diagnostics and exit codes."""

    def setup_method(self):
        """Set up test environment."""
        self.runner = CliRunner()

    def test_platform_not_found_exit_code(self, seen_settings, registry, tmp_path):
        arm = registry.add_image("library/alpine", None, [b"arm"], architecture="arm64")
        registry.add_index("library/alpine", "3.18", [(ARM64_V8, arm)])

        result = self.runner.invoke(app, [str(tmp_path / "out"), "alpine:3.18"])

        assert result.exit_code == 6
        assert "error:" in result.output
        assert "failed to process image alpine:3.18" in result.output

    def test_auth_failure_exit_code(self, seen_settings, registry, tmp_path):
        registry.token_response = (503, b"")
        result = self.runner.invoke(app, [str(tmp_path / "out"), "alpine:3.18"])
        assert result.exit_code == 3

    def test_missing_manifest_exit_code(self, seen_settings, registry, tmp_path):
        result = self.runner.invoke(app, [str(tmp_path / "out"), "alpine:missing"])
        assert result.exit_code == 4

    def test_invalid_reference_exit_code(self, seen_settings, registry, tmp_path):
        result = self.runner.invoke(app, [str(tmp_path / "out"), "Not Valid"])
        assert result.exit_code == 2
        assert registry.requests == []

    def test_invalid_environment_exit_code(self, seen_settings, tmp_path, monkeypatch):
        monkeypatch.setenv("HTTP_PROXY", "not a url")
        result = self.runner.invoke(app, [str(tmp_path / "out"), "alpine:3.18"])
        assert result.exit_code == 2
        assert seen_settings == []

    def test_missing_arguments(self):
        result = self.runner.invoke(app, [])
        assert result.exit_code != 0

    def test_version(self):
        result = self.runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output
