"""Root pytest configuration for oci-puller tests."""
import dataclasses

import pytest

from oci_puller.puller import Puller
from oci_puller.settings import Settings
from oci_puller.storage.transport import Transport

from .fakes.fake_registry import AUTH_SERVICE, AUTH_URL, REGISTRY_URL, FakeRegistry


# Keep the developer's environment out of settings built from env
@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Automatically clear environment variables read by create_settings_from_env."""
    for key in (
        "HTTP_PROXY",
        "TARGETARCH",
        "TARGETVARIANT",
        "OCI_PULLER_REGISTRY_URL",
        "OCI_PULLER_AUTH_REALM",
        "OCI_PULLER_AUTH_SERVICE",
        "OCI_PULLER_HTTP_TIMEOUT",
        "OCI_PULLER_VERIFY",
    ):
        monkeypatch.delenv(key, raising=False)


# Standardized test fixtures
@pytest.fixture
def settings():
    """Settings pointing at the fake registry."""
    return Settings(
        registry_url=REGISTRY_URL,
        auth_realm=AUTH_URL,
        auth_service=AUTH_SERVICE,
        http_timeout_s=5.0,
    )


@pytest.fixture
def registry():
    """Standard fake registry for testing."""
    return FakeRegistry()


@pytest.fixture
def transport(settings, registry):
    """Transport whose requests are answered by the fake registry."""
    t = Transport(settings, transport=registry.transport())
    yield t
    t.close()


@pytest.fixture
def dest(tmp_path):
    """Destination directory for an OCI layout."""
    return tmp_path / "layout"


@pytest.fixture
def make_puller(settings, registry, dest):
    """Factory for pullers wired to the fake registry; accepts settings overrides."""
    pullers = []

    def _make(target=None, **overrides):
        run_settings = dataclasses.replace(settings, **overrides)
        puller = Puller(
            target or dest,
            run_settings,
            transport=Transport(run_settings, transport=registry.transport()),
        )
        pullers.append(puller)
        return puller

    yield _make
    for puller in pullers:
        puller.close()


@pytest.fixture
def puller(make_puller):
    """Puller with default test settings."""
    return make_puller()
