"""
Pytest configuration and fixtures for zenload tests.
"""

import io
import tarfile
import tempfile
from pathlib import Path

import pytest

from zenload.settings import ZenloadSettings, reload_settings

ENV_VARS = [
    "DIODE_STAR_CACHE_DIR",
    "DIODE_GITHUB_TOKEN",
    "GITHUB_TOKEN",
    "DIODE_GITLAB_TOKEN",
    "GITLAB_TOKEN",
    "DIODE_FETCH_TIMEOUT",
    "DIODE_OFFLINE",
    "DIODE_LOG_LEVEL",
]


@pytest.fixture
def temp_dir():
    """Provide a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir).resolve()


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep host credentials and cache overrides out of every test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Settings read .env from the working directory
    monkeypatch.chdir(tmp_path)
    reload_settings()
    yield
    reload_settings()


@pytest.fixture
def cache_root(temp_dir):
    """Cache root for one test."""
    root = temp_dir / "cache"
    root.mkdir()
    return root


@pytest.fixture
def settings(cache_root):
    """Settings pointing at the test cache root."""
    return ZenloadSettings(star_cache_dir=cache_root)


def make_tarball(files: dict[str, str], top_level: str = "repo-main") -> bytes:
    """Build a tar.gz the way hosting providers do, wrapped in one directory."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        top = tarfile.TarInfo(top_level)
        top.type = tarfile.DIRTYPE
        top.mode = 0o755
        tar.addfile(top)
        for name, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(f"{top_level}/{name}")
            info.size = len(data)
            info.mode = 0o644
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


@pytest.fixture
def tarball():
    """Factory for provider-style tar.gz archives."""
    return make_tarball
