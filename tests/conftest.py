"""Shared test fixtures and configuration."""

import os

import pytest


# Complete test environment that overrides ALL possible config values
TEST_ENV = {
    "STREAMGREP_BUFFER_SIZE": str(1 << 20),
    "STREAMGREP_DEFAULT_LIMIT": "0",
    "STREAMGREP_CONTEXT_BEFORE": "0",
    "STREAMGREP_CONTEXT_AFTER": "0",
    "STREAMGREP_EXPAND_ARCHIVES": "false",
    "STREAMGREP_ROOTS": ".",
    "STREAMGREP_HOST": "127.0.0.1",
    "STREAMGREP_PORT": "2473",
    "STREAMGREP_WEB_LIMIT": "10",
    "STREAMGREP_WEB_CONTEXT": "1",
    "STREAMGREP_SHOW_MAX_BYTES": str(16 << 20),
    "STREAMGREP_LOG_LEVEL": "warning",
    "STREAMGREP_JSON_LOGS": "false",
}


# Set environment variables immediately when conftest.py is loaded
for key, value in TEST_ENV.items():
    os.environ[key] = value


class ChunkedReader:
    """Byte source that returns at most ``step`` bytes per read and counts calls."""

    def __init__(self, data: bytes, step: int | None = None) -> None:
        self._data = data
        self._pos = 0
        self._step = step
        self.reads = 0

    def read(self, size: int = -1) -> bytes:
        self.reads += 1
        if size is None or size < 0:
            size = len(self._data) - self._pos
        if self._step is not None:
            size = min(size, self._step)
        chunk = self._data[self._pos : self._pos + size]
        self._pos += len(chunk)
        return chunk


class FailingReader(ChunkedReader):
    """Returns its data, then raises ``OSError`` instead of reporting end of stream."""

    def read(self, size: int = -1) -> bytes:
        chunk = super().read(size)
        if not chunk:
            raise OSError("device went away")
        return chunk


class TruncatedReader(ChunkedReader):
    """Returns its data, then raises ``EOFError`` like a zip member cut short."""

    def read(self, size: int = -1) -> bytes:
        chunk = super().read(size)
        if not chunk:
            raise EOFError("Compressed file ended before the end-of-stream marker was reached")
        return chunk


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Clean environment variables before each test and set test defaults."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)


@pytest.fixture
def chunked_reader():
    return ChunkedReader


@pytest.fixture
def failing_reader():
    return FailingReader


@pytest.fixture
def truncated_reader():
    return TruncatedReader


@pytest.fixture
def sample_tree(tmp_path):
    """Small source tree with a nested package, a hidden dir and a zip archive."""
    import zipfile

    (tmp_path / "pkg").mkdir()
    (tmp_path / "pkg" / "alpha.py").write_text(
        "import os\n\ndef alpha():\n    return os.getcwd()\n",
        encoding="utf-8",
    )
    (tmp_path / "pkg" / "beta.txt").write_text("nothing here\nTODO: beta\n", encoding="utf-8")
    (tmp_path / ".hidden").mkdir()
    (tmp_path / ".hidden" / "secret.py").write_text("def alpha_hidden():\n    pass\n", encoding="utf-8")
    with zipfile.ZipFile(tmp_path / "bundle.zip", "w") as archive:
        archive.writestr("inner/gamma.py", "def gamma():\n    return alpha()\n")
        archive.writestr("inner/readme.md", "no code\n")
    return tmp_path
