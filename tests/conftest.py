import json
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from loguru import logger
from unittest.mock import AsyncMock, MagicMock

from ytdl_bridge.main import app
from ytdl_bridge.core.container import container, Services
from ytdl_bridge.services.ytdl import YtdlBinary, YtdlService

FAKE_YTDL = Path(__file__).parent / "fixtures" / "fake_ytdl.py"


@pytest.fixture
def client():
    """FastAPI test client fixture."""
    return TestClient(app)


@pytest.fixture
def mock_ytdl():
    """Mock for YtdlService."""
    mock = MagicMock()
    for name in ("download", "get_info", "get_subs", "get_extractors"):
        setattr(mock, name, AsyncMock())
    container.override(Services.YTDL, mock)
    yield mock
    container.reset()


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during a test."""
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


class FakeYtdl:
    """Drives tests/fixtures/fake_ytdl.py through a real YtdlService."""

    def __init__(self, tmp_path: Path, monkeypatch):
        self.scenario_path = tmp_path / "scenario.json"
        self.argv_log = tmp_path / "argv.log"
        monkeypatch.setenv("FAKE_YTDL_SCENARIO", str(self.scenario_path))
        monkeypatch.setenv("FAKE_YTDL_ARGV_LOG", str(self.argv_log))
        self.scenario([])

    def scenario(self, steps, exit_code=0):
        self.scenario_path.write_text(json.dumps({"steps": steps, "exit": exit_code}), encoding="utf-8")

    def service(self, ffmpeg_path=None) -> YtdlService:
        binary = YtdlBinary(path=str(FAKE_YTDL), interpreter=sys.executable)
        return YtdlService(binary=binary, ffmpeg_path=ffmpeg_path)

    @property
    def invocations(self):
        if not self.argv_log.exists():
            return []
        return [json.loads(line) for line in self.argv_log.read_text(encoding="utf-8").splitlines()]


@pytest.fixture
def fake_ytdl(tmp_path, monkeypatch):
    return FakeYtdl(tmp_path, monkeypatch)
