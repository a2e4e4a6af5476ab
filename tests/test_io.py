"""Tests for gifweave.io module."""

import json
import logging

import pytest

from gifweave.config import LoggingConfig
from gifweave.io import atomic_write, load_json, setup_logging, write_gif


class TestAtomicWrite:
    """Tests for atomic_write and write_gif."""

    def test_writes_and_creates_parents(self, tmp_path):
        target = tmp_path / "nested" / "dir" / "out.gif"
        with atomic_write(target) as f:
            f.write(b"GIF89a")
        assert target.read_bytes() == b"GIF89a"

    def test_failure_leaves_nothing_behind(self, tmp_path):
        target = tmp_path / "out.gif"
        with pytest.raises(RuntimeError):
            with atomic_write(target) as f:
                f.write(b"partial")
                raise RuntimeError("interrupted")
        assert not target.exists()
        assert list(tmp_path.iterdir()) == []

    def test_write_gif_replaces_existing(self, tmp_path):
        target = tmp_path / "anim.gif"
        target.write_bytes(b"old")
        assert write_gif(b"GIF89a;", target) == target
        assert target.read_bytes() == b"GIF89a;"


class TestLoadJson:
    """Tests for load_json function."""

    def test_load(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"width": 10, "quantize": {"max_colors": 4}}))
        assert load_json(path) == {"width": 10, "quantize": {"max_colors": 4}}

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(json.JSONDecodeError):
            load_json(path)


class TestSetupLogging:
    """Tests for setup_logging function."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self, monkeypatch):
        monkeypatch.delenv("GIFWEAVE_LOG_LEVEL", raising=False)
        monkeypatch.delenv("GIFWEAVE_LOGS_DIR", raising=False)
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for handler in root.handlers[:]:
            root.removeHandler(handler)
            handler.close()
        for handler in handlers:
            root.addHandler(handler)
        root.setLevel(level)

    def test_console_only(self):
        logger = setup_logging(LoggingConfig(LOG_LEVEL="WARNING"))

        assert logger.name == "gifweave"
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert not any(isinstance(h, logging.FileHandler) for h in root.handlers)

    def test_log_file(self, tmp_path):
        logs_dir = tmp_path / "logs"
        logger = setup_logging(LoggingConfig(LOG_LEVEL="DEBUG", LOGS_DIR=logs_dir))
        logger.debug("frame 0 encoded")
        for handler in logging.getLogger().handlers:
            handler.flush()

        log_files = list(logs_dir.glob("gifweave_*.log"))
        assert len(log_files) == 1
        assert "frame 0 encoded" in log_files[0].read_text()
