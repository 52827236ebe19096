"""
Unit tests for configuration, logging and report file utilities.
"""

import json
import logging
import pytest
import sys
from datetime import timedelta
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent / "src"))

from lesson_engine.utils.config import EngineConfig
from lesson_engine.utils.file_utils import generate_filename, save_csv, save_json
from lesson_engine.utils.logger import SensitiveDataFilter, mask_email, setup_logger


class TestEngineConfig:
    """Test cases for EngineConfig."""

    def test_defaults(self, monkeypatch):
        """Test default values when nothing is set."""
        for name in ("LOG_LEVEL", "LOG_FILE", "TIMEZONE", "UPSTREAM_FAILURE_THRESHOLD",
                     "UPSTREAM_RESET_SECONDS", "EXPORT_DIR"):
            monkeypatch.delenv(name, raising=False)

        config = EngineConfig()

        assert config.log_level == "INFO"
        assert config.log_file is None
        assert config.timezone == "UTC"
        assert config.upstream_failure_threshold == 5
        assert config.upstream_reset_timeout == timedelta(seconds=60)
        assert config.export_dir == Path("output")
        assert config.validate() is True

    def test_environment_overrides(self, monkeypatch, tmp_path):
        """Test values are read from the environment."""
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("TIMEZONE", "Europe/Berlin")
        monkeypatch.setenv("UPSTREAM_FAILURE_THRESHOLD", "2")
        monkeypatch.setenv("EXPORT_DIR", str(tmp_path / "reports"))

        config = EngineConfig()

        assert config.log_level == "DEBUG"
        assert str(config.tz) == "Europe/Berlin"
        assert config.upstream_failure_threshold == 2
        assert config.create_export_directory().is_dir()

    def test_validate_collects_errors(self, monkeypatch):
        """Test every invalid value is reported in one error."""
        monkeypatch.setenv("LOG_LEVEL", "LOUD")
        monkeypatch.setenv("TIMEZONE", "Nowhere/Atlantis")
        monkeypatch.setenv("UPSTREAM_FAILURE_THRESHOLD", "0")

        config = EngineConfig()

        with pytest.raises(ValueError) as exc_info:
            config.validate()

        message = str(exc_info.value)
        assert "LOG_LEVEL" in message
        assert "Nowhere/Atlantis" in message
        assert "UPSTREAM_FAILURE_THRESHOLD" in message


class TestLogging:
    """Test cases for logging helpers."""

    def test_mask_email(self):
        """Test e-mail masking."""
        assert mask_email("student@example.com") == "s***@example.com"
        assert mask_email("invalid") == "***"

    def test_filter_masks_message(self):
        """Test e-mails and tokens are masked after formatting."""
        record = logging.LogRecord(
            "lesson_engine", logging.INFO, __file__, 1,
            "Enrolled %s with token=%s", ("student@example.com", "abc123"), None,
        )

        assert SensitiveDataFilter().filter(record)

        assert record.getMessage() == "Enrolled s***@example.com with token=********"

    def test_filter_masks_every_address(self):
        """Test each address in a message goes through mask_email."""
        record = logging.LogRecord(
            "lesson_engine", logging.WARNING, __file__, 1,
            "Teacher t.one@school.org notified student@example.com", None, None,
        )

        SensitiveDataFilter().filter(record)

        assert record.getMessage() == "Teacher t***@school.org notified s***@example.com"

    def test_setup_logger_adds_handlers_once(self, tmp_path):
        """Test repeated setup does not duplicate handlers."""
        log_file = tmp_path / "logs" / "engine.log"

        logger = setup_logger("lesson_engine.test_setup", level="DEBUG", log_file=str(log_file))
        again = setup_logger("lesson_engine.test_setup")

        assert again is logger
        assert len(logger.handlers) == 2
        assert log_file.parent.is_dir()
        for handler in logger.handlers:
            handler.close()


class TestFileUtils:
    """Test cases for report files."""

    def test_json_round_trip(self, tmp_path):
        """Test JSON is written with non-serializable values as strings."""
        filepath = tmp_path / "nested" / "summary.json"

        assert save_json({"week_start": Path("x"), "affected": 2}, filepath)

        assert json.loads(filepath.read_text(encoding="utf-8")) == {"week_start": "x", "affected": 2}

    def test_unserializable_keys_fail(self, tmp_path):
        """Test a failed write reports False instead of raising."""
        assert not save_json({("week", 1): "x"}, tmp_path / "bad.json")

    def test_csv_keeps_column_order(self, tmp_path):
        """Test CSV columns follow the given order and ids stay strings."""
        filepath = tmp_path / "preview.csv"
        rows = [{"student_id": "007", "lesson": "l1"}]

        assert save_csv(rows, filepath, columns=["lesson", "student_id"])

        assert filepath.read_text(encoding="utf-8").splitlines() == ["lesson,student_id", "l1,007"]

    def test_empty_csv_has_header(self, tmp_path):
        """Test an empty report still carries its header."""
        filepath = tmp_path / "empty.csv"

        assert save_csv([], filepath, columns=["week_start", "student_id"])

        assert filepath.read_text(encoding="utf-8").strip() == "week_start,student_id"

    def test_generate_filename(self):
        """Test timestamped filenames."""
        name = generate_filename("preview", "csv")

        assert name.startswith("preview_")
        assert name.endswith(".csv")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
