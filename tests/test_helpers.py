# test_helpers.py
import logging
import os
import sys

sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from core.config import HOME_ENV_VAR, AppConfig, get_data_dir
from utils.helpers import escape_csv, format_bytes, sanitize_file_name, split_tags
from utils.logging_config import setup_logging


def test_sanitize_file_name():
    assert sanitize_file_name('Himno: "Santo"?') == "Himno_ _Santo__"
    assert sanitize_file_name("...") == "export"
    assert sanitize_file_name(None, "himno") == "himno"


def test_escape_csv():
    assert escape_csv(None) == ""
    assert escape_csv("simple") == "simple"
    assert escape_csv("a,b") == '"a,b"'
    assert escape_csv('dice "hola"') == '"dice ""hola"""'
    assert escape_csv("línea 1\nlínea 2") == "línea 1 línea 2"


def test_format_bytes():
    assert format_bytes(512) == "512 B"
    assert format_bytes(1536) == "1.5 KB"
    assert format_bytes(5 * 1024 * 1024) == "5.0 MB"


def test_split_tags():
    assert split_tags(" a, ,b ") == ["a", "b"]
    assert split_tags(None) == []


class TestAppConfig:

    def test_env_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv(HOME_ENV_VAR, str(tmp_path))
        assert get_data_dir() == tmp_path
        config = AppConfig()
        assert config.database_path == tmp_path / "lyrics_scanner.db3"
        assert config.shares_dir == tmp_path / "cache" / "Shares"

    def test_for_directory_creates_folders(self, tmp_path):
        config = AppConfig.for_directory(tmp_path / "app")
        config.ensure_directories()
        assert config.export_dir.is_dir()
        assert config.log_dir.is_dir()
        assert config.settings_path.name == "settings.json"


def test_setup_logging_is_repeatable(tmp_path):
    setup_logging(tmp_path, console=False)
    setup_logging(tmp_path, console=False)
    root = logging.getLogger()
    ours = [h for h in root.handlers if getattr(h, "_lyrics_scanner", False)]
    assert len(ours) == 1
    logging.getLogger("test").info("mensaje de prueba")
    for handler in ours:
        handler.flush()
    assert "mensaje de prueba" in (tmp_path / "lyrics_scanner.log").read_text(encoding="utf-8")
    for handler in ours:
        root.removeHandler(handler)
        handler.close()
