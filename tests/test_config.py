"""Tests for environment driven configuration."""
import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from notetree.config import NoteTreeConfig
from notetree.utils import default_title


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "NOTETREE_MATCH_NAMESPACE",
        "NOTETREE_EAGER_DUPLICATE_CHECK",
        "NOTETREE_NOTE_EXTENSION",
        "NOTETREE_SCHEMA_SUFFIX",
        "NOTETREE_LOG_LEVEL",
        "NOTETREE_LOG_DIR",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestNoteTreeConfig:
    """Tests for NoteTreeConfig defaults and validation."""

    def test_defaults(self, clean_env):
        cfg = NoteTreeConfig()
        assert cfg.match_namespace is True
        assert cfg.eager_duplicate_check is True
        assert cfg.note_extension == ".md"
        assert cfg.schema_suffix == ".schema"
        assert cfg.log_level == "INFO"
        assert cfg.log_dir is None
        assert cfg.log_level_value == logging.INFO

    def test_env_overrides(self, clean_env):
        clean_env.setenv("NOTETREE_MATCH_NAMESPACE", "false")
        clean_env.setenv("NOTETREE_EAGER_DUPLICATE_CHECK", "0")
        clean_env.setenv("NOTETREE_NOTE_EXTENSION", ".markdown")
        clean_env.setenv("NOTETREE_LOG_LEVEL", "debug")
        clean_env.setenv("NOTETREE_LOG_DIR", "/tmp/notetree-logs")
        cfg = NoteTreeConfig()
        assert cfg.match_namespace is False
        assert cfg.eager_duplicate_check is False
        assert cfg.note_extension == ".markdown"
        assert cfg.log_level == "DEBUG"
        assert cfg.log_dir == Path("/tmp/notetree-logs")

    @pytest.mark.parametrize("value", ["yes", "1", "TRUE"])
    def test_truthy_flags(self, clean_env, value):
        clean_env.setenv("NOTETREE_MATCH_NAMESPACE", value)
        assert NoteTreeConfig().match_namespace is True

    def test_invalid_log_level(self, clean_env):
        clean_env.setenv("NOTETREE_LOG_LEVEL", "LOUD")
        with pytest.raises(ValidationError):
            NoteTreeConfig()

    @pytest.mark.parametrize("value", ["md", ".", ""])
    def test_invalid_extension(self, clean_env, value):
        with pytest.raises(ValidationError):
            NoteTreeConfig(note_extension=value)

    def test_assignment_is_validated(self, clean_env):
        cfg = NoteTreeConfig()
        with pytest.raises(ValidationError):
            cfg.schema_suffix = "schema"

    def test_extension_used_for_titles(self, test_config, monkeypatch):
        monkeypatch.setattr(test_config, "note_extension", ".txt")
        assert default_title("foo.bar.txt") == "Bar"
