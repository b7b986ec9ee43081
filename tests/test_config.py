"""Tests for configuration resolution."""

from __future__ import annotations

import stat
from pathlib import Path

import pytest

from safemirror.config import (
    CONFIG_TEMPLATE,
    config_path,
    load_config,
    merge_config,
    parse_extra_args,
    parse_skip,
    read_config_file,
    write_default_config,
)
from safemirror.errors import ConfigError
from safemirror.models import BackendType, SyncMode


@pytest.fixture
def cfg_file(tmp_path: Path) -> Path:
    return tmp_path / "safemirror" / "config"


class TestReadConfigFile:
    """Parsing key = value files."""

    def test_missing_file(self, cfg_file):
        assert read_config_file(cfg_file) == {}

    def test_template_is_all_comments(self, cfg_file):
        write_default_config(cfg_file)
        assert read_config_file(cfg_file) == {}

    def test_values_and_quotes(self, cfg_file):
        cfg_file.parent.mkdir(parents=True)
        cfg_file.write_text(
            "# comment\n"
            "\n"
            "tool = rsync\n"
            'src = "/data/my photos"\n'
            "DST='/mnt/usb'\n"
            "rsync_args = --exclude '.cache'\n"
        )
        values = read_config_file(cfg_file)
        assert values == {
            "tool": "rsync",
            "src": "/data/my photos",
            "dst": "/mnt/usb",
            "rsync_args": "--exclude '.cache'",
        }

    def test_unknown_key_ignored(self, cfg_file, caplog):
        cfg_file.parent.mkdir(parents=True)
        cfg_file.write_text("colour = blue\ntool = cp\n")
        assert read_config_file(cfg_file) == {"tool": "cp"}
        assert "colour" in caplog.text

    def test_line_without_equals(self, cfg_file):
        cfg_file.parent.mkdir(parents=True)
        cfg_file.write_text("tool rsync\n")
        with pytest.raises(ConfigError, match=":1:"):
            read_config_file(cfg_file)


class TestWriteDefaultConfig:
    """Template creation."""

    def test_creates_owner_only(self, cfg_file):
        assert write_default_config(cfg_file)
        assert cfg_file.read_text() == CONFIG_TEMPLATE
        assert stat.S_IMODE(cfg_file.stat().st_mode) == 0o600

    def test_keeps_existing(self, cfg_file):
        cfg_file.parent.mkdir(parents=True)
        cfg_file.write_text("tool = rclone\n")
        assert not write_default_config(cfg_file)
        assert cfg_file.read_text() == "tool = rclone\n"


class TestParsers:
    """Value parsers."""

    def test_skip(self):
        assert parse_skip("preview, BACKUP") == {"preview", "backup"}
        assert parse_skip("") == set()
        assert parse_skip(None) == set()

    @pytest.mark.parametrize("value", ["safety", "preview,copy"])
    def test_skip_unknown(self, value):
        with pytest.raises(ConfigError, match="Unknown step"):
            parse_skip(value)

    def test_extra_args(self):
        assert parse_extra_args("rsync_args", "--exclude '.cache dir' -v") == [
            "--exclude", ".cache dir", "-v",
        ]

    def test_extra_args_with_equals(self):
        assert parse_extra_args("rclone_args", "--transfers=8") == ["--transfers=8"]

    @pytest.mark.parametrize("value", ["/etc", "-- /etc", "--delete=x /etc", "'unbalanced"])
    def test_extra_args_rejected(self, value):
        with pytest.raises(ConfigError):
            parse_extra_args("rsync_args", value)


class TestMergeConfig:
    """Layering defaults, file values and overrides."""

    def test_defaults(self):
        config = merge_config({})
        assert config.tool is None
        assert config.mode is SyncMode.MIRROR
        assert config.log_path is None
        assert config.skip == set()
        assert not config.dry_run
        assert not config.no_sudo
        assert not config.no_confirm
        assert config.extra_args == {}

    def test_file_values(self):
        config = merge_config({
            "tool": "RSYNC",
            "mode": "copy",
            "log": "~/runs.log",
            "dry_run": "yes",
            "no_sudo": "1",
            "rsync_args": "--exclude .git",
        })
        assert config.tool is BackendType.RSYNC
        assert config.mode is SyncMode.COPY
        assert config.log_path == Path("~/runs.log").expanduser()
        assert config.dry_run
        assert config.no_sudo
        assert config.extra_args == {BackendType.RSYNC: ["--exclude", ".git"]}

    def test_override_wins(self):
        config = merge_config({"tool": "rsync", "src": "/a"}, {"tool": "rclone", "src": None})
        assert config.tool is BackendType.RCLONE
        assert config.src == "/a"

    def test_skip_is_unioned(self):
        config = merge_config({"skip": "preview"}, {"skip": "backup"})
        assert config.skip == {"preview", "backup"}

    def test_bad_tool(self):
        with pytest.raises(ConfigError, match="Unknown tool"):
            merge_config({"tool": "scp"})

    def test_bad_mode(self):
        with pytest.raises(ConfigError, match="Unknown mode"):
            merge_config({"mode": "sync"})

    def test_bad_bool(self):
        with pytest.raises(ConfigError, match="no_confirm"):
            merge_config({"no_confirm": "sometimes"})


class TestLoadConfig:
    """End-to-end loading."""

    def test_creates_template(self, cfg_file):
        config = load_config(cfg_file)
        assert cfg_file.exists()
        assert config.tool is None

    def test_no_create(self, cfg_file):
        load_config(cfg_file, create=False)
        assert not cfg_file.exists()

    def test_reads_and_overrides(self, cfg_file):
        cfg_file.parent.mkdir(parents=True)
        cfg_file.write_text("tool = rclone\nskip = backup\n")
        config = load_config(cfg_file, {"skip": "preview", "dry_run": True})
        assert config.tool is BackendType.RCLONE
        assert config.skip == {"preview", "backup"}
        assert config.dry_run

    def test_config_path_explicit(self, tmp_path):
        assert config_path(str(tmp_path / "c")) == tmp_path / "c"

    def test_config_path_default(self, monkeypatch):
        monkeypatch.setattr("safemirror.config.DEFAULT_CONFIG_PATH", "~/x/config")
        assert config_path() == Path("~/x/config").expanduser()
