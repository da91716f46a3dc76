"""Tests for nsync.config: models and YAML loader."""

import pytest
import yaml
from pydantic import ValidationError

from nsync.config.loader import (
    DEFAULT_CONFIG_TEMPLATE,
    _expand_env_vars,
    find_config_file,
    load_config,
)
from nsync.config.models import BuildConfig, CompressionConfig, NsyncConfig, TargetConfig


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """No developer config leaks into these tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    return home


# ── NsyncConfig defaults ────────────────────────────────────────────


class TestNsyncConfigDefaults:
    def test_defaults(self):
        cfg = NsyncConfig()
        assert cfg.log_level == "info"
        assert cfg.log_format == "text"
        assert cfg.workdir.path is None
        assert cfg.compression.preset == 2

    def test_target_defaults(self):
        cfg = TargetConfig()
        assert cfg.store_path == "/"
        assert cfg.state_dir == "/var/lib/nsync"
        assert cfg.profile == "nix/var/nix/profiles/system"
        assert cfg.chroot_command == ["nixos-enter", "--root"]
        assert cfg.reboot_command == ["reboot"]
        assert cfg.gc_command == ["nix-store", "--gc"]
        assert cfg.install_bootloader is True

    def test_build_defaults(self):
        cfg = BuildConfig()
        assert cfg.max_parallel_builds == 1
        assert cfg.verify_hostname is True
        assert "{hostname}" in cfg.system_attribute

    def test_parallel_builds_must_be_positive(self):
        with pytest.raises(ValidationError):
            BuildConfig(max_parallel_builds=0)

    def test_preset_range(self):
        with pytest.raises(ValidationError):
            CompressionConfig(preset=10)

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            NsyncConfig(log_level="verbose")


# ── load_config ─────────────────────────────────────────────────────


class TestLoadConfig:
    def test_no_files_gives_defaults(self):
        assert load_config() == NsyncConfig()

    def test_cli_path_wins(self, tmp_path):
        (tmp_path / "nsync.yaml").write_text("log_level: error\n")
        explicit = tmp_path / "explicit.yaml"
        explicit.write_text("log_level: debug\n")
        assert load_config(str(explicit)).log_level == "debug"

    def test_project_local_file(self, tmp_path):
        (tmp_path / "nsync.yaml").write_text("build:\n  max_parallel_builds: 4\n")
        assert load_config().build.max_parallel_builds == 4

    def test_user_global_file(self, isolated_home):
        (isolated_home / ".nsync").mkdir()
        (isolated_home / ".nsync" / "config.yaml").write_text("log_format: json\n")
        assert load_config().log_format == "json"

    def test_empty_file_means_defaults(self, tmp_path):
        (tmp_path / "nsync.yaml").write_text("")
        assert load_config() == NsyncConfig()

    def test_env_vars_expanded(self, tmp_path, monkeypatch):
        monkeypatch.setenv("NSYNC_STATE", "/persist/nsync")
        (tmp_path / "nsync.yaml").write_text('target:\n  state_dir: "${NSYNC_STATE}"\n')
        assert load_config().target.state_dir == "/persist/nsync"

    def test_invalid_yaml(self, tmp_path):
        (tmp_path / "nsync.yaml").write_text("build: [unclosed\n")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config()

    def test_invalid_values(self, tmp_path):
        (tmp_path / "nsync.yaml").write_text("compression:\n  preset: 42\n")
        with pytest.raises(ValueError, match="Invalid config"):
            load_config()

    def test_missing_explicit_path_is_an_error(self, tmp_path):
        (tmp_path / "nsync.yaml").write_text("log_level: debug\n")
        with pytest.raises(ValueError, match="--config does not exist"):
            load_config(str(tmp_path / "typo.yaml"))

    def test_empty_project_file_shadows_user_file(self, tmp_path, isolated_home):
        (isolated_home / ".nsync").mkdir()
        (isolated_home / ".nsync" / "config.yaml").write_text("log_level: debug\n")
        (tmp_path / "nsync.yaml").write_text("")
        assert load_config().log_level == "info"

    def test_non_mapping_top_level(self, tmp_path):
        (tmp_path / "nsync.yaml").write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="expected a mapping"):
            load_config()

    def test_default_template_is_valid(self):
        assert NsyncConfig(**yaml.safe_load(DEFAULT_CONFIG_TEMPLATE)) == NsyncConfig()


class TestFindConfigFile:
    def test_none_without_files(self):
        assert find_config_file() is None

    def test_project_before_user(self, tmp_path, isolated_home):
        (isolated_home / ".nsync").mkdir()
        (isolated_home / ".nsync" / "config.yaml").write_text("log_level: debug\n")
        (tmp_path / "nsync.yaml").write_text("log_level: error\n")
        assert find_config_file().name == "nsync.yaml"

    def test_user_file_when_no_project_file(self, isolated_home):
        (isolated_home / ".nsync").mkdir()
        (isolated_home / ".nsync" / "config.yaml").write_text("")
        assert find_config_file() == isolated_home / ".nsync" / "config.yaml"


class TestExpandEnvVars:
    def test_nested(self, monkeypatch):
        monkeypatch.setenv("A", "1")
        assert _expand_env_vars({"x": ["${A}", {"y": "${A}-${A}"}], "n": 3}) == {
            "x": ["1", {"y": "1-1"}],
            "n": 3,
        }

    def test_unset_becomes_empty(self, monkeypatch):
        monkeypatch.delenv("NSYNC_UNSET", raising=False)
        assert _expand_env_vars("a${NSYNC_UNSET}b") == "ab"
