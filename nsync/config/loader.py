"""nsync.yaml loading.

The same file format serves both sides: the build machine reads ``workdir``
and ``build``, the target reads ``target``. ``${VAR}`` references are
expanded from the environment before validation, so secrets and per-host
paths can stay out of the file.
"""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import NsyncConfig

PROJECT_CONFIG = Path("nsync.yaml")
USER_CONFIG = Path(".nsync") / "config.yaml"

_ENV_REF = re.compile(r"\$\{(\w+)\}")


def find_config_file(cli_path: str | None = None) -> Path | None:
    """Pick the config file nsync will read, or None for built-in defaults.

    ``--config`` must name an existing file. Otherwise the flake checkout's
    ``nsync.yaml`` wins over the per-user ``~/.nsync/config.yaml``.
    """
    if cli_path:
        path = Path(cli_path)
        if not path.is_file():
            raise ValueError(f"Config file passed with --config does not exist: {path}")
        return path
    for path in (PROJECT_CONFIG, Path.home() / USER_CONFIG):
        if path.is_file():
            return path
    return None


def load_config(cli_path: str | None = None) -> NsyncConfig:
    """Load the effective nsync config. An empty file means all defaults."""
    path = find_config_file(cli_path)
    if path is None:
        return NsyncConfig()

    try:
        raw = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in nsync config {path}: {e}") from e
    if raw is None:
        return NsyncConfig()
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid config in {path}: expected a mapping at the top level")

    try:
        return NsyncConfig(**_expand_env_vars(raw))
    except ValidationError as e:
        raise ValueError(f"Invalid config in {path}: {e}") from e


def _expand_env_vars(obj: object) -> object:
    """Replace ${VAR} in every string value; unset variables expand to ""."""
    if isinstance(obj, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), ""), obj)
    if isinstance(obj, dict):
        return {key: _expand_env_vars(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [_expand_env_vars(value) for value in obj]
    return obj


# Default YAML template for `nsync config init`
DEFAULT_CONFIG_TEMPLATE = """\
# nsync.yaml

# Build machine working directories (CLI flags win over these)
workdir:
  path: null                   # defaults to <flake>/.nsync for local flakes
  store: null                  # chroot store used for builds, defaults to workdir
  archive: null                # defaults to <workdir>/archive

# Building system revisions
build:
  max_parallel_builds: 1       # historical revisions built concurrently
  nix_command: "nix"
  system_attribute: "nixosConfigurations.{hostname}.config.system.build.toplevel"
  verify_hostname: true

# Target machine
target:
  store_path: "/"
  state_dir: "/var/lib/nsync"  # narinfo cache lives in <state_dir>/narinfo-cache
  profile: "nix/var/nix/profiles/system"
  chroot_command: ["nixos-enter", "--root"]
  install_bootloader: true
  reboot_command: ["reboot"]
  gc_command: ["nix-store", "--gc"]

# Instruction file compression (xz preset 0-9)
compression:
  preset: 2

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""
