from typing import Literal

from pydantic import BaseModel, Field


class WorkdirConfig(BaseModel):
    path: str | None = None
    store: str | None = None
    archive: str | None = None


class BuildConfig(BaseModel):
    max_parallel_builds: int = Field(default=1, gt=0)
    nix_command: str = "nix"
    system_attribute: str = "nixosConfigurations.{hostname}.config.system.build.toplevel"
    verify_hostname: bool = True


class TargetConfig(BaseModel):
    store_path: str = "/"
    state_dir: str = "/var/lib/nsync"
    profile: str = "nix/var/nix/profiles/system"
    chroot_command: list[str] = Field(default_factory=lambda: ["nixos-enter", "--root"])
    install_bootloader: bool = True
    reboot_command: list[str] = Field(default_factory=lambda: ["reboot"])
    gc_command: list[str] = Field(default_factory=lambda: ["nix-store", "--gc"])


class CompressionConfig(BaseModel):
    preset: int = Field(default=2, ge=0, le=9)


class NsyncConfig(BaseModel):
    workdir: WorkdirConfig = Field(default_factory=WorkdirConfig)
    build: BuildConfig = Field(default_factory=BuildConfig)
    target: TargetConfig = Field(default_factory=TargetConfig)
    compression: CompressionConfig = Field(default_factory=CompressionConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"
