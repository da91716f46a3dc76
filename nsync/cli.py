"""CLI entry point for nsync."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shutil
import tempfile
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from nsync.compression import compress_folder, decompress_file
from nsync.config import DEFAULT_CONFIG_TEMPLATE, NsyncConfig, find_config_file, load_config
from nsync.config.loader import PROJECT_CONFIG, USER_CONFIG
from nsync.errors import InternalError, NsyncError
from nsync.flake import FlakeBuilder
from nsync.generations import GenerationManager
from nsync.instructions import (
    BuildContext,
    CleanupRequest,
    ExecutionContext,
    InstructionBuilder,
    InstructionExecutor,
    LoadRequest,
    RebootRequest,
    SwitchRequest,
    default_registry,
)
from nsync.process import CommandRunner
from nsync.store import NarinfoCache, NixStore, list_narinfo_files

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="nsync",
    help="Ship NixOS system updates as self-contained instruction files.",
)

config_app = typer.Typer(help="Manage nsync configuration.")
app.add_typer(config_app, name="config")

# Progress and errors go to stderr; `create -o -` writes the archive to stdout.
console = Console(stderr=True)


class SwitchModeOption(str, Enum):
    immediate = "immediate"
    next_reboot = "next-reboot"


# Global state
_config: NsyncConfig | None = None
_config_path: str | None = None

_LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def _get_config() -> NsyncConfig:
    if _config is None:
        return load_config()
    return _config


class _JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _setup_logging(cfg: NsyncConfig) -> None:
    if cfg.log_format == "json":
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(_JsonFormatter())
    else:
        handler = RichHandler(console=console, show_path=False)
    logging.basicConfig(
        level=_LOG_LEVELS[cfg.log_level], handlers=[handler], force=True
    )


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to nsync.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config, _config_path
    _config_path = config
    try:
        _config = load_config(config)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    _setup_logging(_config)


@contextmanager
def _handle_errors() -> Iterator[None]:
    """Print NsyncError as summary plus dimmed description, then exit 1."""
    try:
        yield
    except NsyncError as e:
        summary = e.summary
        if isinstance(e, InternalError):
            summary = f"Internal error: {summary}"
        console.print(f"[red]Error:[/red] {summary}")
        if e.description:
            console.print(f"[dim]{e.description}[/dim]", highlight=False)
        raise typer.Exit(1)


def _progress(message: str) -> None:
    logger.debug("progress: %s", message)
    console.print(f"[cyan]>[/cyan] {message}")


def _new_id() -> str:
    return uuid.uuid4().hex[:10]


# ---------------------------------------------------------------------------
# Flake address helpers
# ---------------------------------------------------------------------------


def split_flake_address(flake: str) -> tuple[str, str]:
    """Split ``<uri>#<hostname>``; the hostname is mandatory."""
    if "#" not in flake:
        raise NsyncError(
            f'Invalid flake address: "{flake}"',
            "A hostname is required, e.g. `github:owner/repo#hostname` "
            "or `/path/to/flake#hostname`",
        )
    uri, hostname = flake.split("#", 1)
    if not uri or not hostname:
        raise NsyncError(
            f'Invalid flake address: "{flake}"',
            "Both a flake uri and a hostname are required, e.g. `/path/to/flake#hostname`",
        )
    if "?" in hostname:
        raise NsyncError(
            f'Invalid flake address: "{flake}"',
            "Query strings aren't supported in flake addresses. Use the flake uri "
            "and hostname, e.g. `github:owner/repo#hostname` or `/path/to/flake#hostname`",
        )
    return uri, hostname


def default_workdir(flake_uri: str) -> Path | None:
    """``<flake>/.nsync`` for local flakes; remote ones (containing ``:``) have none."""
    if ":" in flake_uri:
        return None
    return Path(flake_uri).resolve() / ".nsync"


def _is_root() -> bool:
    return bool(os.environ.get("SUDO_UID")) or os.geteuid() == 0


def _target_state_dir(store: str, state_dir: str) -> Path:
    return Path(store) / state_dir.lstrip("/")


# ---------------------------------------------------------------------------
# create / exec
# ---------------------------------------------------------------------------


@app.command()
def create(
    flake: str = typer.Argument(
        ..., help="Flake address with hostname, e.g. `github:owner/repo#hostname`"
    ),
    new_ref: str = typer.Option(
        ..., "--new", "-n", help="Git ref or revision the target switches to"
    ),
    output: str = typer.Option(
        ..., "--output", "-o", help="Output .tar.xz path, `-` for stdout"
    ),
    deps: Annotated[
        list[str] | None,
        typer.Option(
            "--deps", "-d", help="Git refs already on the target (repeatable)"
        ),
    ] = None,
    workdir: str | None = typer.Option(
        None, "--workdir", "-w", help="Working directory (required for remote flakes)"
    ),
    workdir_store: str | None = typer.Option(
        None, "--workdir-store", help="Scratch nix store, defaults to the workdir"
    ),
    workdir_archive: str | None = typer.Option(
        None, "--workdir-archive", help="Scratch archive, defaults to <workdir>/archive"
    ),
    switch_mode: SwitchModeOption = typer.Option(
        SwitchModeOption.next_reboot,
        "--switch-mode",
        help="When the target activates the new system",
    ),
    partial_narinfos: bool = typer.Option(
        False,
        "--partial-narinfos",
        help="Only ship narinfos for new paths; the target's cache must hold the rest",
    ),
    keep: int | None = typer.Option(
        None, "--keep", min=1, help="Add a cleanup keeping this many generations"
    ),
    reboot: bool = typer.Option(
        False, "--reboot", "-r", help="Reboot the target after applying"
    ),
    reboot_delay: int = typer.Option(
        5, "--reboot-delay", min=1, help="Seconds to wait before rebooting"
    ),
) -> None:
    """Build an instruction that moves a target from --deps to --new."""
    cfg = _get_config()

    with _handle_errors():
        flake_uri, hostname = split_flake_address(flake)

        workdir_value = workdir or cfg.workdir.path
        workdir_path = Path(workdir_value) if workdir_value else default_workdir(flake_uri)
        if workdir_path is None:
            raise NsyncError(
                "Used a remote flake without specifying a workdir",
                "If the flake is remote, the workdir path is required. Use --workdir "
                "or -w. Local flakes default the workdir to `.nsync` inside the flake.",
            )
        workdir_path = workdir_path.resolve()
        store_path = Path(workdir_store or cfg.workdir.store or workdir_path).resolve()
        archive_path = Path(
            workdir_archive or cfg.workdir.archive or workdir_path / "archive"
        ).resolve()
        instruction_folder = workdir_path / "tmp" / _new_id()

        requests = [
            LoadRequest(
                flake_uri=flake_uri,
                hostname=hostname,
                delta_dependency_refs=tuple(deps or ()),
                new_ref=new_ref,
                partial_narinfos=partial_narinfos,
            ),
            SwitchRequest(
                flake_uri=flake_uri, hostname=hostname, new_ref=new_ref, mode=switch_mode.value
            ),
        ]
        if keep is not None:
            requests.append(CleanupRequest(generations_to_keep=keep))
        if reboot:
            requests.append(RebootRequest(delay_seconds=reboot_delay))

        runner = CommandRunner()
        ctx = BuildContext(
            instruction_folder=instruction_folder,
            workdir_store=NixStore(store_path, runner, cfg.build.nix_command),
            workdir_archive=archive_path,
            flake_builder=FlakeBuilder(
                runner,
                nix_command=cfg.build.nix_command,
                system_attribute=cfg.build.system_attribute,
                verify_hostname=cfg.build.verify_hostname,
            ),
            progress=_progress,
            max_parallel_builds=cfg.build.max_parallel_builds,
        )

        try:
            builder = InstructionBuilder(default_registry())
            commands = asyncio.run(builder.build_folder(requests, ctx))
            _progress("Compressing instruction")
            compress_folder(instruction_folder, output, cfg.compression.preset)
        finally:
            shutil.rmtree(instruction_folder, ignore_errors=True)

    if output != "-":
        console.print(
            f"[green]Created[/green] {output} ({len(commands)} command(s): "
            f"{', '.join(c.kind for c in commands)})"
        )


@app.command("exec")
def exec_(
    instruction: Path = typer.Argument(..., help="Instruction .tar.xz file"),
    workdir: str | None = typer.Option(
        None, "--workdir", "-w", help="Extraction directory, defaults to /tmp/nsync-<id>"
    ),
    store: str | None = typer.Option(
        None, "--store", "-s", help="Root of the target store, defaults to /"
    ),
) -> None:
    """Apply an instruction to this machine (requires root)."""
    cfg = _get_config()

    with _handle_errors():
        if not _is_root():
            raise NsyncError(
                "This command must be run as root",
                "Root access is required, as this command writes to the nix store "
                "and modifies system generations.",
            )

        store_root = str(Path(store or cfg.target.store_path).resolve())
        workdir_path = Path(workdir or f"/tmp/nsync-{_new_id()}").resolve()
        instruction_path = instruction.resolve()

        runner = CommandRunner()
        ctx = ExecutionContext(
            instruction_folder=workdir_path,
            target_store=NixStore(store_root, runner, cfg.build.nix_command),
            narinfo_cache=NarinfoCache.for_state_dir(
                _target_state_dir(store_root, cfg.target.state_dir)
            ),
            generations=_generation_manager(cfg, store_root, runner),
            runner=runner,
            reboot_command=list(cfg.target.reboot_command),
            progress=_progress,
        )

        try:
            # Leftovers from an interrupted run would be cached as shipped narinfos.
            shutil.rmtree(workdir_path, ignore_errors=True)
            workdir_path.mkdir(parents=True)
            _progress(f"Decompressing instruction to {workdir_path}")
            decompress_file(instruction_path, workdir_path)

            _progress(f"Executing instruction in {workdir_path}")
            InstructionExecutor(default_registry()).execute_folder(ctx)
        finally:
            _progress("Cleaning up")
            shutil.rmtree(workdir_path, ignore_errors=True)

    console.print("[green]Instruction applied.[/green]")


def _generation_manager(
    cfg: NsyncConfig, store_root: str, runner: CommandRunner
) -> GenerationManager:
    return GenerationManager(
        store_root,
        runner,
        profile=cfg.target.profile,
        chroot_command=cfg.target.chroot_command,
        install_bootloader=cfg.target.install_bootloader,
        gc_command=cfg.target.gc_command,
    )


# ---------------------------------------------------------------------------
# Read-only views
# ---------------------------------------------------------------------------


def _describe(command) -> str:
    if command.kind == "load":
        deps = ", ".join(d.git_revision[:12] for d in command.delta_dependencies) or "none"
        partial = " [partial narinfos]" if command.partial_narinfos else ""
        return (
            f"{command.item.nix_path} @ {command.item.git_revision[:12]}\n"
            f"[dim]archive:[/dim] {command.archive_path}  [dim]deps:[/dim] {deps}{partial}"
        )
    if command.kind == "switch":
        return f"{command.item.nix_path} @ {command.item.git_revision[:12]} ({command.mode})"
    if command.kind == "cleanup":
        return f"keep {command.generations_to_keep} generation(s)"
    if command.kind == "reboot":
        delay = command.delay_seconds
        return f"after {delay}s" if delay else "immediately"
    return ""


@app.command()
def inspect(
    instruction: Path = typer.Argument(..., help="Instruction .tar.xz file"),
) -> None:
    """Show the commands in an instruction file without applying it."""
    registry = default_registry()
    with _handle_errors(), tempfile.TemporaryDirectory(prefix="nsync-inspect-") as tmp:
        folder = Path(tmp)
        decompress_file(instruction, folder)
        commands = InstructionExecutor(registry).load(folder)

        table = Table(title=f"Instruction ({len(commands)} command(s))")
        table.add_column("#", justify="right")
        table.add_column("Kind", style="cyan")
        table.add_column("Details")
        for index, command in enumerate(commands, start=1):
            table.add_row(str(index), command.kind, _describe(command))
        rprint(table)

        for command in commands:
            if command.kind != "load":
                continue
            archive = folder / command.archive_path
            rprint(
                Panel(
                    f"[dim]Narinfos:[/dim] {len(list_narinfo_files(archive))}",
                    title=f"Archive {command.archive_path}",
                    border_style="blue",
                )
            )


@app.command()
def generations(
    store: str | None = typer.Option(
        None, "--store", "-s", help="Root of the target store, defaults to /"
    ),
) -> None:
    """List the system profile's generations."""
    cfg = _get_config()
    store_root = store or cfg.target.store_path
    listing = _generation_manager(cfg, store_root, CommandRunner()).list_generations()

    if not listing.all:
        rprint(f"[yellow]No generations found under {store_root}.[/yellow]")
        raise typer.Exit(0)

    table = Table(title=f"Generations ({len(listing.all)})")
    table.add_column("Number", justify="right")
    table.add_column("Target", style="green")
    table.add_column("Current", style="cyan")
    current = listing.current.number if listing.current else None
    for generation in listing.all:
        table.add_row(
            str(generation.number),
            generation.target_path,
            "*" if generation.number == current else "",
        )
    rprint(table)


# ---------------------------------------------------------------------------
# Config commands
# ---------------------------------------------------------------------------


@config_app.command("show")
def config_show() -> None:
    """Print the effective configuration and where it came from."""
    cfg = _get_config()
    source = find_config_file(_config_path)
    rprint(f"[dim]# source: {source or 'built-in defaults'}[/dim]")
    rprint(Syntax(yaml.safe_dump(cfg.model_dump(), sort_keys=False), "yaml"))


@config_app.command("init")
def config_init(
    user: bool = typer.Option(
        False, "--user", help="Write ~/.nsync/config.yaml instead of ./nsync.yaml"
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite an existing file"),
) -> None:
    """Write the commented default nsync config."""
    target = Path.home() / USER_CONFIG if user else PROJECT_CONFIG
    if target.exists() and not force:
        rprint(f"[yellow]{target} already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Wrote default nsync config to[/green] {target}")
