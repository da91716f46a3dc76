"""Shared state handed to commands during the build and execute phases.

The two contexts have disjoint fields on purpose: building happens where
the flake and the scratch store live, executing happens on the target with
only its own store and narinfo cache in reach.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from nsync.flake.builder import FlakeBuilder
from nsync.generations import GenerationManager
from nsync.process import CommandRunner
from nsync.store.cache import NarinfoCache
from nsync.store.nix import NixStore

ProgressCallback = Callable[[str], None]


def _ignore_progress(message: str) -> None:
    pass


@dataclass
class BuildContext:
    instruction_folder: Path
    workdir_store: NixStore
    workdir_archive: Path
    flake_builder: FlakeBuilder
    progress: ProgressCallback = _ignore_progress
    max_parallel_builds: int = 1

    @property
    def store_location(self) -> str | None:
        return self.workdir_store.location


@dataclass
class ExecutionContext:
    instruction_folder: Path
    target_store: NixStore
    narinfo_cache: NarinfoCache
    generations: GenerationManager
    runner: CommandRunner = field(default_factory=CommandRunner)
    reboot_command: list[str] = field(default_factory=lambda: ["reboot"])
    progress: ProgressCallback = _ignore_progress
