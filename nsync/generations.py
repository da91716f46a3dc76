"""System profile generations on the target: numbering, creation, retention."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from nsync.process import CommandRunner

logger = logging.getLogger(__name__)

Activation = Literal["switch", "boot"]

_GENERATION_RE = re.compile(r"-(\d+)-link$")


@dataclass(frozen=True)
class Generation:
    """One numbered ``<profile>-<N>-link`` symlink."""

    number: int
    link_path: Path
    target_path: str


@dataclass(frozen=True)
class GenerationListing:
    """All generations of a profile plus the current and highest ones."""

    current: Generation | None = None
    highest: Generation | None = None
    all: tuple[Generation, ...] = field(default_factory=tuple)


def list_generations(profile_prefix: Path) -> GenerationListing:
    """Scan the symlinks next to *profile_prefix*.

    The sibling named exactly like the profile is the live pointer; its
    link target's filename picks the current generation. Siblings named
    ``<base>-<N>-link`` are generations. Anything else is ignored.
    """
    profile_prefix = Path(profile_prefix)
    folder = profile_prefix.parent
    base = profile_prefix.name
    if not folder.is_dir():
        return GenerationListing()

    current_name: str | None = None
    generations: list[Generation] = []
    for entry in sorted(folder.iterdir()):
        if not entry.is_symlink():
            continue
        target = os.readlink(entry)
        if entry.name == base:
            current_name = Path(target).name
            continue
        if not entry.name.startswith(f"{base}-"):
            continue
        match = _GENERATION_RE.search(entry.name)
        if not match or entry.name != f"{base}-{match.group(1)}-link":
            continue
        generations.append(
            Generation(number=int(match.group(1)), link_path=entry, target_path=target)
        )

    generations.sort(key=lambda g: g.number)
    current = next((g for g in generations if g.link_path.name == current_name), None)
    highest = generations[-1] if generations else None
    return GenerationListing(current=current, highest=highest, all=tuple(generations))


class GenerationManager:
    """Creates, activates and retires generations of a target's system profile.

    When the store root isn't ``/``, commands that must see the target's own
    filesystem (activation, garbage collection) go through *chroot_command*
    (``nixos-enter --root <root> -- ...`` by default).
    """

    def __init__(
        self,
        store_root: str | Path = "/",
        runner: CommandRunner | None = None,
        profile: str = "nix/var/nix/profiles/system",
        chroot_command: Sequence[str] = ("nixos-enter", "--root"),
        install_bootloader: bool = True,
        gc_command: Sequence[str] = ("nix-store", "--gc"),
    ) -> None:
        self.store_root = Path(store_root)
        self.runner = runner or CommandRunner()
        self.profile = profile.strip("/")
        self.chroot_command = list(chroot_command)
        self.install_bootloader = install_bootloader
        self.gc_command = list(gc_command)

    @property
    def is_host_root(self) -> bool:
        return self.store_root == Path("/")

    @property
    def profile_path(self) -> Path:
        return self.store_root / self.profile

    def link_name(self, number: int) -> str:
        return f"{self.profile_path.name}-{number}-link"

    def list_generations(self) -> GenerationListing:
        return list_generations(self.profile_path)

    # ------------------------------------------------------------------
    # Creation and activation
    # ------------------------------------------------------------------

    def create_generation(
        self, item_path: str, activation: Activation | None = None
    ) -> int:
        """Link *item_path* as the next generation and optionally activate it.

        Without *activation* the generation is only registered; the live
        profile pointer is left alone.
        """
        listing = self.list_generations()
        number = (listing.highest.number if listing.highest else 0) + 1

        link = self.profile_path.parent / self.link_name(number)
        link.parent.mkdir(parents=True, exist_ok=True)
        link.symlink_to(item_path)
        logger.info("created generation %d -> %s", number, item_path)

        if activation is not None:
            self._point_profile_at(number)
            self.activate(number, activation)
        return number

    def _point_profile_at(self, number: int) -> None:
        """Atomically repoint the live profile symlink at generation *number*."""
        profile = self.profile_path
        tmp_link = profile.with_name(f".{profile.name}.new")
        if tmp_link.exists() or tmp_link.is_symlink():
            tmp_link.unlink()
        tmp_link.symlink_to(self.link_name(number))
        tmp_link.rename(profile)
        logger.info("switched %s -> %s", profile, self.link_name(number))

    def activate(self, number: int, action: Activation) -> None:
        """Run the generation's ``switch-to-configuration <action>``."""
        script = f"/{self.profile}-{number}-link/bin/switch-to-configuration"
        env = {"NIXOS_INSTALL_BOOTLOADER": "1"} if self.install_bootloader else {}
        self.run_in_target(
            [script, action],
            env=env,
            summary=f"Failed to activate generation {number} ({action})",
        )

    def run_in_target(
        self,
        args: Sequence[str],
        env: Mapping[str, str] | None = None,
        summary: str | None = None,
    ) -> None:
        env = dict(env or {})
        if self.is_host_root:
            self.runner.run(list(args), env=env or None, summary=summary)
            return

        assignments = [f"{k}={v}" for k, v in env.items()]
        wrapped = [*self.chroot_command, str(self.store_root), "--", "env", *assignments, *args]
        self.runner.run(wrapped, summary=summary)

    # ------------------------------------------------------------------
    # Retention
    # ------------------------------------------------------------------

    def cleanup(self, generations_to_keep: int) -> list[int]:
        """Delete old generations, then garbage-collect the store once.

        The current generation always survives, and the newest ones fill up
        the rest of *generations_to_keep*. Without generations or without a
        resolvable current one nothing is touched. Returns deleted numbers.
        """
        if generations_to_keep < 1:
            raise ValueError("generations_to_keep must be positive")

        listing = self.list_generations()
        if not listing.all or listing.current is None:
            logger.info("no current generation found under %s, skipping cleanup", self.profile_path)
            return []

        keep = {listing.current.number}
        for generation in reversed(listing.all):
            if len(keep) >= generations_to_keep:
                break
            keep.add(generation.number)

        deleted: list[int] = []
        for generation in listing.all:
            if generation.number in keep:
                continue
            generation.link_path.unlink()
            deleted.append(generation.number)
            logger.info("deleted generation %d", generation.number)

        self.run_in_target(self.gc_command, summary="Failed to collect garbage")
        return deleted
