"""Nix-backed store access: path-info queries and archive transport."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from nsync.errors import BuildError, MissingPathError, NsyncError
from nsync.process import CommandRunner
from nsync.store.models import PathRecord

logger = logging.getLogger(__name__)

_MISSING_MARKERS = ("is not valid", "does not exist", "is not in the Nix store")


class NixStore:
    """A nix store addressed by root directory or store URI.

    ``location`` of ``None`` or ``/`` means the host's own store, in which
    case no ``--store`` flag is passed at all.
    """

    def __init__(
        self,
        location: str | Path | None = None,
        runner: CommandRunner | None = None,
        nix_command: str = "nix",
    ) -> None:
        self.location = str(location) if location is not None else None
        self.runner = runner or CommandRunner()
        self.nix_command = nix_command

    def __repr__(self) -> str:
        return f"NixStore({self.location!r})"

    @property
    def is_host_store(self) -> bool:
        return self.location in (None, "/")

    def _store_args(self) -> list[str]:
        return [] if self.is_host_store else ["--store", self.location]

    # ------------------------------------------------------------------
    # Path info
    # ------------------------------------------------------------------

    def query(self, paths: Sequence[str]) -> dict[str, PathRecord]:
        """Batch ``nix path-info --json``; raises MissingPathError for unknown ids."""
        paths = list(dict.fromkeys(paths))
        if not paths:
            return {}

        args = [self.nix_command, "path-info", "--json", *self._store_args(), *paths]
        result = self.runner.run(args, summary="Failed to query path info", check=False)
        if result.returncode != 0:
            stderr = result.stderr or ""
            if any(marker in stderr for marker in _MISSING_MARKERS):
                named = [p for p in paths if p in stderr] or paths
                raise MissingPathError(named, store=self.location)
            raise BuildError(
                "Failed to query path info",
                args,
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=stderr,
            )

        records = parse_path_info_json(result.stdout)
        missing = [p for p in paths if p not in records]
        if missing:
            raise MissingPathError(missing, store=self.location)
        return records

    def has_path(self, path: str) -> bool:
        try:
            self.query([path])
        except MissingPathError:
            return False
        return True

    # ------------------------------------------------------------------
    # Archive transport
    # ------------------------------------------------------------------

    def copy_to_archive(self, item: str, archive_dir: Path) -> None:
        """Push *item* and its closure into a file-based binary cache."""
        self.runner.run(
            [self.nix_command, "copy", "--to", f"file://{archive_dir}", *self._store_args(), item],
            summary=f'Failed to copy store path "{item}" to archive at "{archive_dir}"',
        )

    def copy_from_archive(self, archive_dir: Path, item: str) -> None:
        """Pull *item* from a file-based binary cache into this store.

        Signature checks are disabled: archives built by nsync are unsigned.
        """
        logger.warning(
            "copying %s from %s without signature verification", item, archive_dir
        )
        self.runner.run(
            [
                self.nix_command,
                "copy",
                "--no-check-sigs",
                "--from",
                f"file://{archive_dir}",
                *self._store_args(),
                item,
            ],
            summary=f'Failed to copy archive from "{archive_dir}" into store path "{item}"',
        )


def parse_path_info_json(raw: str) -> dict[str, PathRecord]:
    """Parse ``nix path-info --json`` output.

    Accepts both layouts nix has shipped: a list of objects carrying
    ``path`` and ``valid``, and a mapping of path to object (``null`` for
    invalid paths). Invalid entries are left out of the result.
    """
    try:
        data = json.loads(raw or "[]")
    except json.JSONDecodeError as e:
        raise NsyncError("Failed to parse path info", f"{e}\n{raw[:500]}") from e

    entries: list[dict] = []
    if isinstance(data, dict):
        for path, info in data.items():
            if info is None:
                continue
            entries.append({"path": path, **info})
    elif isinstance(data, list):
        entries = [e for e in data if isinstance(e, dict)]
    else:
        raise NsyncError("Failed to parse path info", f"Unexpected JSON: {raw[:500]}")

    records: dict[str, PathRecord] = {}
    for entry in entries:
        if entry.get("valid") is False:
            continue
        try:
            record = PathRecord.model_validate(entry)
        except ValidationError as e:
            raise NsyncError("Failed to parse path info", str(e)) from e
        records[record.path] = record
    return records
