"""Path-info providers: anything that can describe store paths by id."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from nsync.errors import MissingPathError
from nsync.store.models import PathRecord
from nsync.store.narinfo import narinfo_filename, parse_narinfo

logger = logging.getLogger(__name__)


@runtime_checkable
class PathInfoProvider(Protocol):
    """Batch lookup of store path metadata.

    ``query`` resolves every requested id or raises MissingPathError naming
    the ids it could not resolve; it never silently drops one.
    """

    def query(self, paths: Sequence[str]) -> dict[str, PathRecord]: ...


class NarinfoDirectory:
    """PathInfoProvider over a flat directory of ``<hash>.narinfo`` files.

    Serves both file archives produced by ``nix copy --to file://...`` and
    the target's narinfo cache.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def __repr__(self) -> str:
        return f"NarinfoDirectory({str(self.root)!r})"

    def narinfo_path(self, path: str) -> Path:
        return self.root / narinfo_filename(path)

    def has_path(self, path: str) -> bool:
        return self.narinfo_path(path).is_file()

    def query(self, paths: Sequence[str]) -> dict[str, PathRecord]:
        found: dict[str, PathRecord] = {}
        missing: list[str] = []
        for path in dict.fromkeys(paths):
            narinfo = self.narinfo_path(path)
            if not narinfo.is_file():
                missing.append(path)
                continue
            record = parse_narinfo(narinfo.read_text(encoding="utf-8"))
            if record.path != path:
                logger.warning(
                    "narinfo %s describes %s, expected %s", narinfo, record.path, path
                )
                missing.append(path)
                continue
            found[path] = record
        if missing:
            raise MissingPathError(missing, store=str(self.root))
        return found
