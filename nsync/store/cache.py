"""Target-local cache of narinfo files, keyed by content hash."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

from nsync.store.models import PathRecord
from nsync.store.narinfo import NARINFO_SUFFIX, narinfo_filename
from nsync.store.path_info import NarinfoDirectory

logger = logging.getLogger(__name__)

CACHE_DIRNAME = "narinfo-cache"


def list_narinfo_files(directory: Path) -> list[Path]:
    """Return the ``.narinfo`` files directly inside *directory*, sorted."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.iterdir() if p.is_file() and p.name.endswith(NARINFO_SUFFIX)
    )


class NarinfoCache:
    """Flat directory of ``<hash>.narinfo`` files kept on the target.

    Entries are write-once: the same hash always names byte-identical
    metadata, so an existing file is never replaced.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.view = NarinfoDirectory(self.root)

    @classmethod
    def for_state_dir(cls, state_dir: Path) -> NarinfoCache:
        return cls(Path(state_dir) / CACHE_DIRNAME)

    @property
    def store_uri(self) -> str:
        return f"file://{self.root}"

    def lookup(self, record: PathRecord | str) -> Path:
        path = record.path if isinstance(record, PathRecord) else record
        return self.root / narinfo_filename(path)

    def has_path(self, path: str) -> bool:
        return self.view.has_path(path)

    def write(self, source_files: Iterable[Path]) -> int:
        """Copy narinfo files into the cache unless already present.

        Returns the number of files actually copied.
        """
        self.root.mkdir(parents=True, exist_ok=True)
        copied = 0
        for source in source_files:
            source = Path(source)
            destination = self.root / source.name
            if destination.exists():
                continue
            shutil.copyfile(source, destination)
            copied += 1
        logger.debug("narinfo cache %s: %d new entr(ies)", self.root, copied)
        return copied
