"""Packaging a minimal subset of a file-based binary cache."""

from __future__ import annotations

import logging
import posixpath
import shutil
from collections.abc import Sequence
from pathlib import Path

from nsync.errors import PackagingError
from nsync.store.narinfo import VIRTUAL_URL, narinfo_filename
from nsync.store.path_info import NarinfoDirectory, PathInfoProvider

logger = logging.getLogger(__name__)


def make_archive_subset(
    source_dir: Path,
    dest_dir: Path,
    info_item_paths: Sequence[str],
    data_item_paths: Sequence[str],
    provider: PathInfoProvider | None = None,
) -> None:
    """Copy the narinfos of *info_item_paths* and the NARs of *data_item_paths*.

    *data_item_paths* must be a subset of *info_item_paths*. *dest_dir* is
    deleted and recreated first. Narinfo files are copied verbatim; NARs
    keep the relative location recorded in their narinfo ``URL``.
    """
    source_dir = Path(source_dir)
    dest_dir = Path(dest_dir)
    if provider is None:
        provider = NarinfoDirectory(source_dir)

    shutil.rmtree(dest_dir, ignore_errors=True)
    dest_dir.mkdir(parents=True)

    for item in info_item_paths:
        filename = narinfo_filename(item)
        if not (source_dir / filename).is_file():
            raise PackagingError(
                "Failed to make a partial archive for instruction",
                f"No narinfo in {source_dir} for item {item}",
            )
        shutil.copyfile(source_dir / filename, dest_dir / filename)

    infos = provider.query(list(data_item_paths))
    for item in data_item_paths:
        url = infos[item].url
        if not url or url == VIRTUAL_URL:
            raise PackagingError(
                "Failed to make a partial archive for instruction",
                f"No url in the archive for data item {item}",
            )
        relative = posixpath.normpath(url)
        if relative.startswith("..") or posixpath.isabs(relative):
            raise PackagingError(
                "Failed to make a partial archive for instruction",
                f"Data item {item} has a url outside the archive: {url}",
            )
        destination = dest_dir / relative
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source_dir / relative, destination)

    logger.info(
        "packaged archive subset at %s: %d narinfo(s), %d nar(s)",
        dest_dir,
        len(info_item_paths),
        len(data_item_paths),
    )
