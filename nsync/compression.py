"""Packing an instruction folder into a single ``.tar.xz`` and back."""

from __future__ import annotations

import logging
import lzma
import sys
import tarfile
from pathlib import Path
from typing import BinaryIO

from nsync.errors import NsyncError

logger = logging.getLogger(__name__)

# Archive blobs are already compressed, so a low preset is enough.
DEFAULT_PRESET = 2


def compress_folder(
    folder: Path, destination: Path | str, preset: int = DEFAULT_PRESET
) -> None:
    """Write *folder*'s contents as xz-compressed tar to *destination* (``-`` is stdout)."""
    folder = Path(folder)
    if str(destination) == "-":
        _write_tar_xz(folder, sys.stdout.buffer, preset)
        sys.stdout.buffer.flush()
    else:
        with open(destination, "wb") as f:
            _write_tar_xz(folder, f, preset)
    logger.info("compressed %s -> %s (preset %d)", folder, destination, preset)


def _write_tar_xz(folder: Path, out: BinaryIO, preset: int) -> None:
    try:
        with lzma.open(out, "wb", preset=preset) as xz:
            with tarfile.open(fileobj=xz, mode="w") as tar:
                tar.add(folder, arcname=".")
    except (OSError, tarfile.TarError, lzma.LZMAError) as e:
        raise NsyncError("Failed to compress instruction", str(e)) from e


def decompress_file(source: Path | str, destination: Path) -> None:
    """Extract an instruction file into *destination*, creating it if needed."""
    destination = Path(destination)
    destination.mkdir(parents=True, exist_ok=True)
    try:
        with lzma.open(source, "rb") as xz:
            with tarfile.open(fileobj=xz, mode="r|") as tar:
                tar.extractall(destination, filter="data")
    except FileNotFoundError as e:
        raise NsyncError("Failed to decompress instruction", f"No such file: {source}") from e
    except (OSError, tarfile.TarError, lzma.LZMAError) as e:
        raise NsyncError("Failed to decompress instruction", str(e)) from e
    logger.info("decompressed %s -> %s", source, destination)
