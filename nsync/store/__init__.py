"""Store metadata, closures, deltas and archive packaging."""

from nsync.store.archive import make_archive_subset
from nsync.store.cache import NarinfoCache, list_narinfo_files
from nsync.store.closure import compute_delta, resolve_closure
from nsync.store.models import DeltaResult, PathRecord
from nsync.store.narinfo import hash_part, narinfo_filename, parse_narinfo, render_narinfo
from nsync.store.nix import NixStore
from nsync.store.path_info import NarinfoDirectory, PathInfoProvider

__all__ = [
    "DeltaResult",
    "NarinfoCache",
    "NarinfoDirectory",
    "NixStore",
    "PathInfoProvider",
    "PathRecord",
    "compute_delta",
    "hash_part",
    "list_narinfo_files",
    "make_archive_subset",
    "narinfo_filename",
    "parse_narinfo",
    "render_narinfo",
    "resolve_closure",
]
