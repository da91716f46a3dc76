"""nsync - delta transfer of NixOS systems through offline instruction files."""

from nsync.config import NsyncConfig, load_config
from nsync.errors import NsyncError
from nsync.generations import GenerationManager, list_generations
from nsync.instructions import InstructionBuilder, InstructionExecutor, default_registry
from nsync.store import NixStore, compute_delta, make_archive_subset, resolve_closure

__version__ = "0.1.0"

__all__ = [
    "GenerationManager",
    "InstructionBuilder",
    "InstructionExecutor",
    "NixStore",
    "NsyncConfig",
    "NsyncError",
    "compute_delta",
    "default_registry",
    "list_generations",
    "load_config",
    "make_archive_subset",
    "resolve_closure",
]
