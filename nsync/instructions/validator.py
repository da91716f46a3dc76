"""Instruction Validator: dry-run of the whole instruction against the target."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pydantic import BaseModel

from nsync.errors import InstructionValidationError
from nsync.instructions.models import LoadCommand, SwitchCommand
from nsync.store.cache import NarinfoCache
from nsync.store.nix import NixStore

logger = logging.getLogger(__name__)


def validate_instruction(
    instruction: Sequence[BaseModel],
    store: NixStore,
    cache: NarinfoCache,
) -> InstructionValidationError | None:
    """Return the first precondition failure, or ``None`` if all hold.

    A path is available if the target store has it or an earlier command
    in the same instruction introduced it as its ``item``. A partial load
    also needs a narinfo for each dependency: the cache has one, or an
    earlier load shipped it and will have cached it by then. Nothing is
    mutated here.
    """
    introduced: set[str] = set()

    def available(path: str) -> bool:
        return path in introduced or store.has_path(path)

    for command in instruction:
        if isinstance(command, LoadCommand):
            for dependency in command.delta_dependencies:
                path = dependency.nix_path
                if not available(path):
                    return InstructionValidationError(
                        "load", path, "a dependent derivation is missing in the nix store"
                    )
                if (
                    command.partial_narinfos
                    and path not in introduced
                    and not cache.has_path(path)
                ):
                    return InstructionValidationError(
                        "load", path, "a dependent derivation is missing in the narinfo cache"
                    )
            introduced.add(command.item.nix_path)
        elif isinstance(command, SwitchCommand):
            path = command.item.nix_path
            if not available(path):
                return InstructionValidationError(
                    "switch", path, "the new derivation is missing in the nix store"
                )
            introduced.add(path)

    logger.debug("instruction of %d command(s) passed validation", len(instruction))
    return None
