"""Instruction Builder: requests in, ``instruction.json`` plus archives out."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Sequence

from pydantic import BaseModel

from nsync.errors import InternalError, SchemaError
from nsync.instructions.context import BuildContext
from nsync.instructions.registry import CommandRegistry

logger = logging.getLogger(__name__)

INSTRUCTION_FILENAME = "instruction.json"


class InstructionBuilder:
    """Builds an instruction folder from an ordered list of requests."""

    def __init__(self, registry: CommandRegistry) -> None:
        self.registry = registry

    async def build_folder(
        self, requests: Sequence[BaseModel], ctx: BuildContext
    ) -> list[BaseModel]:
        """Recreate ``ctx.instruction_folder`` and fill it.

        Commands are built in request order. The finished list goes through
        the instruction schema again before anything is written; a mismatch
        means a command built something it can't read back.
        """
        folder = ctx.instruction_folder
        shutil.rmtree(folder, ignore_errors=True)
        folder.mkdir(parents=True)

        commands: list[BaseModel] = []
        for request in requests:
            implementation = self.registry.get(request.kind)
            if not isinstance(request, implementation.request_type):
                raise InternalError(
                    f'Wrong request type for the "{request.kind}" command',
                    f"Expected {implementation.request_type.__name__}, "
                    f"got {type(request).__name__}",
                )
            logger.info("building %s command", request.kind)
            commands.append(await implementation.build(request, ctx))

        serialized = self.registry.dump_instruction(commands)
        try:
            self.registry.parse_instruction(serialized)
        except SchemaError as e:
            raise InternalError(
                "Unexpected error",
                "Failed to build instruction because it doesn't match the schema. "
                f"This is a bug.\n{e.description}",
            ) from e

        (folder / INSTRUCTION_FILENAME).write_text(serialized, encoding="utf-8")
        logger.info("wrote %d command(s) to %s", len(commands), folder)
        return commands
