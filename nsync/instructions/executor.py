"""Instruction Executor: validate, then apply commands front to back."""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import BaseModel

from nsync.errors import NsyncError
from nsync.instructions.builder import INSTRUCTION_FILENAME
from nsync.instructions.context import ExecutionContext
from nsync.instructions.registry import CommandRegistry
from nsync.instructions.validator import validate_instruction

logger = logging.getLogger(__name__)


class InstructionExecutor:
    """Applies an unpacked instruction folder to the target.

    Validation runs to completion before the first command executes. After
    that the first failing command aborts the rest; earlier commands are not
    rolled back.
    """

    def __init__(self, registry: CommandRegistry) -> None:
        self.registry = registry

    def load(self, folder: Path) -> list[BaseModel]:
        path = folder / INSTRUCTION_FILENAME
        if not path.is_file():
            raise NsyncError(
                "Unable to read instruction",
                f"No {INSTRUCTION_FILENAME} found in {folder}",
            )
        return self.registry.parse_instruction(path.read_bytes())

    def execute_folder(self, ctx: ExecutionContext) -> list[BaseModel]:
        instruction = self.load(ctx.instruction_folder)

        ctx.progress("Checking the instruction against the store")
        error = validate_instruction(instruction, ctx.target_store, ctx.narinfo_cache)
        if error is not None:
            raise error

        for index, command in enumerate(instruction, start=1):
            ctx.progress(f"[{index}/{len(instruction)}] {command.kind}")
            logger.info("executing command %d/%d: %s", index, len(instruction), command.kind)
            self.registry.get(command.kind).execute(command, ctx)
        return instruction
