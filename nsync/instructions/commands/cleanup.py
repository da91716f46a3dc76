"""Cleanup: drop old generations and collect garbage."""

from __future__ import annotations

from nsync.instructions.commands.base import CommandImplementation
from nsync.instructions.context import BuildContext, ExecutionContext
from nsync.instructions.models import CleanupCommand, CleanupRequest


class StoreCleanupCommand(CommandImplementation):
    kind = "cleanup"
    schema = CleanupCommand
    request_type = CleanupRequest

    async def build(self, request: CleanupRequest, ctx: BuildContext) -> CleanupCommand:
        return CleanupCommand(generations_to_keep=request.generations_to_keep)

    def execute(self, command: CleanupCommand, ctx: ExecutionContext) -> None:
        ctx.progress(f"Keeping {command.generations_to_keep} generation(s)")
        deleted = ctx.generations.cleanup(command.generations_to_keep)
        if deleted:
            ctx.progress(f"Deleted generation(s) {', '.join(map(str, deleted))}")
