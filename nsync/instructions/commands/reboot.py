"""Reboot: the last command of an instruction; control doesn't come back."""

from __future__ import annotations

import logging
import shutil
import time

from nsync.instructions.commands.base import CommandImplementation
from nsync.instructions.context import BuildContext, ExecutionContext
from nsync.instructions.models import RebootCommand, RebootRequest

logger = logging.getLogger(__name__)


class RebootSystemCommand(CommandImplementation):
    kind = "reboot"
    schema = RebootCommand
    request_type = RebootRequest

    async def build(self, request: RebootRequest, ctx: BuildContext) -> RebootCommand:
        return RebootCommand(delay_seconds=request.delay_seconds)

    def execute(self, command: RebootCommand, ctx: ExecutionContext) -> None:
        # Nothing after a reboot would clean the folder up.
        shutil.rmtree(ctx.instruction_folder, ignore_errors=True)

        if command.delay_seconds:
            ctx.progress(f"Rebooting in {command.delay_seconds} second(s)")
            time.sleep(command.delay_seconds)

        logger.warning("rebooting")
        ctx.runner.run(ctx.reboot_command, summary="Failed to trigger reboot")
