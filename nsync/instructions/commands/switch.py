"""Switch: register a built system as a new generation, optionally activating it."""

from __future__ import annotations

import asyncio

from nsync.flake.git import parse_git_pointer
from nsync.instructions.commands.base import CommandImplementation
from nsync.instructions.context import BuildContext, ExecutionContext
from nsync.instructions.models import StoreRoot, SwitchCommand, SwitchRequest


class StoreSwitchCommand(CommandImplementation):
    kind = "switch"
    schema = SwitchCommand
    request_type = SwitchRequest

    async def build(self, request: SwitchRequest, ctx: BuildContext) -> SwitchCommand:
        ctx.progress("Building switch command")
        built = await asyncio.to_thread(
            ctx.flake_builder.build,
            request.flake_uri,
            request.hostname,
            parse_git_pointer(request.new_ref),
            ctx.store_location,
        )
        return SwitchCommand(
            item=StoreRoot(nix_path=built.output_path, git_revision=built.git_revision),
            mode=request.mode,
        )

    def execute(self, command: SwitchCommand, ctx: ExecutionContext) -> None:
        # next-reboot leaves activation to the bootloader's default entry
        activation = "switch" if command.mode == "immediate" else None
        ctx.progress(f"Creating generation for {command.item.nix_path}")
        number = ctx.generations.create_generation(command.item.nix_path, activation)
        ctx.progress(f"Generation {number} created ({command.mode})")
