"""Explicit registry of command kinds and the instruction schema derived from it."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Annotated, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from nsync.errors import InternalError, SchemaError
from nsync.instructions.commands import (
    CommandImplementation,
    LoadArchiveCommand,
    RebootSystemCommand,
    StoreCleanupCommand,
    StoreSwitchCommand,
)

logger = logging.getLogger(__name__)


class CommandRegistry:
    """The closed set of command kinds an instruction may contain.

    The set is passed in at construction; nothing registers itself. The
    instruction schema is the list of the registered command schemas,
    discriminated by ``kind``.
    """

    def __init__(self, commands: Sequence[CommandImplementation]) -> None:
        if not commands:
            raise ValueError("A command registry needs at least one command")
        self._commands: dict[str, CommandImplementation] = {}
        for command in commands:
            if command.kind in self._commands:
                raise ValueError(f"Duplicate command kind: {command.kind}")
            self._commands[command.kind] = command

        schemas = tuple(c.schema for c in commands)
        if len(schemas) == 1:
            item_type = schemas[0]
        else:
            item_type = Annotated[Union[schemas], Field(discriminator="kind")]
        self._adapter = TypeAdapter(list[item_type])

    @property
    def kinds(self) -> list[str]:
        return list(self._commands)

    def get(self, kind: str) -> CommandImplementation:
        try:
            return self._commands[kind]
        except KeyError:
            raise InternalError(
                f'No implementation for the "{kind}" command',
                f"Registered kinds: {', '.join(self._commands)}",
            ) from None

    def parse_instruction(self, raw: str | bytes) -> list[BaseModel]:
        """Decode and structurally validate an ``instruction.json`` payload."""
        try:
            return self._adapter.validate_json(raw)
        except ValidationError as e:
            raise SchemaError(
                "The instruction file doesn't match the schema",
                str(e),
            ) from e

    def dump_instruction(self, commands: Sequence[BaseModel]) -> str:
        payload = [
            c.model_dump(mode="json", by_alias=True, exclude_none=True) for c in commands
        ]
        return json.dumps(payload, indent=2)


DEFAULT_COMMANDS: tuple[type[CommandImplementation], ...] = (
    LoadArchiveCommand,
    StoreSwitchCommand,
    StoreCleanupCommand,
    RebootSystemCommand,
)


def default_registry() -> CommandRegistry:
    return CommandRegistry([command() for command in DEFAULT_COMMANDS])
