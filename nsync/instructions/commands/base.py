"""Interface shared by every instruction command kind."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from pydantic import BaseModel

from nsync.instructions.context import BuildContext, ExecutionContext


class CommandImplementation(ABC):
    """One command kind: how to build it and how to apply it.

    ``build`` runs on the build machine and may be slow (it drives nix
    builds), so it is a coroutine. ``execute`` runs on the target, strictly
    one command at a time, and blocks until the mutation is done.
    """

    kind: ClassVar[str]
    schema: ClassVar[type[BaseModel]]
    request_type: ClassVar[type[BaseModel]]

    @abstractmethod
    async def build(self, request: BaseModel, ctx: BuildContext) -> BaseModel:
        """Turn a build request into a serializable command."""
        ...

    @abstractmethod
    def execute(self, command: BaseModel, ctx: ExecutionContext) -> None:
        """Apply a validated command to the target."""
        ...
