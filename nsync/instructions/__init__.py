"""Typed, ordered instructions: build on one machine, apply on another."""

from nsync.instructions.builder import INSTRUCTION_FILENAME, InstructionBuilder
from nsync.instructions.context import BuildContext, ExecutionContext
from nsync.instructions.executor import InstructionExecutor
from nsync.instructions.models import (
    CleanupCommand,
    CleanupRequest,
    LoadCommand,
    LoadRequest,
    RebootCommand,
    RebootRequest,
    StoreRoot,
    SwitchCommand,
    SwitchRequest,
)
from nsync.instructions.registry import CommandRegistry, default_registry
from nsync.instructions.validator import validate_instruction

__all__ = [
    "BuildContext",
    "CleanupCommand",
    "CleanupRequest",
    "CommandRegistry",
    "ExecutionContext",
    "INSTRUCTION_FILENAME",
    "InstructionBuilder",
    "InstructionExecutor",
    "LoadCommand",
    "LoadRequest",
    "RebootCommand",
    "RebootRequest",
    "StoreRoot",
    "SwitchCommand",
    "SwitchRequest",
    "default_registry",
    "validate_instruction",
]
