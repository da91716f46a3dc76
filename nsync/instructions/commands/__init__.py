"""The fixed set of command kinds an instruction can contain."""

from nsync.instructions.commands.base import CommandImplementation
from nsync.instructions.commands.cleanup import StoreCleanupCommand
from nsync.instructions.commands.load import LoadArchiveCommand
from nsync.instructions.commands.reboot import RebootSystemCommand
from nsync.instructions.commands.switch import StoreSwitchCommand

__all__ = [
    "CommandImplementation",
    "LoadArchiveCommand",
    "RebootSystemCommand",
    "StoreCleanupCommand",
    "StoreSwitchCommand",
]
