"""Command variants written to ``instruction.json`` and the requests that build them.

Commands serialize with camelCase keys (``archivePath``, ``nixPath``...)
and are tagged by ``kind``. Requests are build-side only and never leave
the build machine.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SwitchMode = Literal["immediate", "next-reboot"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )


class StoreRoot(_CamelModel):
    """A build output bound to the git revision that produced it."""

    nix_path: str = Field(min_length=1)
    git_revision: str = Field(min_length=1)


class LoadCommand(_CamelModel):
    """Load a partial archive (relative to the instruction folder) into the store."""

    kind: Literal["load"] = "load"
    archive_path: str = Field(min_length=1)
    delta_dependencies: tuple[StoreRoot, ...] = ()
    partial_narinfos: bool = False
    item: StoreRoot


class SwitchCommand(_CamelModel):
    kind: Literal["switch"] = "switch"
    item: StoreRoot
    mode: SwitchMode = "next-reboot"


class CleanupCommand(_CamelModel):
    kind: Literal["cleanup"] = "cleanup"
    generations_to_keep: int = Field(gt=0)


class RebootCommand(_CamelModel):
    kind: Literal["reboot"] = "reboot"
    delay_seconds: int | None = Field(default=None, gt=0)


Command = LoadCommand | SwitchCommand | CleanupCommand | RebootCommand


# ---------------------------------------------------------------------------
# Build requests
# ---------------------------------------------------------------------------


class _Request(BaseModel):
    model_config = ConfigDict(frozen=True)


class LoadRequest(_Request):
    kind: Literal["load"] = "load"
    flake_uri: str
    hostname: str
    archive_folder_name: str = "archive"
    delta_dependency_refs: tuple[str, ...] = ()
    new_ref: str
    partial_narinfos: bool = False


class SwitchRequest(_Request):
    kind: Literal["switch"] = "switch"
    flake_uri: str
    hostname: str
    new_ref: str
    mode: SwitchMode = "next-reboot"


class CleanupRequest(_Request):
    kind: Literal["cleanup"] = "cleanup"
    generations_to_keep: int = Field(gt=0)


class RebootRequest(_Request):
    kind: Literal["reboot"] = "reboot"
    delay_seconds: int | None = Field(default=None, gt=0)


Request = LoadRequest | SwitchRequest | CleanupRequest | RebootRequest
