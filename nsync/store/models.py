"""Data models for store path metadata."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PathRecord(BaseModel):
    """Metadata for one store path, as reported by ``nix path-info --json``.

    Immutable once produced by the store. Field names follow nix's JSON
    (``narHash``, ``narSize``...) so records parse straight from its output.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    path: str = Field(min_length=1)
    nar_hash: str
    nar_size: int = Field(ge=0)
    references: tuple[str, ...] = ()
    url: str | None = None
    signatures: tuple[str, ...] | None = None
    deriver: str | None = None
    ca: str | None = None
    registration_time: int | None = None


class DeltaResult(BaseModel):
    """Closure of the new root plus the part of it absent from every baseline.

    Both tuples are sorted by path so archives built from them are
    byte-reproducible.
    """

    model_config = ConfigDict(frozen=True)

    all_resulting_items: tuple[PathRecord, ...]
    added: tuple[PathRecord, ...]

    @property
    def added_paths(self) -> list[str]:
        return [r.path for r in self.added]

    @property
    def all_paths(self) -> list[str]:
        return [r.path for r in self.all_resulting_items]
