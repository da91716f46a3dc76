"""Git pointers: concrete revisions versus symbolic refs."""

from __future__ import annotations

import re
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

_GIT_REV_RE = re.compile(r"(?:[0-9a-fA-F]{40}|[0-9a-fA-F]{64})")


class GitPointer(BaseModel):
    """Either an immutable revision (``kind="rev"``) or a ref to resolve first."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["rev", "ref"]
    value: str = Field(min_length=1)

    @property
    def is_rev(self) -> bool:
        return self.kind == "rev"

    def __str__(self) -> str:
        return self.value


def looks_like_git_rev(value: str) -> bool:
    return _GIT_REV_RE.fullmatch(value) is not None


def parse_git_pointer(value: str) -> GitPointer:
    value = value.strip()
    return GitPointer(kind="rev" if looks_like_git_rev(value) else "ref", value=value)
