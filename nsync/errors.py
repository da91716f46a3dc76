"""Error taxonomy shared by the build and execute phases."""

from __future__ import annotations

import shlex
from collections.abc import Sequence


class NsyncError(Exception):
    """Base error carrying a short summary and a longer technical description."""

    def __init__(self, summary: str, description: str = "") -> None:
        self.summary = summary
        self.description = description
        super().__init__(summary)


class InternalError(NsyncError):
    """Raised for states that can only be reached through a bug in nsync itself."""


class MissingPathError(NsyncError):
    """Closure resolution or a path-info query hit store paths that don't exist."""

    def __init__(self, paths: Sequence[str], store: str | None = None) -> None:
        self.paths = tuple(paths)
        self.store = store
        where = f" in {store}" if store else ""
        super().__init__(
            f"Could not find path info for {len(self.paths)} path(s){where}",
            "Missing paths:\n" + "\n".join(f"  {p}" for p in self.paths),
        )


class PackagingError(NsyncError):
    """The source archive lacks metadata required to build an archive subset."""


class SchemaError(NsyncError):
    """An instruction file failed structural validation on decode."""


class InstructionValidationError(NsyncError):
    """A command's precondition failed before any mutation took place."""

    def __init__(self, kind: str, path: str, reason: str) -> None:
        self.kind = kind
        self.path = path
        self.reason = reason
        super().__init__(
            f'Unable to execute "{kind}" instruction',
            f'A check failed for the "{kind}" instruction because {reason}: {path}',
        )


class BuildError(NsyncError):
    """An external tool exited non-zero.

    The description bundles everything needed to reproduce the failure:
    command line, working directory, exit code and captured output.
    """

    def __init__(
        self,
        summary: str,
        args: Sequence[str],
        returncode: int,
        stdout: str | None = None,
        stderr: str | None = None,
        cwd: str | None = None,
    ) -> None:
        self.args_list = list(args)
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        self.cwd = cwd
        lines = [
            f"Command: {shlex.join(self.args_list)}",
            f"Exit code: {returncode}",
        ]
        if cwd:
            lines.append(f"Working directory: {cwd}")
        if self.stdout.strip():
            lines.append(f"stdout:\n{self.stdout.rstrip()}")
        if self.stderr.strip():
            lines.append(f"stderr:\n{self.stderr.rstrip()}")
        super().__init__(summary, "\n".join(lines))
