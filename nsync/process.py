"""Blocking execution of external tools (nix, git, reboot)."""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path

from nsync.errors import BuildError

logger = logging.getLogger(__name__)


class CommandRunner:
    """Runs external commands and turns non-zero exits into BuildError.

    Every invocation is logged before it starts. Output is captured so the
    error description can carry it; pass ``stream_stderr=True`` for long
    builds whose progress should reach the terminal directly.
    """

    def run(
        self,
        args: Sequence[str],
        *,
        summary: str | None = None,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        stream_stderr: bool = False,
    ) -> subprocess.CompletedProcess[str]:
        args = [str(a) for a in args]
        if cwd:
            logger.info("$ %s (cwd: %s)", shlex.join(args), cwd)
        else:
            logger.info("$ %s", shlex.join(args))

        full_env = None
        if env:
            full_env = {**os.environ, **env}

        try:
            result = subprocess.run(
                args,
                cwd=cwd,
                env=full_env,
                stdout=subprocess.PIPE,
                stderr=None if stream_stderr else subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError as e:
            raise BuildError(
                summary or f"Failed to run {args[0]}",
                args,
                returncode=127,
                stderr=str(e),
                cwd=str(cwd) if cwd else None,
            ) from e

        if check and result.returncode != 0:
            raise BuildError(
                summary or f"Command exited with code {result.returncode}",
                args,
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
                cwd=str(cwd) if cwd else None,
            )
        return result
