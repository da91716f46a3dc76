"""Building NixOS system configurations from a flake at a git pointer."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError

from nsync.errors import NsyncError
from nsync.flake.git import GitPointer
from nsync.process import CommandRunner

logger = logging.getLogger(__name__)


class FlakeBuildResult(BaseModel):
    """Output of one system build, bound to the revision that produced it."""

    model_config = ConfigDict(frozen=True)

    output_path: str
    derivation_path: str
    git_revision: str


class _BuildOutputs(BaseModel):
    out: str


class _BuildEntry(BaseModel):
    drvPath: str
    outputs: _BuildOutputs


def with_query(uri: str, key: str, value: str) -> str:
    """Append ``key=value`` to a flake uri's query string."""
    separator = "&" if "?" in uri else "?"
    return f"{uri}{separator}{key}={value}"


class FlakeBuilder:
    """Resolves git pointers and builds system toplevels with ``nix build``."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        nix_command: str = "nix",
        system_attribute: str = "nixosConfigurations.{hostname}.config.system.build.toplevel",
        verify_hostname: bool = True,
    ) -> None:
        self.runner = runner or CommandRunner()
        self.nix_command = nix_command
        self.system_attribute = system_attribute
        self.verify_hostname = verify_hostname

    def _json(self, args: list[str], summary: str) -> object:
        result = self.runner.run(args, summary=summary)
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise NsyncError(summary, f"Unparseable output from {args[0]}: {result.stdout[:500]}") from e

    def resolve_revision(self, flake_uri: str, pointer: GitPointer) -> str:
        """Return the concrete revision *pointer* names.

        Revisions pass through untouched; refs are locked with
        ``nix flake metadata``.
        """
        if pointer.is_rev:
            return pointer.value

        uri = with_query(flake_uri, "ref", pointer.value)
        data = self._json(
            [self.nix_command, "flake", "metadata", "--json", uri],
            summary=f"Failed to resolve git ref {pointer.value!r}",
        )
        revision = None
        if isinstance(data, dict):
            revision = data.get("revision") or data.get("locked", {}).get("rev")
        if not revision:
            raise NsyncError(
                f"Failed to resolve git ref {pointer.value!r}",
                f"nix flake metadata reported no revision for {uri}. "
                "Uncommitted changes can't be built from a ref.",
            )
        logger.info("resolved %s to %s", pointer.value, revision)
        return revision

    def hostnames(self, flake_uri: str, revision: str) -> list[str]:
        uri = with_query(flake_uri, "rev", revision)
        data = self._json(
            [
                self.nix_command,
                "eval",
                "--json",
                f"{uri}#nixosConfigurations",
                "--apply",
                "builtins.attrNames",
            ],
            summary="Failed to list flake configurations",
        )
        return sorted(data) if isinstance(data, list) else []

    def build(
        self,
        flake_uri: str,
        hostname: str,
        pointer: GitPointer,
        store: str | Path | None = None,
    ) -> FlakeBuildResult:
        """Build *hostname*'s system toplevel at *pointer* into *store*."""
        revision = self.resolve_revision(flake_uri, pointer)

        if self.verify_hostname:
            available = self.hostnames(flake_uri, revision)
            if hostname not in available:
                raise NsyncError(
                    f"No flake configuration found for hostname: {hostname}",
                    f"Available hostnames: {', '.join(available) or '(none)'}",
                )

        attribute = self.system_attribute.format(hostname=hostname)
        uri = with_query(flake_uri, "rev", revision)
        args = [self.nix_command, "build", "--json", "--no-link"]
        if store is not None:
            args += ["--store", str(store)]
        args.append(f"{uri}#{attribute}")

        result = self.runner.run(
            args,
            summary=f"Failed to build {hostname} at {pointer.value}",
            stream_stderr=True,
        )
        try:
            entries = [_BuildEntry.model_validate(e) for e in json.loads(result.stdout)]
        except (json.JSONDecodeError, TypeError, ValidationError) as e:
            raise NsyncError(
                "Error parsing flake build command result",
                f"{e}\n{result.stdout[:500]}",
            ) from e
        if len(entries) != 1:
            raise NsyncError(
                "Error parsing flake build command result",
                f"Expected exactly one build result, got {len(entries)}",
            )

        built = FlakeBuildResult(
            output_path=entries[0].outputs.out,
            derivation_path=entries[0].drvPath,
            git_revision=revision,
        )
        logger.info("built %s@%s -> %s", hostname, revision[:12], built.output_path)
        return built
