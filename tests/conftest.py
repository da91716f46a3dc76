"""Shared test fixtures for nsync."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from nsync.errors import MissingPathError
from nsync.flake.builder import FlakeBuildResult
from nsync.process import CommandRunner
from nsync.store.models import PathRecord
from nsync.store.narinfo import narinfo_filename, render_narinfo


def store_path(name: str) -> str:
    """``/nix/store/<hash>-<name>`` with a fake hash derived from the name."""
    return f"/nix/store/{name}hash-{name}"


def make_record(name: str, refs: tuple[str, ...] = (), url: str | None = None) -> PathRecord:
    return PathRecord(
        path=store_path(name),
        nar_hash=f"sha256:{name}",
        nar_size=len(name) * 100,
        references=tuple(store_path(r) for r in refs),
        url=url,
    )


class FakeProvider:
    """In-memory reference graph; remembers every batch it was asked for."""

    def __init__(self, records: list[PathRecord]) -> None:
        self.records = {r.path: r for r in records}
        self.calls: list[list[str]] = []

    def query(self, paths):
        paths = list(paths)
        self.calls.append(paths)
        missing = [p for p in paths if p not in self.records]
        if missing:
            raise MissingPathError(missing)
        return {p: self.records[p] for p in paths}

    def has_path(self, path: str) -> bool:
        return path in self.records


class FakeTargetStore(FakeProvider):
    """Target store stand-in: queries plus a log of archive copies."""

    location = "/"

    def __init__(self, records: list[PathRecord]) -> None:
        super().__init__(records)
        self.copied: list[tuple[Path, str]] = []

    def copy_from_archive(self, archive_dir: Path, item: str) -> None:
        self.copied.append((Path(archive_dir), item))


class FakeFlakeBuilder:
    """Maps refs to prebuilt outputs; unknown refs fail like a real build."""

    def __init__(self, outputs: dict[str, tuple[str, str]]) -> None:
        self.outputs = outputs
        self.built: list[str] = []

    def build(self, flake_uri, hostname, pointer, store=None) -> FlakeBuildResult:
        self.built.append(pointer.value)
        output_path, revision = self.outputs[pointer.value]
        return FlakeBuildResult(
            output_path=output_path,
            derivation_path=output_path + ".drv",
            git_revision=revision,
        )


def write_archive(directory: Path, records: list[PathRecord]) -> None:
    """Lay out a file binary cache: narinfos plus a NAR blob per record with a url."""
    directory.mkdir(parents=True, exist_ok=True)
    for record in records:
        (directory / narinfo_filename(record.path)).write_text(render_narinfo(record))
        if record.url:
            blob = directory / record.url
            blob.parent.mkdir(parents=True, exist_ok=True)
            blob.write_bytes(b"NAR:" + record.path.encode())


@pytest.fixture
def graph_records():
    """base <- lib <- app(v1); app2 (v2) adds newlib on top of lib."""
    return [
        make_record("base", url="nar/base.nar.xz"),
        make_record("lib", refs=("base",), url="nar/lib.nar.xz"),
        make_record("newlib", refs=("base",), url="nar/newlib.nar.xz"),
        make_record("app1", refs=("lib",), url="nar/app1.nar.xz"),
        make_record("app2", refs=("lib", "newlib"), url="nar/app2.nar.xz"),
    ]


@pytest.fixture
def provider(graph_records):
    return FakeProvider(graph_records)


@pytest.fixture
def mock_runner():
    runner = MagicMock(spec=CommandRunner)
    runner.run.return_value = subprocess.CompletedProcess(args=[], returncode=0, stdout="", stderr="")
    return runner


@pytest.fixture
def profile_dir(tmp_path):
    """A fake target root with an empty profiles directory."""
    root = tmp_path / "root"
    (root / "nix/var/nix/profiles").mkdir(parents=True)
    return root


def make_generations(root: Path, numbers: list[int], current: int | None) -> Path:
    profiles = root / "nix/var/nix/profiles"
    profiles.mkdir(parents=True, exist_ok=True)
    for n in numbers:
        (profiles / f"system-{n}-link").symlink_to(f"/nix/store/gen{n}hash-nixos-system")
    if current is not None:
        (profiles / "system").symlink_to(f"system-{current}-link")
    return profiles
