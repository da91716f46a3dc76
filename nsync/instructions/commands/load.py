"""Load: ship the store paths a new revision adds on top of earlier ones."""

from __future__ import annotations

import asyncio
import logging
import shutil

from nsync.errors import NsyncError
from nsync.flake.builder import FlakeBuildResult
from nsync.flake.git import parse_git_pointer
from nsync.instructions.commands.base import CommandImplementation
from nsync.instructions.context import BuildContext, ExecutionContext
from nsync.instructions.models import LoadCommand, LoadRequest, StoreRoot
from nsync.store.archive import make_archive_subset
from nsync.store.cache import list_narinfo_files
from nsync.store.closure import compute_delta, resolve_closure
from nsync.store.narinfo import narinfo_filename, render_narinfo

logger = logging.getLogger(__name__)


class LoadArchiveCommand(CommandImplementation):
    kind = "load"
    schema = LoadCommand
    request_type = LoadRequest

    async def _build_ref(
        self, request: LoadRequest, ref: str, ctx: BuildContext
    ) -> FlakeBuildResult:
        return await asyncio.to_thread(
            ctx.flake_builder.build,
            request.flake_uri,
            request.hostname,
            parse_git_pointer(ref),
            ctx.store_location,
        )

    async def build(self, request: LoadRequest, ctx: BuildContext) -> LoadCommand:
        ctx.progress("Building previous revisions")
        semaphore = asyncio.Semaphore(ctx.max_parallel_builds)

        async def build_dependency(ref: str) -> FlakeBuildResult:
            async with semaphore:
                ctx.progress(f"Building revision {ref}")
                return await self._build_ref(request, ref, ctx)

        dependencies = await asyncio.gather(
            *(build_dependency(ref) for ref in request.delta_dependency_refs)
        )

        ctx.progress("Building new revision")
        new_build = await self._build_ref(request, request.new_ref, ctx)

        ctx.progress("Copying to archive")
        await asyncio.to_thread(
            ctx.workdir_store.copy_to_archive, new_build.output_path, ctx.workdir_archive
        )

        ctx.progress("Getting path info")
        delta = await asyncio.to_thread(
            compute_delta,
            [d.output_path for d in dependencies],
            new_build.output_path,
            ctx.workdir_store,
        )
        ctx.progress(
            f"{len(delta.added)} paths added, with a total "
            f"{len(delta.all_resulting_items)} store items."
        )

        ctx.progress("Building new archive")
        info_items = delta.added_paths if request.partial_narinfos else delta.all_paths
        await asyncio.to_thread(
            make_archive_subset,
            ctx.workdir_archive,
            ctx.instruction_folder / request.archive_folder_name,
            info_items,
            delta.added_paths,
        )

        return LoadCommand(
            archive_path=request.archive_folder_name,
            delta_dependencies=tuple(
                StoreRoot(nix_path=d.output_path, git_revision=d.git_revision)
                for d in dependencies
            ),
            partial_narinfos=request.partial_narinfos,
            item=StoreRoot(
                nix_path=new_build.output_path, git_revision=new_build.git_revision
            ),
        )

    def execute(self, command: LoadCommand, ctx: ExecutionContext) -> None:
        archive = ctx.instruction_folder / command.archive_path
        if not archive.is_dir():
            raise NsyncError(
                'Unable to execute "load" instruction',
                f"The archive folder is missing from the instruction: {archive}",
            )

        # Only narinfos shipped in the archive are worth keeping in the cache.
        shipped = list_narinfo_files(archive)

        ctx.progress("Searching for existing dependency paths")
        dependencies = resolve_closure(
            [d.nix_path for d in command.delta_dependencies], ctx.target_store
        )

        ctx.progress("Generating virtual narinfo files")
        cached = generated = 0
        for record in dependencies:
            destination = archive / narinfo_filename(record.path)
            if destination.exists():
                continue
            cache_entry = ctx.narinfo_cache.lookup(record)
            if cache_entry.is_file():
                shutil.copyfile(cache_entry, destination)
                cached += 1
            else:
                destination.write_text(render_narinfo(record), encoding="utf-8")
                generated += 1
        logger.info(
            "narinfos for %d dependency path(s): %d from cache, %d virtual",
            len(dependencies),
            cached,
            generated,
        )

        ctx.progress("Copying nix store items to the store")
        ctx.target_store.copy_from_archive(archive, command.item.nix_path)

        ctx.progress("Updating narinfo cache")
        ctx.narinfo_cache.write(shipped)
