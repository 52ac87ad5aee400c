"""Compilation orchestrator: resolve, merge, expand, stage."""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from .exceptions import CompilationCancelledError, ExpansionError
from .merger import merge
from .models import (
    CompilationResult,
    CompileConfig,
    CompiledDocument,
    MergedTree,
    Profile,
)
from .patterns import is_reserved
from .resolver import resolve
from .template.expander import Expander

logger = logging.getLogger(__name__)

OUTPUT_ROOT = "agent-os"
ENTRYPOINT_NAMESPACES = ("agents/", "commands/")


def entrypoints(tree: MergedTree, config: CompileConfig) -> list[str]:
    """Documents compiled on their own, in lexicographic order.

    Every agent and command, plus workflows when they are inlined rather
    than lazily referenced.
    """
    prefixes = ENTRYPOINT_NAMESPACES
    if not config.lazy_load_workflows:
        prefixes = (*prefixes, "workflows/")
    return [
        path for path in tree.paths()
        if path.startswith(prefixes) and path.endswith(".md") and not is_reserved(path)
    ]


class ProfileCompiler:
    """Compiles a profile of a repository into installable documents."""

    def __init__(
        self,
        repository: Mapping[str, Profile],
        config: CompileConfig,
        max_workers: int | None = None,
    ) -> None:
        """Initialize compiler.

        Args:
            repository: Profiles available for resolution
            config: Flags and variables for this invocation
            max_workers: Expansion worker count, defaults to CPU count
        """
        self.repository = repository
        self.config = config
        self.max_workers = max_workers or os.cpu_count() or 1

    def compile(
        self,
        profile_id: str,
        cancel_event: threading.Event | None = None,
    ) -> CompilationResult:
        """Compile every entrypoint of ``profile_id``.

        Args:
            profile_id: Leaf profile to compile
            cancel_event: Checked before each document; when set the run stops

        Returns:
            Compiled documents plus per-document expansion errors

        Raises:
            ConfigError: If the profile chain cannot be resolved
            CompilationCancelledError: If ``cancel_event`` was set during the run
        """
        chain = resolve(profile_id, self.repository)
        tree = merge(chain)
        targets = entrypoints(tree, self.config)
        logger.info(
            "Compiling %s (%s): %d files, %d entrypoints",
            chain.leaf.id,
            " -> ".join(chain.ids),
            len(tree),
            len(targets),
        )

        expander = Expander(tree, self.config)

        def compile_one(path: str) -> CompiledDocument | ExpansionError | None:
            if cancel_event is not None and cancel_event.is_set():
                return None
            try:
                return expander.compile_document(path)
            except ExpansionError as e:
                logger.warning("Failed to compile %s: %s", path, e)
                return e

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            outcomes = list(executor.map(compile_one, targets))

        if cancel_event is not None and cancel_event.is_set():
            msg = f"Compilation of {chain.leaf.id} cancelled"
            raise CompilationCancelledError(msg)

        documents = [o for o in outcomes if isinstance(o, CompiledDocument)]
        errors = [o for o in outcomes if isinstance(o, ExpansionError)]

        result = CompilationResult(
            profile_id=chain.leaf.id,
            chain=chain.ids,
            documents=documents,
            errors=errors,
            copies=verbatim_copies(tree, documents),
        )
        logger.info(
            "Compiled %s: %d succeeded, %d failed",
            result.profile_id,
            result.succeeded,
            result.failed,
        )
        return result


def verbatim_copies(tree: MergedTree, documents: list[CompiledDocument]) -> dict[str, bytes]:
    """Files installed unchanged: all standards plus lazily referenced files."""
    paths = set(tree.under("standards/"))
    for doc in documents:
        paths.update(doc.lazy_references)
    return {path: tree.files[path].content for path in sorted(paths) if path in tree}


def compile_profile(
    profile_id: str,
    config: CompileConfig,
    repository: Mapping[str, Profile],
) -> CompilationResult:
    """Compile ``profile_id`` with default settings."""
    return ProfileCompiler(repository, config).compile(profile_id)


class OutputStager:
    """Writes a compilation result so it appears all at once or not at all."""

    def __init__(self, destination: Path) -> None:
        """Initialize stager.

        Args:
            destination: Directory that will hold the ``agent-os`` tree
        """
        self.destination = Path(destination)
        self.target = self.destination / OUTPUT_ROOT

    def planned_paths(self, result: CompilationResult) -> list[Path]:
        """Every path a commit would write, for dry runs."""
        relative = sorted({*(d.path for d in result.documents), *result.copies})
        return [self.target / path for path in relative]

    def commit(self, result: CompilationResult) -> list[Path]:
        """Stage the result in a temporary directory and swap it into place.

        Returns:
            Paths of the written files in their final location
        """
        self.destination.mkdir(parents=True, exist_ok=True)
        staging = Path(tempfile.mkdtemp(prefix=f".{OUTPUT_ROOT}-staging-", dir=self.destination))

        try:
            # mkdtemp creates 0700; the installed tree follows the umask instead.
            os.chmod(staging, 0o777 & ~_current_umask())
            for path, content in result.copies.items():
                self._write(staging / path, content)
            for doc in result.documents:
                self._write(staging / doc.path, doc.content.encode("utf-8"))
        except OSError:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        previous: Path | None = None
        if self.target.exists():
            previous = Path(tempfile.mkdtemp(prefix=f".{OUTPUT_ROOT}-previous-", dir=self.destination))
            os.rmdir(previous)
            os.replace(self.target, previous)
        try:
            os.replace(staging, self.target)
        except OSError:
            if previous is not None:
                os.replace(previous, self.target)
            shutil.rmtree(staging, ignore_errors=True)
            raise

        if previous is not None:
            shutil.rmtree(previous, ignore_errors=True)

        logger.info("Wrote %d files to %s", len(result.copies) + len(result.documents), self.target)
        return self.planned_paths(result)

    def _write(self, path: Path, content: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask
