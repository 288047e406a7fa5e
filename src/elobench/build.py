"""Build coordination: one ready-to-run executable per workspace.

A failed build is fatal for the run, since a broken candidate cannot be
benchmarked. There is no retry and no build timeout.
"""

import subprocess
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Protocol

from loguru import logger

from elobench.errors import BuildError
from elobench.workspace import Revision, Workspace

# Lines of build output kept in a BuildError
OUTPUT_TAIL_LINES = 30


@dataclass(frozen=True)
class Executable:
    """A built engine binary and the revision it was built from."""

    path: Path
    revision: Revision
    name: str


class BuildTool(Protocol):
    """Builds a named binary target inside a workspace."""

    def build(self, workspace: Workspace) -> Path:
        """Build and return the path of the produced executable."""
        ...


class CommandBuildTool:
    """Runs a build command in the workspace and locates its artifact.

    ``{binary}`` in the command and artifact path is replaced by the binary
    target name. The defaults build a cargo release binary.
    """

    def __init__(
        self,
        binary: str = "uci",
        command: list[str] | None = None,
        artifact: str = "target/release/{binary}",
    ) -> None:
        self.binary = binary
        self.command = [
            part.format(binary=binary)
            for part in (command or ["cargo", "build", "--release", "--bin", "{binary}"])
        ]
        self.artifact = artifact.format(binary=binary)

    def build(self, workspace: Workspace) -> Path:
        logger.debug(f"$ {' '.join(self.command)}  (in {workspace.path})")
        try:
            completed = subprocess.run(
                self.command,
                cwd=workspace.path,
                check=False,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise BuildError(f"Failed to run {self.command[0]}: {e}") from e

        if completed.returncode != 0:
            output = (completed.stdout + completed.stderr).strip().splitlines()
            tail = "\n".join(output[-OUTPUT_TAIL_LINES:])
            raise BuildError(
                f"Build of {workspace.revision} failed with exit code "
                f"{completed.returncode}:\n{tail}"
            )

        artifact = workspace.path / self.artifact
        if not artifact.is_file():
            raise BuildError(f"Build succeeded but {artifact} was not produced")
        return artifact


class BuildCoordinator:
    """Builds workspaces, never running two builds in the same workspace at once."""

    def __init__(self, tool: BuildTool | None = None, name_prefix: str = "elobench") -> None:
        self.tool = tool or CommandBuildTool()
        self.name_prefix = name_prefix
        self._locks: defaultdict[Path, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _lock_for(self, path: Path) -> threading.Lock:
        with self._locks_guard:
            return self._locks[path.resolve()]

    def build(self, workspace: Workspace) -> Executable:
        """Build one workspace.

        Raises:
            BuildError: On nonzero exit or missing artifact.
        """
        logger.info(f"Building {workspace.role} ({workspace.revision})")
        with self._lock_for(workspace.path):
            path = self.tool.build(workspace)

        executable = Executable(
            path=path,
            revision=workspace.revision,
            name=f"{self.name_prefix}-{workspace.revision.ref}",
        )
        logger.info(f"Built {executable.name}: {executable.path}")
        return executable

    def build_pair(
        self, baseline: Workspace, candidate: Workspace
    ) -> tuple[Executable, Executable]:
        """Build both workspaces in parallel; they are disjoint resources.

        Returns:
            Tuple of (baseline, candidate) executables.
        """
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="build") as pool:
            baseline_future = pool.submit(self.build, baseline)
            candidate_future = pool.submit(self.build, candidate)
            baseline_exe, candidate_exe = baseline_future.result(), candidate_future.result()

        if baseline_exe.name == candidate_exe.name:
            baseline_exe = replace(baseline_exe, name=f"{baseline_exe.name}-{baseline.role}")
            candidate_exe = replace(candidate_exe, name=f"{candidate_exe.name}-{candidate.role}")
        return baseline_exe, candidate_exe
