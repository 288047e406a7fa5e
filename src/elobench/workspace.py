"""Workspace provisioning: one isolated working copy per revision.

Each workspace is a full, independent clone, so building or modifying one can
never affect the other. The version-control collaborator is injectable; the
default drives the ``git`` command line.
"""

import re
import shutil
import subprocess
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from loguru import logger

from elobench.errors import ProvisionError

BASELINE = "baseline"
CANDIDATE = "candidate"


@dataclass(frozen=True)
class Revision:
    """A revision identifier, optionally resolved to a commit."""

    ref: str
    commit: str | None = None

    def __str__(self) -> str:
        if self.commit:
            return f"{self.ref} ({self.commit[:10]})"
        return self.ref


@dataclass
class Workspace:
    """A working copy exclusively owned by one revision."""

    role: str
    revision: Revision
    path: Path

    def teardown(self) -> None:
        """Remove the working copy from disk."""
        if self.path.exists():
            logger.info(f"Removing {self.role} workspace {self.path}")
            shutil.rmtree(self.path)


class VersionControl(Protocol):
    """Materializes a revision of a repository at a destination path."""

    def repository_root(self, path: str | Path = ".") -> str:
        """Location of the repository containing ``path``."""
        ...

    def checkout(self, repository: str, ref: str, destination: Path) -> str:
        """Create a working copy and return the resolved commit identifier."""
        ...


class GitVersionControl:
    """Version control backed by the ``git`` command line."""

    def __init__(self, executable: str = "git") -> None:
        self.executable = executable

    def _run(self, *args: str, cwd: Path | None = None) -> str:
        cmd = [self.executable, *args]
        logger.debug(f"$ {' '.join(cmd)}")
        try:
            completed = subprocess.run(
                cmd,
                cwd=cwd,
                check=False,
                capture_output=True,
                text=True,
            )
        except OSError as e:
            raise ProvisionError(f"Failed to run {self.executable}: {e}") from e

        if completed.returncode != 0:
            detail = completed.stderr.strip() or completed.stdout.strip()
            raise ProvisionError(f"`{' '.join(cmd)}` failed: {detail}")
        return completed.stdout.strip()

    def repository_root(self, path: str | Path = ".") -> str:
        """Top level of the git repository containing ``path``."""
        return self._run("rev-parse", "--show-toplevel", cwd=Path(path))

    def checkout(self, repository: str, ref: str, destination: Path) -> str:
        self._run("clone", "--quiet", repository, str(destination))
        self._run("-C", str(destination), "checkout", "--quiet", ref)
        return self._run("-C", str(destination), "rev-parse", "HEAD")


def _slug(ref: str) -> str:
    """Filesystem-safe form of a ref name."""
    return re.sub(r"[^A-Za-z0-9._-]+", "-", ref).strip("-") or "ref"


class WorkspaceProvisioner:
    """Creates the baseline and candidate workspaces.

    Example:
        provisioner = WorkspaceProvisioner(GitVersionControl(), root="/tmp")
        baseline, candidate = provisioner.provision_pair(repo, "master", "my-branch")
    """

    def __init__(
        self,
        vcs: VersionControl | None = None,
        root: str | Path = "/tmp",
        prefix: str = "elobench",
    ) -> None:
        self.vcs = vcs or GitVersionControl()
        self.root = Path(root)
        self.prefix = prefix

    def workspace_path(self, role: str, ref: str) -> Path:
        return self.root / f"{self.prefix}-{role}-{_slug(ref)}"

    def provision(self, repository: str, ref: str, role: str) -> Workspace:
        """Materialize ``ref`` into a fresh workspace.

        A pre-existing directory with the same name is removed first.

        Raises:
            ProvisionError: If the revision does not resolve or the copy fails.
        """
        path = self.workspace_path(role, ref)
        logger.info(f"Provisioning {role} workspace for {ref} at {path}")

        try:
            if path.exists():
                shutil.rmtree(path)
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ProvisionError(f"Cannot prepare workspace {path}: {e}") from e

        try:
            commit = self.vcs.checkout(repository, ref, path)
        except OSError as e:
            raise ProvisionError(f"Checkout of {ref} into {path} failed: {e}") from e

        workspace = Workspace(role=role, revision=Revision(ref, commit), path=path)
        logger.info(f"{role.capitalize()} workspace ready: {workspace.revision}")
        return workspace

    def provision_pair(
        self, repository: str, baseline_ref: str, candidate_ref: str
    ) -> tuple[Workspace, Workspace]:
        """Provision baseline and candidate workspaces in parallel.

        Returns:
            Tuple of (baseline, candidate) workspaces.
        """
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="provision") as pool:
            baseline = pool.submit(self.provision, repository, baseline_ref, BASELINE)
            candidate = pool.submit(self.provision, repository, candidate_ref, CANDIDATE)
            return baseline.result(), candidate.result()
