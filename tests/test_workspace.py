"""Tests for workspace provisioning."""

import shutil
import subprocess
from pathlib import Path

import pytest

from elobench.errors import ProvisionError
from elobench.workspace import (
    BASELINE,
    CANDIDATE,
    GitVersionControl,
    Revision,
    WorkspaceProvisioner,
)

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


class TestRevision:
    """Tests for revision display."""

    def test_str_with_commit(self) -> None:
        assert str(Revision("master", "0123456789abcdef")) == "master (0123456789)"

    def test_str_without_commit(self) -> None:
        assert str(Revision("master")) == "master"


class TestWorkspaceProvisioner:
    """Tests for WorkspaceProvisioner with a fake version control."""

    def test_workspace_path(self, tmp_path: Path, fake_vcs) -> None:
        provisioner = WorkspaceProvisioner(fake_vcs, root=tmp_path)

        assert provisioner.workspace_path(BASELINE, "master") == tmp_path / "elobench-baseline-master"
        assert (
            provisioner.workspace_path(CANDIDATE, "feature/fast movegen")
            == tmp_path / "elobench-candidate-feature-fast-movegen"
        )

    def test_provision_pair(self, tmp_path: Path, fake_vcs) -> None:
        provisioner = WorkspaceProvisioner(fake_vcs, root=tmp_path)

        baseline, candidate = provisioner.provision_pair("repo", "master", "dev")

        assert baseline.role == BASELINE
        assert candidate.role == CANDIDATE
        assert baseline.revision.ref == "master"
        assert candidate.revision.ref == "dev"
        assert baseline.revision.commit is not None
        assert baseline.path != candidate.path
        assert (baseline.path / "src" / "main.rs").read_text() == "// master\n"
        assert (candidate.path / "src" / "main.rs").read_text() == "// dev\n"

    def test_same_ref_gets_distinct_workspaces(self, tmp_path: Path, fake_vcs) -> None:
        provisioner = WorkspaceProvisioner(fake_vcs, root=tmp_path)

        baseline, candidate = provisioner.provision_pair("repo", "master", "master")

        assert baseline.path != candidate.path
        assert baseline.path.is_dir() and candidate.path.is_dir()

    def test_workspaces_are_isolated(self, tmp_path: Path, fake_vcs, hash_tree) -> None:
        """Test that writing into one workspace leaves the other untouched."""
        provisioner = WorkspaceProvisioner(fake_vcs, root=tmp_path)
        baseline, candidate = provisioner.provision_pair("repo", "master", "dev")
        before = hash_tree(baseline.path)

        (candidate.path / "target").mkdir()
        (candidate.path / "target" / "artifact").write_text("built")
        (candidate.path / "src" / "main.rs").write_text("// changed\n")

        assert hash_tree(baseline.path) == before

    def test_existing_directory_is_replaced(self, tmp_path: Path, fake_vcs) -> None:
        provisioner = WorkspaceProvisioner(fake_vcs, root=tmp_path)
        stale = provisioner.workspace_path(CANDIDATE, "dev")
        stale.mkdir()
        (stale / "leftover").write_text("old")

        workspace = provisioner.provision("repo", "dev", CANDIDATE)

        assert not (workspace.path / "leftover").exists()
        assert (workspace.path / "src" / "main.rs").exists()

    def test_unknown_ref(self, tmp_path: Path, vcs_factory) -> None:
        provisioner = WorkspaceProvisioner(vcs_factory(unknown_refs=["nope"]), root=tmp_path)

        with pytest.raises(ProvisionError, match="nope"):
            provisioner.provision_pair("repo", "master", "nope")

    def test_teardown(self, tmp_path: Path, fake_vcs) -> None:
        provisioner = WorkspaceProvisioner(fake_vcs, root=tmp_path)
        workspace = provisioner.provision("repo", "master", BASELINE)

        workspace.teardown()
        workspace.teardown()

        assert not workspace.path.exists()


def git(*args: str, cwd: Path) -> str:
    completed = subprocess.run(
        ["git", *args], cwd=cwd, check=True, capture_output=True, text=True
    )
    return completed.stdout.strip()


@pytest.fixture
def repository(tmp_path: Path) -> Path:
    """A git repository with a master commit and a dev branch on top."""
    repo = tmp_path / "repo"
    repo.mkdir()
    git("init", "--quiet", "-b", "master", cwd=repo)
    git("config", "user.email", "bench@example.com", cwd=repo)
    git("config", "user.name", "Bench", cwd=repo)
    (repo / "engine.txt").write_text("master\n")
    git("add", ".", cwd=repo)
    git("commit", "--quiet", "-m", "master", cwd=repo)
    git("checkout", "--quiet", "-b", "dev", cwd=repo)
    (repo / "engine.txt").write_text("dev\n")
    git("commit", "--quiet", "-am", "dev", cwd=repo)
    git("checkout", "--quiet", "master", cwd=repo)
    return repo


@requires_git
class TestGitVersionControl:
    """Tests for the git-backed version control."""

    def test_checkout(self, tmp_path: Path, repository: Path) -> None:
        vcs = GitVersionControl()
        destination = tmp_path / "copy"

        commit = vcs.checkout(str(repository), "dev", destination)

        assert (destination / "engine.txt").read_text() == "dev\n"
        assert commit == git("rev-parse", "dev", cwd=repository)

    def test_checkout_unknown_ref(self, tmp_path: Path, repository: Path) -> None:
        with pytest.raises(ProvisionError, match="failed"):
            GitVersionControl().checkout(str(repository), "no-such-branch", tmp_path / "copy")

    def test_repository_root(self, repository: Path) -> None:
        (repository / "sub").mkdir()
        root = GitVersionControl().repository_root(repository / "sub")
        assert Path(root).resolve() == repository.resolve()

    def test_missing_executable(self, tmp_path: Path) -> None:
        vcs = GitVersionControl(executable=str(tmp_path / "no-git"))
        with pytest.raises(ProvisionError, match="Failed to run"):
            vcs.repository_root(tmp_path)

    def test_provision_pair(self, tmp_path: Path, repository: Path) -> None:
        provisioner = WorkspaceProvisioner(GitVersionControl(), root=tmp_path / "work")

        baseline, candidate = provisioner.provision_pair(str(repository), "master", "dev")

        assert (baseline.path / "engine.txt").read_text() == "master\n"
        assert (candidate.path / "engine.txt").read_text() == "dev\n"
        assert baseline.revision.commit != candidate.revision.commit
