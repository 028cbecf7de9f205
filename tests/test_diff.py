"""Tests for change set computation."""

import shutil
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from dashci.config import Settings
from dashci.diff import compute_change_set, read_change_set, write_change_set
from dashci.errors import ConfigError, RenderError, ToolError
from dashci.pipeline import run_diff


@pytest.fixture
def mock_subprocess_run():
    with patch("dashci.tools.subprocess.run") as m:
        m.return_value = MagicMock(returncode=0, stdout="", stderr="")
        yield m


class TestComputeChangeSet:
    """Tests for compute_change_set with git mocked out."""

    def test_trunk_lists_all_files(self, mock_subprocess_run):
        mock_subprocess_run.return_value.stdout = "a.txt\ndashboards/t/x.json\n"

        files = compute_change_set(Settings(branch="master"))

        assert files == ["a.txt", "dashboards/t/x.json"]
        assert mock_subprocess_run.call_args.args[0] == ["git", "-c", "core.quotePath=false", "ls-files"]

    def test_branch_fetches_then_diffs(self, mock_subprocess_run):
        mock_subprocess_run.return_value.stdout = "dashboards/t/x.json\n"

        files = compute_change_set(Settings(branch="feature/x", before_sha="abc123"))

        commands = [c.args[0] for c in mock_subprocess_run.call_args_list]
        assert commands == [
            ["git", "-c", "core.quotePath=false", "fetch", "origin", "feature/x"],
            ["git", "-c", "core.quotePath=false", "diff", "--name-only", "abc123", "origin/feature/x"],
        ]
        assert files == ["dashboards/t/x.json"]

    def test_missing_before_sha(self, mock_subprocess_run):
        with pytest.raises(ConfigError) as exc:
            compute_change_set(Settings(branch="feature/x"))

        assert exc.value.missing == ["COMMIT_BEFORE_SHA"]
        mock_subprocess_run.assert_not_called()

    def test_missing_branch(self, mock_subprocess_run):
        with pytest.raises(ConfigError):
            compute_change_set(Settings())

    def test_fetch_failure(self, mock_subprocess_run):
        mock_subprocess_run.return_value = MagicMock(returncode=128, stdout="", stderr="fatal: couldn't find remote ref")

        with pytest.raises(ToolError) as exc:
            compute_change_set(Settings(branch="feature/x", before_sha="abc"))

        assert exc.value.exit_code == 128
        assert mock_subprocess_run.call_count == 1

    def test_git_not_installed(self, mock_subprocess_run):
        mock_subprocess_run.side_effect = FileNotFoundError()

        with pytest.raises(ToolError, match="not found"):
            compute_change_set(Settings(branch="master"))

    def test_timeout(self, mock_subprocess_run):
        mock_subprocess_run.side_effect = subprocess.TimeoutExpired(["git"], 1)

        with pytest.raises(ToolError, match="timed out"):
            compute_change_set(Settings(branch="master", timeout=1))


class TestChangeSetFile:
    """Tests for reading and writing the change set file."""

    def test_write_then_read(self, tmp_path):
        write_change_set(tmp_path / "git-diff", ["a", "dashboards/t/x.json"])

        assert (tmp_path / "git-diff").read_text() == "a\ndashboards/t/x.json\n"
        assert read_change_set(tmp_path / "git-diff") == ["a", "dashboards/t/x.json"]

    def test_read_without_trailing_newline(self, tmp_path):
        (tmp_path / "git-diff").write_text("a\r\nb")
        assert read_change_set(tmp_path / "git-diff") == ["a", "b"]

    def test_empty(self, tmp_path):
        write_change_set(tmp_path / "git-diff", [])
        assert read_change_set(tmp_path / "git-diff") == []

    def test_not_utf8(self, tmp_path):
        (tmp_path / "git-diff").write_bytes(b"dashboards/t/\xff.json\n")

        with pytest.raises(RenderError):
            read_change_set(tmp_path / "git-diff")


def _git(cwd, *args):
    subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True)


def _commit(repo, path, text, message):
    target = repo / path
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text)
    _git(repo, "add", "-A")
    _git(repo, "commit", "-q", "-m", message)


def _head(repo):
    return subprocess.check_output(["git", "rev-parse", "HEAD"], cwd=repo, text=True).strip()


@pytest.fixture
def fixture_repos(tmp_path, monkeypatch):
    """An origin repository with a feature branch and a clone of it."""
    if shutil.which("git") is None:
        pytest.skip("git not installed")

    for var, value in {
        "GIT_AUTHOR_NAME": "ci",
        "GIT_AUTHOR_EMAIL": "ci@example.com",
        "GIT_COMMITTER_NAME": "ci",
        "GIT_COMMITTER_EMAIL": "ci@example.com",
    }.items():
        monkeypatch.setenv(var, value)

    origin = tmp_path / "origin"
    origin.mkdir()
    _git(origin, "init", "-q")
    _commit(origin, "README.md", "hello", "initial")
    _commit(origin, "dashboards/teamA/x.json", "{}", "add x")
    _git(origin, "checkout", "-q", "-b", "feature/x")

    clone = tmp_path / "clone"
    _git(tmp_path, "clone", "-q", str(origin), str(clone))
    return origin, clone


class TestDiffAgainstRepository:
    """Runs the diff program against a real fixture repository."""

    def test_branch_diff(self, fixture_repos):
        origin, clone = fixture_repos
        before = _head(origin)
        _commit(origin, "dashboards/teamA/y.json", "{}", "add y")
        _commit(origin, "notes/readme.md", "n", "notes")

        files = run_diff(Settings(branch="feature/x", before_sha=before), cwd=clone)

        assert sorted(files) == ["dashboards/teamA/y.json", "notes/readme.md"]
        assert read_change_set(clone / "git-diff") == files

    def test_trunk_lists_everything(self, fixture_repos):
        _, clone = fixture_repos

        files = run_diff(Settings(branch="master"), cwd=clone)

        assert sorted(files) == ["README.md", "dashboards/teamA/x.json"]

    def test_non_ascii_paths_are_not_quoted(self, fixture_repos):
        origin, clone = fixture_repos
        before = _head(origin)
        _commit(origin, "dashboards/teamA/café.json", "{}", "add café")

        files = run_diff(Settings(branch="feature/x", before_sha=before), cwd=clone)

        assert files == ["dashboards/teamA/café.json"]
