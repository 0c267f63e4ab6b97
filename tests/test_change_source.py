"""Tests for change sources: git is mocked, no repository needed."""

import os
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from solarboat.core.change_source import (
    GitMergeBaseChangeSource,
    GitStatusChangeSource,
    StaticChangeSource,
    get_change_source,
)
from solarboat.core.errors import ChangeSourceError


def _completed(stdout="", returncode=0, stderr=""):
    return MagicMock(returncode=returncode, stdout=stdout, stderr=stderr)


# ---------------------------------------------------------------------------
# merge-base strategy
# ---------------------------------------------------------------------------

class TestGitMergeBaseChangeSource:
    @patch("solarboat.core.change_source.subprocess.run")
    def test_lists_files_since_merge_base(self, mock_run, root):
        mock_run.side_effect = [
            _completed(f"{root}\n"),
            _completed("abc123\n"),
            _completed("live/app/main.tf\nmodules/net/variables.tf\n"),
        ]

        files = GitMergeBaseChangeSource().list_changed_files(root)

        assert files == [
            os.path.join(root, "live", "app", "main.tf"),
            os.path.join(root, "modules", "net", "variables.tf"),
        ]

    @patch("solarboat.core.change_source.subprocess.run")
    def test_command_sequence(self, mock_run, root):
        mock_run.side_effect = [
            _completed(f"{root}\n"),
            _completed("abc123\n"),
            _completed(""),
        ]

        GitMergeBaseChangeSource(base_branch="develop").list_changed_files(root)

        commands = [c[0][0] for c in mock_run.call_args_list]
        assert commands[0][-2:] == ["rev-parse", "--show-toplevel"]
        assert commands[1][-3:] == ["merge-base", "HEAD", "develop"]
        assert commands[2][-5:] == ["diff", "--name-only", "--no-renames", "abc123", "HEAD"]
        for call in mock_run.call_args_list:
            assert call[1]["cwd"] == root
            assert call[1]["shell"] is False

    @patch("solarboat.core.change_source.subprocess.run")
    def test_paths_resolve_against_repository_top_level(self, mock_run, tmp_path):
        repo = os.path.realpath(str(tmp_path))
        sub = tmp_path / "infra"
        sub.mkdir()
        mock_run.side_effect = [
            _completed(f"{repo}\n"),
            _completed("abc123\n"),
            _completed("infra/app/main.tf\n"),
        ]

        files = GitMergeBaseChangeSource().list_changed_files(str(sub))

        assert files == [os.path.join(repo, "infra", "app", "main.tf")]

    @patch("solarboat.core.change_source.subprocess.run")
    def test_no_changes(self, mock_run, root):
        mock_run.side_effect = [
            _completed(f"{root}\n"),
            _completed("abc123\n"),
            _completed("\n"),
        ]
        assert GitMergeBaseChangeSource().list_changed_files(root) == []

    @patch("solarboat.core.change_source.subprocess.run")
    def test_missing_merge_base_raises(self, mock_run, root):
        mock_run.side_effect = [
            _completed(f"{root}\n"),
            _completed("", returncode=1, stderr="fatal: Not a valid object name main"),
        ]

        with pytest.raises(ChangeSourceError) as exc_info:
            GitMergeBaseChangeSource().list_changed_files(root)

        assert exc_info.value.step == "find merge base"
        assert "Not a valid object name" in str(exc_info.value)

    @patch("solarboat.core.change_source.subprocess.run")
    def test_not_a_repository_raises(self, mock_run, root):
        mock_run.return_value = _completed(
            "", returncode=128, stderr="fatal: not a git repository"
        )

        with pytest.raises(ChangeSourceError, match="not a git repository"):
            GitMergeBaseChangeSource().list_changed_files(root)

    @patch("solarboat.core.change_source.subprocess.run")
    def test_missing_git_binary_raises(self, mock_run, root):
        mock_run.side_effect = FileNotFoundError(2, "No such file or directory", "git")

        with pytest.raises(ChangeSourceError):
            GitMergeBaseChangeSource().list_changed_files(root)

    @patch("solarboat.core.change_source.subprocess.run")
    def test_timeout_raises(self, mock_run, root):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="git", timeout=60)

        with pytest.raises(ChangeSourceError, match="timed out"):
            GitMergeBaseChangeSource().list_changed_files(root)

    @patch("solarboat.core.change_source.subprocess.run")
    def test_custom_git_binary(self, mock_run, root):
        mock_run.side_effect = [_completed(f"{root}\n"), _completed("abc\n"), _completed("")]

        GitMergeBaseChangeSource(git_binary="/usr/local/bin/git").list_changed_files(root)

        assert mock_run.call_args_list[0][0][0][0] == "/usr/local/bin/git"


# ---------------------------------------------------------------------------
# status strategy
# ---------------------------------------------------------------------------

class TestGitStatusChangeSource:
    @patch("solarboat.core.change_source.subprocess.run")
    def test_parses_porcelain_output(self, mock_run, root):
        mock_run.side_effect = [
            _completed(f"{root}\n"),
            _completed(
                " M live/app/main.tf\n"
                "A  modules/net/new.tf\n"
                " D live/db/old.tf\n"
                "?? live/cache/main.tf\n"
                "R  modules/old.tf -> modules/dns/main.tf\n"
            ),
        ]

        files = GitStatusChangeSource().list_changed_files(root)

        assert files == [
            os.path.join(root, "live", "app", "main.tf"),
            os.path.join(root, "modules", "net", "new.tf"),
            os.path.join(root, "live", "db", "old.tf"),
            os.path.join(root, "live", "cache", "main.tf"),
            os.path.join(root, "modules", "old.tf"),
            os.path.join(root, "modules", "dns", "main.tf"),
        ]

    @patch("solarboat.core.change_source.subprocess.run")
    def test_rename_between_modules_reports_both_sides(self, mock_run, root):
        mock_run.side_effect = [
            _completed(f"{root}\n"),
            _completed('R  live/a/extra.tf -> "live/b c/extra.tf"\n'),
        ]

        files = GitStatusChangeSource().list_changed_files(root)

        assert files == [
            os.path.join(root, "live", "a", "extra.tf"),
            os.path.join(root, "live", "b c", "extra.tf"),
        ]

    @patch("solarboat.core.change_source.subprocess.run")
    def test_quoted_paths(self, mock_run, root):
        mock_run.side_effect = [
            _completed(f"{root}\n"),
            _completed(' M "live/my app/main.tf"\n'),
        ]

        files = GitStatusChangeSource().list_changed_files(root)

        assert files == [os.path.join(root, "live", "my app", "main.tf")]

    @patch("solarboat.core.change_source.subprocess.run")
    def test_clean_tree(self, mock_run, root):
        mock_run.side_effect = [_completed(f"{root}\n"), _completed("")]
        assert GitStatusChangeSource().list_changed_files(root) == []

    @patch("solarboat.core.change_source.subprocess.run")
    def test_status_failure_raises(self, mock_run, root):
        mock_run.side_effect = [
            _completed(f"{root}\n"),
            _completed("", returncode=128, stderr="fatal: bad index"),
        ]

        with pytest.raises(ChangeSourceError) as exc_info:
            GitStatusChangeSource().list_changed_files(root)

        assert exc_info.value.step == "get working tree status"


# ---------------------------------------------------------------------------
# static strategy and factory
# ---------------------------------------------------------------------------

class TestStaticChangeSource:
    def test_absolute_paths_unchanged(self, root):
        path = os.path.join(root, "app", "main.tf")
        assert StaticChangeSource([path]).list_changed_files(root) == [path]

    def test_relative_paths_join_root(self, root):
        files = StaticChangeSource(["app/main.tf"]).list_changed_files(root)
        assert files == [os.path.join(root, "app", "main.tf")]


class TestGetChangeSource:
    def test_merge_base(self):
        source = get_change_source("merge-base", base_branch="develop")
        assert isinstance(source, GitMergeBaseChangeSource)
        assert source.base_branch == "develop"

    def test_status(self):
        assert isinstance(get_change_source("status"), GitStatusChangeSource)

    def test_git_binary_is_passed(self):
        assert get_change_source("status", git_binary="git2").git_binary == "git2"

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown change source"):
            get_change_source("svn")
