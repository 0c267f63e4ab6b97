"""
Change sources: where the list of changed files comes from.

Two git strategies exist and they answer different questions:

- merge-base: files changed by commits on HEAD since it diverged from a
  base branch (committed changes only).
- status: files modified, staged, or untracked in the working tree
  (uncommitted changes only).
"""

import logging
import os
import subprocess
from typing import Iterable, List, Optional

from ..utils import subprocess_creation_flags
from .errors import ChangeSourceError
from .module_discovery import canonical_path

logger = logging.getLogger(__name__)


class ChangeSource:
    """Interface for anything that can enumerate changed files."""

    name = "abstract"

    def list_changed_files(self, root_dir: str) -> List[str]:
        """
        List changed files as canonical absolute paths.

        Raises:
            ChangeSourceError: If no comparison baseline can be determined
        """
        raise NotImplementedError


class StaticChangeSource(ChangeSource):
    """A fixed list of files, relative paths resolved against the root."""

    name = "static"

    def __init__(self, paths: Iterable[str]):
        self.paths = list(paths)

    def list_changed_files(self, root_dir: str) -> List[str]:
        root = canonical_path(root_dir)
        return [canonical_path(os.path.join(root, path)) for path in self.paths]


class GitChangeSource(ChangeSource):
    """
    Base for git-backed strategies.

    Git reports paths relative to the repository top level, so every
    strategy resolves that first.
    """

    def __init__(self, git_binary: str = "git", timeout: Optional[int] = 60):
        self.git_binary = git_binary
        self.timeout = timeout

    def _run(self, args: List[str], cwd: str, step: str) -> str:
        """
        Run a git subcommand and return its stdout.

        Raises:
            ChangeSourceError: On a non-zero exit, timeout, or missing binary
        """
        cmd = [self.git_binary, "-c", "core.quotePath=false"] + args
        logger.debug(f"Running {' '.join(cmd)} in {cwd}")

        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                shell=False,
                creationflags=subprocess_creation_flags(),
            )
        except subprocess.TimeoutExpired:
            raise ChangeSourceError(step, "git command timed out")
        except OSError as e:
            raise ChangeSourceError(step, str(e)) from e

        if result.returncode != 0:
            detail = result.stderr.strip() or f"git exited with code {result.returncode}"
            raise ChangeSourceError(step, detail)

        return result.stdout

    def _toplevel(self, root_dir: str) -> str:
        output = self._run(["rev-parse", "--show-toplevel"], root_dir, "find repository root")
        return canonical_path(output.strip())

    @staticmethod
    def _resolve(toplevel: str, names: Iterable[str]) -> List[str]:
        files = []
        for name in names:
            name = name.strip().strip('"')
            if name:
                files.append(canonical_path(os.path.join(toplevel, name)))
        return files


class GitMergeBaseChangeSource(GitChangeSource):
    """Files changed between the merge base with ``base_branch`` and HEAD."""

    name = "merge-base"

    def __init__(self, base_branch: str = "main", **kwargs):
        super().__init__(**kwargs)
        self.base_branch = base_branch

    def list_changed_files(self, root_dir: str) -> List[str]:
        toplevel = self._toplevel(root_dir)

        merge_base = self._run(
            ["merge-base", "HEAD", self.base_branch], root_dir, "find merge base"
        ).strip()
        if not merge_base:
            raise ChangeSourceError("find merge base", f"no common ancestor with {self.base_branch}")

        output = self._run(
            ["diff", "--name-only", "--no-renames", merge_base, "HEAD"], root_dir, "get changed files"
        )
        files = self._resolve(toplevel, output.splitlines())
        logger.info(f"{len(files)} file(s) changed since merge base {merge_base[:12]}")
        return files


class GitStatusChangeSource(GitChangeSource):
    """Modified, staged, deleted, and untracked files in the working tree."""

    name = "status"

    def list_changed_files(self, root_dir: str) -> List[str]:
        toplevel = self._toplevel(root_dir)
        output = self._run(["status", "--porcelain", "-uall"], root_dir, "get working tree status")

        names = []
        for line in output.splitlines():
            if len(line) < 4:
                continue
            path = line[3:]
            # Renames and copies are reported as "old -> new"; both sides changed
            names.extend(path.split(" -> ", 1))

        files = self._resolve(toplevel, names)
        logger.info(f"{len(files)} file(s) changed in working tree")
        return files


CHANGE_SOURCES = {
    GitMergeBaseChangeSource.name: GitMergeBaseChangeSource,
    GitStatusChangeSource.name: GitStatusChangeSource,
}


def get_change_source(
    name: str = "merge-base",
    base_branch: str = "main",
    git_binary: str = "git",
) -> ChangeSource:
    """
    Build a git change source by name.

    Raises:
        ValueError: If the name is not a known strategy
    """
    if name == GitMergeBaseChangeSource.name:
        return GitMergeBaseChangeSource(base_branch=base_branch, git_binary=git_binary)
    if name == GitStatusChangeSource.name:
        return GitStatusChangeSource(git_binary=git_binary)
    raise ValueError(
        f"Unknown change source '{name}' (expected one of: {', '.join(sorted(CHANGE_SOURCES))})"
    )
