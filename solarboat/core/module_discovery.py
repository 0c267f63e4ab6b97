"""
Terraform module discovery.

Walks a directory tree, treats every directory holding at least one
definition file as a module, and classifies it as stateful or stateless.
"""

import logging
import os
from typing import Iterable, List, Optional, Tuple

from .errors import DiscoveryError
from .module import Module, ModuleMap
from .terraform_parser import LineParser

logger = logging.getLogger(__name__)

DEFAULT_IGNORED_DIRS = (".git", ".terraform")


def canonical_path(path: str) -> str:
    """Return the absolute, symlink-resolved form of a path."""
    return os.path.realpath(os.path.abspath(os.path.expanduser(path)))


def list_definition_files(directory: str, suffix: str = ".tf") -> List[str]:
    """
    List definition files directly inside a directory.

    Raises:
        DiscoveryError: If the directory cannot be listed
    """
    try:
        names = sorted(os.listdir(directory))
    except OSError as e:
        raise DiscoveryError(directory, e) from e

    return [
        os.path.join(directory, name)
        for name in names
        if name.endswith(suffix) and os.path.isfile(os.path.join(directory, name))
    ]


def read_definitions(directory: str, suffix: str = ".tf") -> List[Tuple[str, str]]:
    """
    Read every definition file of a module directory.

    Returns:
        List of (file_path, content) tuples, sorted by file name

    Raises:
        DiscoveryError: If any file cannot be read
    """
    definitions = []
    for file_path in list_definition_files(directory, suffix):
        try:
            with open(file_path, "r", encoding="utf-8", errors="replace") as f:
                definitions.append((file_path, f.read()))
        except OSError as e:
            raise DiscoveryError(file_path, e) from e
    return definitions


class ModuleDiscoverer:
    """
    Finds module directories under a root and classifies them.

    A module is stateless iff none of its definition files declares a
    backend, as judged by the configured parser strategy.
    """

    def __init__(
        self,
        parser=None,
        ignored_dirs: Optional[Iterable[str]] = None,
    ):
        """
        Args:
            parser: Parser strategy (defaults to LineParser)
            ignored_dirs: Directory names never descended into
        """
        self.parser = parser or LineParser()
        self.suffix = self.parser.markers.file_suffix
        self.ignored_dirs = set(DEFAULT_IGNORED_DIRS if ignored_dirs is None else ignored_dirs)

    def discover(self, root_dir: str) -> ModuleMap:
        """
        Discover all modules below ``root_dir`` (inclusive).

        Returns:
            Mapping of canonical module path to Module

        Raises:
            DiscoveryError: If the root or any directory/file cannot be read
        """
        root = canonical_path(root_dir)
        if not os.path.isdir(root):
            raise DiscoveryError(root_dir, NotADirectoryError("not a directory"))

        modules: ModuleMap = {}

        def _on_error(error: OSError):
            raise DiscoveryError(error.filename or root, error) from error

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
            dirnames[:] = sorted(d for d in dirnames if d not in self.ignored_dirs)

            if not any(name.endswith(self.suffix) for name in filenames):
                continue

            path = canonical_path(dirpath)
            if path in modules:
                continue

            modules[path] = Module(path=path, is_stateless=self._is_stateless(path))
            logger.debug(f"Discovered {modules[path]!r}")

        logger.info(f"Discovered {len(modules)} module(s) under {root}")
        return modules

    def _is_stateless(self, directory: str) -> bool:
        for file_path, content in read_definitions(directory, self.suffix):
            if self.parser.has_backend_config(content):
                logger.debug(f"Backend configuration found in {file_path}")
                return False
        return True
