"""
Module dependency graph and change propagation.

Edges come from local ``source`` references in module blocks. Changes
flow from a changed module to everything that uses it; only stateful
modules are reported, stateless ones just pass the change along.
"""

import logging
import os
from typing import Iterable, List, Optional

from .change_source import ChangeSource
from .module import Module, ModuleMap, add_dependency
from .module_discovery import ModuleDiscoverer, canonical_path, read_definitions
from .terraform_parser import LineParser

logger = logging.getLogger(__name__)

LOCAL_SOURCE_PREFIXES = ("./", "../", ".\\", "..\\")


def resolve_source(module_dir: str, source: str) -> Optional[str]:
    """
    Resolve a module source literal against the referencing module.

    Returns:
        Canonical absolute path, or None for registry, VCS, URL and
        other non-local sources
    """
    if not source:
        return None
    if not (source.startswith(LOCAL_SOURCE_PREFIXES) or os.path.isabs(source)):
        return None
    return canonical_path(os.path.join(module_dir, source))


def build_dependency_graph(modules: ModuleMap, parser=None) -> ModuleMap:
    """
    Populate ``depends_on``/``used_by`` for every module in place.

    Sources that do not resolve to a discovered module create no edge.

    Raises:
        DiscoveryError: If a definition file cannot be read
    """
    parser = parser or LineParser()
    suffix = parser.markers.file_suffix
    edges = 0

    for path in sorted(modules):
        for file_path, content in read_definitions(path, suffix):
            for source in parser.find_module_sources(content):
                target = resolve_source(path, source)
                if target is not None and add_dependency(modules, path, target):
                    edges += 1
                else:
                    logger.debug(f"Ignoring source '{source}' in {file_path}")

    logger.info(f"Built dependency graph with {edges} edge(s)")
    return modules


def find_changed_modules(modules: ModuleMap, changed_files: Iterable[str]) -> List[Module]:
    """
    Map changed files to the modules owning them.

    A file belongs to the module whose directory directly contains it.
    Files outside any module are ignored. Paths are canonicalised before
    matching, so symlinked roots and ".." segments still find their owner.

    Returns:
        Owning modules, first occurrence order, without duplicates
    """
    owners: List[Module] = []
    seen = set()
    for changed_file in changed_files:
        directory = canonical_path(os.path.dirname(changed_file))
        module = modules.get(directory)
        if module is None or directory in seen:
            continue
        seen.add(directory)
        owners.append(module)
    return owners


def propagate_changes(modules: ModuleMap, changed: Iterable[Module]) -> List[str]:
    """
    Mark changed modules and everything using them, depth first.

    Each module is visited at most once, so cycles terminate. Stateful
    modules are collected in visit order; stateless modules are marked
    but only forward the change to their users.

    Returns:
        Paths of affected stateful modules, each exactly once
    """
    affected: List[str] = []
    processed = set()

    for start in changed:
        stack = [start.path]
        while stack:
            path = stack.pop()
            if path in processed or path not in modules:
                continue
            processed.add(path)

            module = modules[path]
            module.mark_changed()
            logger.debug(f"Marked changed: {module!r}")

            if module.is_stateful:
                affected.append(path)

            # Reversed so users are visited in sorted order
            stack.extend(sorted(module.used_by, reverse=True))

    return affected


def dependency_order(affected: Iterable[str], modules: ModuleMap) -> List[str]:
    """
    Reorder affected modules so dependencies come before their users.

    Dependencies are followed through any module, stateless ones included.
    Cycles are broken at the first revisit. Unrelated modules keep their
    relative input order.
    """
    affected = list(affected)
    wanted = set(affected)
    ordered: List[str] = []
    visited = set()

    for start in affected:
        if start in visited or start not in modules:
            continue
        visited.add(start)
        stack = [(start, iter(sorted(modules[start].depends_on)))]

        while stack:
            path, dependencies = stack[-1]
            for dependency in dependencies:
                if dependency not in visited and dependency in modules:
                    visited.add(dependency)
                    stack.append((dependency, iter(sorted(modules[dependency].depends_on))))
                    break
            else:
                stack.pop()
                if path in wanted:
                    ordered.append(path)

    return ordered


class AffectedModuleFinder:
    """
    Computes which stateful modules need terraform runs.

    Discovery, graph construction and the change-source query are
    all-or-nothing: any failure raises and no partial result is returned.
    """

    def __init__(
        self,
        change_source: ChangeSource,
        parser=None,
        ignored_dirs: Optional[Iterable[str]] = None,
    ):
        self.change_source = change_source
        self.parser = parser or LineParser()
        self.discoverer = ModuleDiscoverer(self.parser, ignored_dirs)

    def build_modules(self, root_dir: str) -> ModuleMap:
        """
        Discover modules under the root and link them.

        Raises:
            DiscoveryError: On any filesystem failure
        """
        modules = self.discoverer.discover(root_dir)
        return build_dependency_graph(modules, self.parser)

    def get_affected_modules(self, root_dir: str, modules: Optional[ModuleMap] = None) -> List[str]:
        """
        List stateful modules affected by the change source's files.

        Args:
            root_dir: Directory tree to scan
            modules: Already built module map to reuse (fresh, unmarked)

        Returns:
            Canonical module paths in traversal order; empty if nothing changed

        Raises:
            DiscoveryError: If the tree cannot be scanned
            ChangeSourceError: If changed files cannot be listed
        """
        if modules is None:
            modules = self.build_modules(root_dir)

        changed_files = self.change_source.list_changed_files(root_dir)
        changed_modules = find_changed_modules(modules, changed_files)
        logger.info(
            f"{len(changed_files)} changed file(s) touch {len(changed_modules)} module(s)"
        )

        affected = propagate_changes(modules, changed_modules)
        if affected:
            logger.info(f"Found {len(affected)} affected stateful module(s)")
        else:
            logger.info("No stateful modules were affected")
        return affected


def get_affected_modules(
    root_dir: str,
    change_source: ChangeSource,
    parser=None,
    ignored_dirs: Optional[Iterable[str]] = None,
) -> List[str]:
    """Convenience wrapper around AffectedModuleFinder."""
    finder = AffectedModuleFinder(change_source, parser, ignored_dirs)
    return finder.get_affected_modules(root_dir)
