"""
In-memory representation of a discovered Terraform module.
"""

from dataclasses import dataclass, field
from typing import Dict, Set


@dataclass
class Module:
    """
    A directory holding one logical unit of Terraform definitions.

    Attributes:
        path: Canonical absolute directory path (unique key)
        depends_on: Paths of modules this one references as a source
        used_by: Paths of modules referencing this one
        is_stateless: True if no definition file declares a backend
        changed: Set once during propagation, never cleared
    """
    path: str
    is_stateless: bool = True
    depends_on: Set[str] = field(default_factory=set)
    used_by: Set[str] = field(default_factory=set)
    changed: bool = False

    @property
    def is_stateful(self) -> bool:
        return not self.is_stateless

    def mark_changed(self) -> bool:
        """
        Mark the module as changed.

        Returns:
            True if this call marked it, False if it was already marked
        """
        if self.changed:
            return False
        self.changed = True
        return True

    def __repr__(self) -> str:
        kind = "stateless" if self.is_stateless else "stateful"
        return (
            f"Module(path='{self.path}', {kind}, "
            f"depends_on={len(self.depends_on)}, used_by={len(self.used_by)})"
        )


# Module map keyed by canonical path, owned by one invocation.
ModuleMap = Dict[str, Module]


def add_dependency(modules: ModuleMap, source: str, target: str) -> bool:
    """
    Record that ``source`` depends on ``target``, keeping both views in sync.

    Returns:
        False if either end is not a known module (no edge is recorded)
    """
    if source not in modules or target not in modules:
        return False
    modules[source].depends_on.add(target)
    modules[target].used_by.add(source)
    return True
