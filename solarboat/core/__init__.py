"""
Core functionality for Solar Boat.

This module provides the business logic for change-driven Terraform runs:
- Discovering modules and classifying them as stateful or stateless
- Building the module dependency graph and propagating changes
- Listing changed files from git
- Executing Terraform commands per module
"""

from .errors import (
    SolarboatError,
    DiscoveryError,
    ChangeSourceError,
    ModuleOperationError,
    BatchOperationError,
)
from .module import Module, ModuleMap
from .terraform_parser import ParserMarkers, LineParser, HclParser, get_parser
from .module_discovery import ModuleDiscoverer
from .change_source import (
    ChangeSource,
    StaticChangeSource,
    GitMergeBaseChangeSource,
    GitStatusChangeSource,
    get_change_source,
)
from .module_graph import AffectedModuleFinder, get_affected_modules, dependency_order
from .terraform_runner import TerraformRunner, CommandResult
from .executor import ModuleExecutor, ExecutionReport

__all__ = [
    "SolarboatError",
    "DiscoveryError",
    "ChangeSourceError",
    "ModuleOperationError",
    "BatchOperationError",
    "Module",
    "ModuleMap",
    "ParserMarkers",
    "LineParser",
    "HclParser",
    "get_parser",
    "ModuleDiscoverer",
    "ChangeSource",
    "StaticChangeSource",
    "GitMergeBaseChangeSource",
    "GitStatusChangeSource",
    "get_change_source",
    "AffectedModuleFinder",
    "get_affected_modules",
    "dependency_order",
    "TerraformRunner",
    "CommandResult",
    "ModuleExecutor",
    "ExecutionReport",
]
