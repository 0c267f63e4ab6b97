"""
Error taxonomy for Solar Boat.

Discovery and change-source errors are fatal to a whole invocation.
Module operation errors are collected per module and reported together.
"""

from typing import List, Optional


class SolarboatError(Exception):
    """Base class for all Solar Boat errors."""
    pass


class DiscoveryError(SolarboatError):
    """Raised when the module tree cannot be walked or read."""

    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        message = f"failed to access path {path}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class ChangeSourceError(SolarboatError):
    """Raised when the list of changed files cannot be determined."""

    def __init__(self, step: str, detail: str = ""):
        self.step = step
        self.detail = detail
        message = f"failed to {step}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class ModuleOperationError(SolarboatError):
    """A single terraform step failed for a single module."""

    def __init__(self, module: str, step: str, result=None):
        self.module = module
        self.step = step
        self.result = result
        message = f"terraform {step} failed in {module}"
        if result is not None and result.exit_code != 0:
            message += f" (exit code {result.exit_code})"
        super().__init__(message)


class BatchOperationError(SolarboatError):
    """Aggregate of every per-module failure in a batch run."""

    def __init__(self, failures: List[ModuleOperationError]):
        self.failures = list(failures)
        lines = [f"{len(self.failures)} module operation(s) failed:"]
        lines.extend(f"  - {failure}" for failure in self.failures)
        super().__init__("\n".join(lines))

    @property
    def failed_modules(self) -> List[str]:
        return [failure.module for failure in self.failures]
