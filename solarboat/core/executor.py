"""
Batch execution of terraform commands across affected modules.

Modules are processed sequentially in the order given. A failure in one
module never stops the others; all failures are raised together at the end.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .errors import BatchOperationError, ModuleOperationError, SolarboatError
from .terraform_runner import CommandResult, TerraformRunner

logger = logging.getLogger(__name__)

SUPPORTED_COMMANDS = ("init", "plan", "apply")


@dataclass
class ExecutionReport:
    """Outcome of a batch run that had no failures."""
    command: str
    succeeded: List[str] = field(default_factory=list)
    plan_files: Dict[str, str] = field(default_factory=dict)


class ModuleExecutor:
    """
    Runs init/plan/apply over a list of module directories.

    For plan and apply, every module is initialised first. A module whose
    init fails is skipped for the main command.
    """

    def __init__(
        self,
        root_dir: str,
        terraform_binary: str = "terraform",
        timeout: Optional[float] = None,
        plan_output_dir: str = "terraform-plans",
        output_callback: Optional[Callable[[str], None]] = None,
        runner_factory: Optional[Callable[[str], TerraformRunner]] = None,
    ):
        """
        Args:
            root_dir: Root the modules were discovered under (used for plan file names)
            terraform_binary: Terraform executable
            timeout: Per-command timeout in seconds, None for no limit
            plan_output_dir: Where plan files are written
            output_callback: Receives every line of terraform output
            runner_factory: Builds a runner for a module path
        """
        self.root_dir = os.path.realpath(root_dir)
        self.plan_output_dir = os.path.abspath(plan_output_dir)
        self.output_callback = output_callback
        self.runner_factory = runner_factory or (
            lambda path: TerraformRunner(path, terraform_binary=terraform_binary, timeout=timeout)
        )

    def run(self, modules: List[str], command: str) -> ExecutionReport:
        """
        Run ``command`` on every module.

        Apply is always non-interactive; confirm before calling.

        Returns:
            Report listing modules that succeeded

        Raises:
            ValueError: If the command is not supported
            SolarboatError: If the plan output directory cannot be created
            BatchOperationError: If any module failed any step
        """
        if command not in SUPPORTED_COMMANDS:
            raise ValueError(f"Unsupported command: {command}")

        report = ExecutionReport(command=command)
        failures: List[ModuleOperationError] = []
        runners = {path: self.runner_factory(path) for path in modules}
        ready: List[str] = []

        logger.info(f"Initializing {len(modules)} module(s)")
        for path in modules:
            result = runners[path].init(output_callback=self.output_callback)
            if self._record(path, result, failures):
                ready.append(path)

        if command == "init":
            report.succeeded = ready
        else:
            if command == "plan" and ready:
                self._ensure_plan_dir()

            for path in ready:
                if command == "plan":
                    plan_file = self.plan_file_for(path)
                    result = runners[path].plan(
                        out_file=plan_file, output_callback=self.output_callback
                    )
                    if self._record(path, result, failures):
                        report.plan_files[path] = plan_file
                        report.succeeded.append(path)
                else:
                    result = runners[path].apply(
                        auto_approve=True, output_callback=self.output_callback
                    )
                    if self._record(path, result, failures):
                        report.succeeded.append(path)

        if failures:
            raise BatchOperationError(failures)
        return report

    def plan_file_for(self, module_path: str) -> str:
        """
        Plan file path for a module.

        Named after the module path relative to the root so that modules
        sharing a directory name do not overwrite each other.
        """
        relative = os.path.relpath(module_path, self.root_dir)
        if relative == os.curdir or relative.startswith(os.pardir):
            slug = os.path.basename(module_path)
        else:
            slug = relative.replace(os.sep, "_")
        return os.path.join(self.plan_output_dir, f"{slug}.tfplan")

    def _ensure_plan_dir(self):
        try:
            os.makedirs(self.plan_output_dir, exist_ok=True)
        except OSError as e:
            raise SolarboatError(f"failed to create output directory {self.plan_output_dir}: {e}") from e

    @staticmethod
    def _record(path: str, result: CommandResult, failures: List[ModuleOperationError]) -> bool:
        if result.success:
            logger.info(f"terraform {result.command} succeeded in {path}")
            return True
        failure = ModuleOperationError(path, result.command, result)
        logger.error(str(failure))
        failures.append(failure)
        return False
