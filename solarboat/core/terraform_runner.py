"""
Terraform command execution for a single module.

Runs init, plan and apply with line-by-line output streaming. Commands
never use a shell and never prompt for input.
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..utils import subprocess_creation_flags

logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result of a Terraform command execution."""
    exit_code: int
    stdout: str  # combined stdout and stderr of the process
    stderr: str  # errors raised before or around the process
    success: bool
    command: str  # operation name (e.g. "init", "plan")


class TerraformRunner:
    """
    Executes Terraform commands in one module directory.

    - shell=False always
    - -input=false prevents stdin prompts
    - Optional timeout; None waits for the process indefinitely
    """

    def __init__(
        self,
        module_path: str,
        terraform_binary: str = "terraform",
        timeout: Optional[float] = None,
    ):
        self.module_path = module_path
        self.terraform_binary = terraform_binary
        self.timeout = timeout

    def init(
        self,
        output_callback: Optional[Callable[[str], None]] = None,
    ) -> CommandResult:
        """Run terraform init."""
        cmd = self._build_base_command("init")
        cmd.extend(["-input=false", "-no-color"])
        return self._execute(cmd, "init", output_callback)

    def plan(
        self,
        out_file: Optional[str] = None,
        output_callback: Optional[Callable[[str], None]] = None,
    ) -> CommandResult:
        """Run terraform plan, optionally saving the plan to ``out_file``."""
        cmd = self._build_base_command("plan")
        cmd.extend(["-input=false", "-no-color"])

        if out_file:
            cmd.append(f"-out={out_file}")

        return self._execute(cmd, "plan", output_callback)

    def apply(
        self,
        auto_approve: bool = False,
        output_callback: Optional[Callable[[str], None]] = None,
    ) -> CommandResult:
        """Run terraform apply."""
        cmd = self._build_base_command("apply")
        cmd.extend(["-input=false", "-no-color"])

        if auto_approve:
            cmd.append("-auto-approve")

        return self._execute(cmd, "apply", output_callback)

    def _build_base_command(self, operation: str) -> List[str]:
        """Construct the base command list [binary, -chdir=path, operation]."""
        return [self.terraform_binary, f"-chdir={self.module_path}", operation]

    def _execute(
        self,
        cmd: List[str],
        operation: str,
        output_callback: Optional[Callable[[str], None]] = None,
    ) -> CommandResult:
        """
        Execute a command and collect its output.

        Without a timeout, output is streamed to the callback as it
        arrives. With a timeout, output is delivered once the process ends
        or is killed.
        """
        lines: List[str] = []

        def _emit(line: str):
            line = line.rstrip("\n")
            lines.append(line)
            if output_callback:
                output_callback(line)

        logger.debug(f"Running {' '.join(cmd)}")

        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                shell=False,
                creationflags=subprocess_creation_flags(),
            )
        except OSError as e:
            logger.error(f"Failed to start {cmd[0]}: {e}")
            return CommandResult(
                exit_code=-1,
                stdout="",
                stderr=str(e),
                success=False,
                command=operation,
            )

        try:
            if self.timeout is None:
                assert process.stdout is not None
                for line in process.stdout:
                    _emit(line)
                exit_code = process.wait()
            else:
                stdout, _ = process.communicate(timeout=self.timeout)
                for line in (stdout or "").splitlines():
                    _emit(line)
                exit_code = process.returncode

        except subprocess.TimeoutExpired:
            logger.error(f"terraform {operation} timed out after {self.timeout}s")
            process.kill()
            process.communicate()
            return CommandResult(
                exit_code=-1,
                stdout="\n".join(lines),
                stderr="Command timed out",
                success=False,
                command=operation,
            )

        return CommandResult(
            exit_code=exit_code,
            stdout="\n".join(lines),
            stderr="",
            success=exit_code == 0,
            command=operation,
        )
