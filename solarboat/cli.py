"""
Command-line interface for Solar Boat.

Usage:
    solarboat terraform plan [ROOT] --output-dir terraform-plans
    solarboat terraform apply [ROOT] --auto-approve
    solarboat modules [ROOT] --all
    solarboat config show
    solarboat config set base_branch develop
    solarboat version
"""

import json
import os
from pathlib import Path
from typing import List, Optional, Tuple

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from solarboat import get_version
from solarboat.config import Settings
from solarboat.core import (
    AffectedModuleFinder,
    BatchOperationError,
    ModuleExecutor,
    ModuleMap,
    SolarboatError,
    StaticChangeSource,
    dependency_order,
    get_change_source,
    get_parser,
)
from solarboat.utils import setup_logging, validate_terraform_installed

app = typer.Typer(
    name="solarboat",
    help="Run Terraform only on the modules affected by your changes",
    add_completion=False,
)
terraform_app = typer.Typer(help="Execute Terraform operations on changed modules and their dependents")
config_app = typer.Typer(help="Show or change Solar Boat settings")
app.add_typer(terraform_app, name="terraform")
app.add_typer(config_app, name="config")

console = Console()


# ---------------------------------------------------------------------------
# Shared options
# ---------------------------------------------------------------------------

ROOT_ARGUMENT = typer.Argument(Path("."), help="Root directory to scan for modules")
CHANGE_SOURCE_OPTION = typer.Option(
    None, "--change-source", "-c",
    help="'merge-base' (committed changes) or 'status' (uncommitted changes)",
)
BASE_BRANCH_OPTION = typer.Option(None, "--base-branch", "-b", help="Branch to diff against")
FILES_OPTION = typer.Option(
    None, "--files", "-f",
    help="Treat these files as changed instead of asking git (repeatable)",
)
PARSER_OPTION = typer.Option(None, "--parser", help="Definition parser: 'line' or 'hcl'")
ORDER_OPTION = typer.Option(
    None, "--order",
    help="'traversal' (default) or 'dependency' (dependencies run first)",
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
    log_file: bool = typer.Option(False, "--log-file", help="Also write a debug log file"),
    config_dir: Optional[Path] = typer.Option(
        None, "--config-dir", envvar="SOLARBOAT_CONFIG_DIR",
        help="Directory holding settings.json",
    ),
):
    """Solar Boat - a CLI tool for GitOps workflows on Terraform monorepos."""
    settings = Settings(config_dir)
    level = "DEBUG" if verbose else settings.get("logging.level", "WARNING")
    setup_logging(log_level=level, log_file=log_file or settings.get("logging.file", False))
    ctx.obj = settings


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------

def shorten_path(path: str) -> str:
    """Keep the last two components of a path for display."""
    parts = path.split(os.sep)
    if len(parts) <= 2:
        return path
    return "..." + os.sep + os.sep.join(parts[-2:])


def print_header(operation: str):
    console.print(Panel(f"[bold blue]{operation}[/bold blue]"))


def print_no_changes():
    console.print("\n[green]✨ No changes detected:[/green]")
    console.print("  • No stateful modules were changed")
    console.print("  • No stateful modules were affected by changes in stateless modules")


def print_module_list(modules: List[str]):
    console.print(f"\n[cyan]📋 Found {len(modules)} affected module(s):[/cyan]")
    for module in modules:
        console.print(f"  • {shorten_path(module)}")


def print_terraform_output(line: str):
    console.print(line, markup=False, highlight=False, soft_wrap=True)


# ---------------------------------------------------------------------------
# Selection
# ---------------------------------------------------------------------------

def _build_finder(
    settings: Settings,
    change_source: Optional[str],
    base_branch: Optional[str],
    files: Optional[List[str]],
    parser: Optional[str],
) -> AffectedModuleFinder:
    if files:
        source = StaticChangeSource(files)
    else:
        source = get_change_source(
            change_source or settings.get("change_source", "merge-base"),
            base_branch=base_branch or settings.get("base_branch", "main"),
            git_binary=settings.get("git_binary", "git"),
        )
    return AffectedModuleFinder(
        source,
        parser=get_parser(parser or settings.get("parser", "line"), settings.markers()),
        ignored_dirs=settings.ignored_dirs(),
    )


def find_affected_modules(
    settings: Settings,
    root: Path,
    change_source: Optional[str] = None,
    base_branch: Optional[str] = None,
    files: Optional[List[str]] = None,
    parser: Optional[str] = None,
    order: Optional[str] = None,
) -> Tuple[List[str], ModuleMap]:
    """
    Resolve the affected module list, exiting with status 1 on failure.
    """
    order = order or settings.get("execution_order", "traversal")
    try:
        if order not in ("traversal", "dependency"):
            raise ValueError(f"Unknown execution order '{order}'")
        finder = _build_finder(settings, change_source, base_branch, files, parser)
        module_map = finder.build_modules(str(root))
        affected = finder.get_affected_modules(str(root), modules=module_map)
    except (SolarboatError, ValueError) as e:
        console.print(f"[red]❌ Failed to get changed modules: {e}[/red]")
        raise typer.Exit(1)

    if order == "dependency":
        affected = dependency_order(affected, module_map)
    return affected, module_map


def _run_batch(settings: Settings, root: Path, modules: List[str], command: str, output_dir: Optional[Path] = None):
    terraform_binary = settings.get("terraform_binary", "terraform")
    installed, version = validate_terraform_installed(terraform_binary)
    if not installed:
        console.print(f"[red]❌ Terraform not found: {terraform_binary}[/red]")
        raise typer.Exit(1)
    console.print(f"[dim]{version}[/dim]")

    executor = ModuleExecutor(
        str(root),
        terraform_binary=terraform_binary,
        timeout=settings.get("command_timeout"),
        plan_output_dir=str(output_dir or settings.get("plan_output_dir", "terraform-plans")),
        output_callback=print_terraform_output,
    )

    console.print("\n[bold]🚀 Starting Terraform operations...[/bold]")
    try:
        report = executor.run(modules, command)
    except BatchOperationError as e:
        console.print(f"\n[yellow]⚠️  {len(e.failures)} operation(s) failed:[/yellow]")
        for failure in e.failures:
            console.print(f"  • {shorten_path(failure.module)}: terraform {failure.step}")
        raise typer.Exit(1)
    except SolarboatError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(1)

    for module, plan_file in report.plan_files.items():
        console.print(f"[dim]Plan for {shorten_path(module)} saved to {plan_file}[/dim]")
    console.print("\n[bold green]✅ All operations completed successfully![/bold green]")


# ---------------------------------------------------------------------------
# terraform plan / apply
# ---------------------------------------------------------------------------

@terraform_app.command("plan")
def plan_command(
    ctx: typer.Context,
    root: Path = ROOT_ARGUMENT,
    output_dir: Optional[Path] = typer.Option(
        None, "--output-dir", "-o", help="Directory to store plan files",
    ),
    change_source: Optional[str] = CHANGE_SOURCE_OPTION,
    base_branch: Optional[str] = BASE_BRANCH_OPTION,
    files: Optional[List[str]] = FILES_OPTION,
    parser: Optional[str] = PARSER_OPTION,
    order: Optional[str] = ORDER_OPTION,
):
    """
    Run terraform plan on affected modules.

    Detects changed Terraform modules and plans them and their dependents.
    """
    settings: Settings = ctx.obj
    print_header("Terraform Plan")
    console.print("🔍 Analyzing changes in Terraform modules...")

    modules, _ = find_affected_modules(settings, root, change_source, base_branch, files, parser, order)
    if not modules:
        print_no_changes()
        return

    print_module_list(modules)
    _run_batch(settings, root, modules, "plan", output_dir)


@terraform_app.command("apply")
def apply_command(
    ctx: typer.Context,
    root: Path = ROOT_ARGUMENT,
    auto_approve: bool = typer.Option(
        False, "--auto-approve", help="Skip interactive approval before applying",
    ),
    change_source: Optional[str] = CHANGE_SOURCE_OPTION,
    base_branch: Optional[str] = BASE_BRANCH_OPTION,
    files: Optional[List[str]] = FILES_OPTION,
    parser: Optional[str] = PARSER_OPTION,
    order: Optional[str] = ORDER_OPTION,
):
    """
    Run terraform apply on affected modules.

    Detects changed Terraform modules and applies them and their dependents.
    """
    settings: Settings = ctx.obj
    print_header("Terraform Apply")
    console.print("🔍 Analyzing changes in Terraform modules...")

    modules, _ = find_affected_modules(settings, root, change_source, base_branch, files, parser, order)
    if not modules:
        print_no_changes()
        return

    print_module_list(modules)

    if not auto_approve:
        if not Confirm.ask("\n[yellow]⚠️  Do you want to apply these changes?[/yellow]", default=False, console=console):
            console.print("[red]❌ Apply cancelled[/red]")
            raise typer.Exit(0)

    _run_batch(settings, root, modules, "apply")


# ---------------------------------------------------------------------------
# modules
# ---------------------------------------------------------------------------

@app.command("modules")
def modules_command(
    ctx: typer.Context,
    root: Path = ROOT_ARGUMENT,
    show_all: bool = typer.Option(False, "--all", "-a", help="Show every discovered module"),
    change_source: Optional[str] = CHANGE_SOURCE_OPTION,
    base_branch: Optional[str] = BASE_BRANCH_OPTION,
    files: Optional[List[str]] = FILES_OPTION,
    parser: Optional[str] = PARSER_OPTION,
    order: Optional[str] = ORDER_OPTION,
):
    """
    List affected modules without running Terraform.

    With --all, show every discovered module and its graph edges instead.
    """
    settings: Settings = ctx.obj

    if show_all:
        try:
            finder = _build_finder(settings, change_source, base_branch, files, parser)
            module_map = finder.build_modules(str(root))
        except (SolarboatError, ValueError) as e:
            console.print(f"[red]❌ Failed to discover modules: {e}[/red]")
            raise typer.Exit(1)

        table = Table(title=f"Modules ({len(module_map)})")
        table.add_column("Module", style="cyan")
        table.add_column("Kind")
        table.add_column("Depends on", justify="right")
        table.add_column("Used by", justify="right")
        for path in sorted(module_map):
            module = module_map[path]
            kind = "[dim]stateless[/dim]" if module.is_stateless else "[green]stateful[/green]"
            table.add_row(path, kind, str(len(module.depends_on)), str(len(module.used_by)))
        console.print(table)
        return

    modules, _ = find_affected_modules(settings, root, change_source, base_branch, files, parser, order)
    if not modules:
        print_no_changes()
        return

    for module in modules:
        console.print(module, markup=False, highlight=False, soft_wrap=True)


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------

@config_app.command("show")
def config_show_command(ctx: typer.Context):
    """Print the effective settings as JSON."""
    settings: Settings = ctx.obj
    console.print(f"[dim]{settings.config_file}[/dim]")
    console.print_json(json.dumps(settings.as_dict()))


@config_app.command("set")
def config_set_command(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Setting key, dots for nesting (e.g. markers.backend)"),
    value: str = typer.Argument(..., help="New value, parsed as JSON when possible"),
):
    """Change a setting and save it."""
    settings: Settings = ctx.obj
    try:
        parsed = json.loads(value)
    except ValueError:
        parsed = value

    settings.set(key, parsed)
    try:
        settings.save()
    except OSError as e:
        console.print(f"[red]Error saving settings: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓ {key} = {json.dumps(parsed)}[/green]")


@app.command("version")
def version_command():
    """Show the version of Solar Boat."""
    console.print(get_version(), markup=False, highlight=False, soft_wrap=True)


def main():
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
