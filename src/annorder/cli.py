"""annorder CLI entry point."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
import yaml

from annorder import __version__


@click.group()
@click.version_option(version=__version__, prog_name="annorder")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output (debug logging).")
@click.pass_context
def main(ctx: click.Context, *, verbose: bool) -> None:
    """annorder - check that annotations appear in canonical order."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _resolve_rules_path(project_root: Path, rules: Path | None) -> Path:
    from annorder.engine.rule_table import DEFAULT_CONFIG_NAME

    return rules if rules is not None else project_root / DEFAULT_CONFIG_NAME


@main.command()
@click.argument(
    "paths",
    nargs=-1,
    type=click.Path(exists=True, path_type=Path),
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice(["text", "json", "porcelain"]),
    default=None,
    help="Output format (default: text if TTY, porcelain if piped).",
)
@click.option(
    "--strict",
    is_flag=True,
    default=False,
    help="Exit 1 if findings are reported.",
)
@click.option(
    "--all-pairs",
    is_flag=True,
    default=False,
    help="Report every inverted pair instead of the first one per declaration.",
)
@click.option(
    "--rules",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Rule config file (default: <project>/annotation-order.yml).",
)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def lint(
    paths: tuple[Path, ...],
    *,
    fmt: str | None,
    strict: bool,
    all_pairs: bool,
    rules: Path | None,
    project: Path | None,
) -> None:
    """Check annotation order in Java sources.

    Scans PATHS (default: the whole project).
    Exit codes: 0 = clean or findings without --strict,
    1 = findings with --strict, 2 = configuration error.
    """
    from annorder.linter import LintError
    from annorder.linter import format_json as _format_json
    from annorder.linter import format_porcelain as _format_porcelain
    from annorder.linter import format_text as _format_text
    from annorder.linter import lint as run_lint

    project_root = project or Path.cwd()

    # Resolve output format: explicit flag > TTY detection.
    if fmt is None:
        fmt = "text" if sys.stdout.isatty() else "porcelain"

    try:
        result = run_lint(
            project_root,
            rules_path=rules,
            paths=paths or None,
            report_all=all_pairs,
        )
    except LintError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)

    formatters = {
        "text": _format_text,
        "json": _format_json,
        "porcelain": _format_porcelain,
    }
    output = formatters[fmt](result)
    if output:
        click.echo(output)

    if strict and result.findings:
        sys.exit(1)


@main.command("rules")
@click.option(
    "--rules",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Rule config file (default: <project>/annotation-order.yml).",
)
@click.option(
    "--project",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=None,
    help="Project root (default: current directory).",
)
def rules_cmd(*, rules: Path | None, project: Path | None) -> None:
    """List the effective ordering rules."""
    from annorder.engine.rule_table import load_rule_table, validate_rules

    rules_path = _resolve_rules_path(project or Path.cwd(), rules)
    try:
        table, _config = load_rule_table(rules_path)
    except (ValueError, yaml.YAMLError) as exc:
        click.echo(f"Error: Invalid rules configuration: {exc}", err=True)
        sys.exit(2)

    for constraint in table.constraints:
        click.echo(
            f"{constraint.name}: {constraint.first.describe()} -> {constraint.second.describe()}"
        )
    for warning in validate_rules(table):
        click.echo(f"Warning: {warning}", err=True)
