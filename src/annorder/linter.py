"""Linter orchestrator: load rules, scan Java sources, check declarations, format results."""

from __future__ import annotations

import fnmatch
import json
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import yaml

from annorder.engine.checker import Violation, check_annotations
from annorder.engine.rule_table import DEFAULT_CONFIG_NAME, load_rule_table, validate_rules
from annorder.source.java_scanner import Declaration, SourceSpan, scan_source

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path

logger = logging.getLogger(__name__)

ISSUE_ID = "WrongAnnotationOrder"
SEVERITY = "Warning"

# Directories never worth scanning.
_SKIP_DIRS: frozenset[str] = frozenset({".git", ".gradle", ".idea", "build", "node_modules"})


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class LintError(Exception):
    """Raised when lint encounters a configuration error."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Finding:
    """A violation bound to the file and source line it was found in."""

    file_path: str
    declaration: Declaration
    violation: Violation
    source_line: str

    @property
    def span(self) -> SourceSpan | None:
        location = self.violation.annotation.location
        return location if isinstance(location, SourceSpan) else None

    @property
    def line_number(self) -> int:
        span = self.span
        return span.line if span is not None else self.declaration.line


@dataclass
class LintResult:
    """Result of a lint run."""

    findings: list[Finding] = field(default_factory=list)
    rules_loaded: int = 0
    files_scanned: int = 0
    declarations_checked: int = 0
    elapsed_ms: float = 0.0
    warnings: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# File discovery
# ---------------------------------------------------------------------------


def _is_excluded(rel_path: str, patterns: Iterable[str]) -> bool:
    return any(fnmatch.fnmatch(rel_path, pattern) for pattern in patterns)


def _iter_java_files(
    project_root: Path, paths: Iterable[Path] | None, exclude: tuple[str, ...]
) -> Iterator[Path]:
    """Yield ``.java`` files under *paths* (or the whole project), sorted per root."""
    roots = list(paths) if paths else [project_root]
    for root in roots:
        if root.is_file():
            candidates = [root] if root.suffix == ".java" else []
        else:
            candidates = sorted(root.rglob("*.java"))
        for candidate in candidates:
            # Only directories below the scanned root count as build output.
            inner_dirs = candidate.relative_to(root).parts[:-1]
            if any(part in _SKIP_DIRS for part in inner_dirs):
                continue
            try:
                rel = candidate.resolve().relative_to(project_root.resolve()).as_posix()
            except ValueError:
                rel = candidate.as_posix()
            if _is_excluded(rel, exclude):
                logger.debug("Excluded by config: %s", rel)
                continue
            yield candidate


def _display_path(file_path: Path, project_root: Path) -> str:
    try:
        return file_path.resolve().relative_to(project_root.resolve()).as_posix()
    except ValueError:
        return file_path.as_posix()


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def lint(
    project_root: Path,
    *,
    rules_path: Path | None = None,
    paths: Iterable[Path] | None = None,
    report_all: bool = False,
) -> LintResult:
    """Scan Java sources and check annotation order on every declaration.

    Parameters
    ----------
    project_root:
        Root of the project; reported paths are relative to it.
    rules_path:
        Optional explicit path to the rule config.  When *None* the default
        location ``<project_root>/annotation-order.yml`` is used if present.
    paths:
        Files or directories to scan instead of the whole project.
    report_all:
        Report every inverted pair per declaration instead of only the first.

    Returns
    -------
    LintResult
        Findings, counts, and timing.

    Raises
    ------
    LintError
        When the rule config is present but invalid.
    """
    start = time.monotonic()

    if rules_path is None:
        rules_path = project_root / DEFAULT_CONFIG_NAME
    elif not rules_path.is_file():
        msg = f"Rules file not found: {rules_path}"
        raise LintError(msg)

    try:
        table, config = load_rule_table(rules_path)
    except ValueError as exc:
        msg = f"Invalid rules configuration: {exc}"
        raise LintError(msg) from exc
    except yaml.YAMLError as exc:
        msg = f"Cannot parse {rules_path.name}: {exc}"
        raise LintError(msg) from exc

    warnings = validate_rules(table)
    for warning in warnings:
        logger.warning(warning)

    result = LintResult(rules_loaded=len(table), warnings=warnings)

    for file_path in _iter_java_files(project_root, paths, config.exclude):
        try:
            content = file_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            logger.warning("Cannot read file: %s", file_path)
            continue

        declarations = scan_source(content)
        lines = content.splitlines()
        rel = _display_path(file_path, project_root)
        result.files_scanned += 1
        result.declarations_checked += len(declarations)
        logger.debug("Scanned %s: %d annotated declarations", rel, len(declarations))

        for declaration in declarations:
            for violation in check_annotations(
                declaration.annotations, table, report_all=report_all
            ):
                location = violation.annotation.location
                line_no = location.line if isinstance(location, SourceSpan) else declaration.line
                source_line = lines[line_no - 1] if 0 < line_no <= len(lines) else ""
                result.findings.append(
                    Finding(
                        file_path=rel,
                        declaration=declaration,
                        violation=violation,
                        source_line=source_line,
                    )
                )

    result.elapsed_ms = (time.monotonic() - start) * 1000
    logger.info(
        "Checked %d declarations in %d files: %d findings",
        result.declarations_checked,
        result.files_scanned,
        len(result.findings),
    )
    return result


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def format_text(result: LintResult) -> str:
    """Format a LintResult the way Android lint prints its warnings.

    Example output::

        src/foo/MyTest.java:4: Warning: Annotations are in wrong order. Should be @Override @Test [WrongAnnotationOrder]
                @Test @Override public void myTest() { }
                       ~~~~~~~~
        0 errors, 1 warnings
    """  # noqa: E501
    if not result.findings:
        return "No issues found."

    lines: list[str] = []
    for finding in result.findings:
        lines.append(
            f"{finding.file_path}:{finding.line_number}: {SEVERITY}: "
            f"{finding.violation.message} [{ISSUE_ID}]"
        )
        span = finding.span
        if finding.source_line and span is not None:
            lines.append(finding.source_line)
            lines.append(" " * span.column + "~" * max(span.end_column - span.column, 1))

    lines.append(f"0 errors, {len(result.findings)} warnings")
    return "\n".join(lines)


def format_json(result: LintResult) -> str:
    """Format a LintResult as structured JSON.

    Returns a JSON string with ``findings`` array and ``summary`` object.
    """
    findings_list: list[dict[str, object]] = []
    for finding in result.findings:
        span = finding.span
        violation = finding.violation
        findings_list.append(
            {
                "issue_id": ISSUE_ID,
                "severity": SEVERITY.lower(),
                "file_path": finding.file_path,
                "line_number": finding.line_number,
                "column": span.column + 1 if span is not None else None,
                "declaration": finding.declaration.name,
                "declaration_kind": finding.declaration.kind,
                "annotation": violation.annotation.name,
                "conflicts_with": violation.conflicts_with.name,
                "rule_name": violation.constraint.name,
                "expected_order": list(violation.expected_order),
                "message": violation.message,
            }
        )

    output: dict[str, object] = {
        "findings": findings_list,
        "summary": {
            "rules_loaded": result.rules_loaded,
            "findings_count": len(result.findings),
            "files_scanned": result.files_scanned,
            "declarations_checked": result.declarations_checked,
            "elapsed_ms": result.elapsed_ms,
        },
    }

    return json.dumps(output, indent=2)


def format_porcelain(result: LintResult) -> str:
    """Format a LintResult as machine-readable one-line-per-finding output.

    Format: ``file_path:line:column:issue_id:expected_order`` where the
    column is 1-based (empty when unknown) and the expected order is
    space-separated ``@Name`` tokens.
    Returns empty string when there are no findings.
    """
    if not result.findings:
        return ""

    lines: list[str] = []
    for finding in result.findings:
        span = finding.span
        column = str(span.column + 1) if span is not None else ""
        expected = " ".join(f"@{name}" for name in finding.violation.expected_order)
        lines.append(f"{finding.file_path}:{finding.line_number}:{column}:{ISSUE_ID}:{expected}")

    return "\n".join(lines)
