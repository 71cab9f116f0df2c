"""Order checker: find annotation pairs that break the rule table on one declaration."""

from __future__ import annotations

import heapq
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from annorder.engine.rule_table import OrderConstraint, RuleTable

MESSAGE_PREFIX = "Annotations are in wrong order. Should be"

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Annotation:
    """One annotation on a declaration.

    ``location`` is whatever the caller uses to point back at the source
    (a span, a node, an index); the checker never looks inside it.
    """

    name: str
    location: object | None = None


@dataclass(frozen=True)
class Violation:
    """An annotation found after one it is required to precede."""

    annotation: Annotation  # out of place; the one that should have come first
    index: int
    conflicts_with: Annotation
    conflicts_with_index: int
    constraint: OrderConstraint
    expected_order: tuple[str, ...]

    @property
    def message(self) -> str:
        return format_message(self.expected_order)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def format_message(names: Iterable[str]) -> str:
    """Render ``Annotations are in wrong order. Should be @A @B``."""
    rendered = " ".join(f"@{name}" for name in names)
    return f"{MESSAGE_PREFIX} {rendered}"


def expected_order(annotations: Sequence[Annotation], table: RuleTable) -> tuple[str, ...]:
    """Return the corrected order of the annotations the table has an opinion about.

    Only annotations constrained against another annotation of the same
    declaration are kept. They are topologically sorted over every matched
    constraint, ties broken by original position. If the constraints are
    contradictory, whatever cannot be placed is appended in original order.
    """
    names = [a.name for a in annotations]
    count = len(names)

    # successors[i] holds positions that must come after position i.
    successors: dict[int, list[int]] = {i: [] for i in range(count)}
    in_degree: dict[int, int] = dict.fromkeys(range(count), 0)
    participating: set[int] = set()

    for i in range(count):
        for j in range(i + 1, count):
            ordered = table.constraint_between(names[i], names[j])
            if ordered is None:
                continue
            participating.update((i, j))
            # Compare by position, not by name, so duplicates stay distinct.
            before, after = (i, j) if ordered.first == names[i] else (j, i)
            successors[before].append(after)
            in_degree[after] += 1

    ready = [i for i in sorted(participating) if in_degree[i] == 0]
    heapq.heapify(ready)
    result: list[int] = []
    placed: set[int] = set()

    while ready:
        current = heapq.heappop(ready)
        result.append(current)
        placed.add(current)
        for nxt in successors[current]:
            in_degree[nxt] -= 1
            if in_degree[nxt] == 0:
                heapq.heappush(ready, nxt)

    result.extend(i for i in sorted(participating) if i not in placed)
    return tuple(names[i] for i in result)


# ---------------------------------------------------------------------------
# Main entry points
# ---------------------------------------------------------------------------


def check_annotations(
    annotations: Sequence[Annotation],
    table: RuleTable,
    *,
    report_all: bool = False,
) -> list[Violation]:
    """Check one declaration's annotations against *table*.

    Pairs of positions ``(i, j)`` with ``i < j`` are scanned row by row.
    A pair is a violation when the table requires ``annotations[j]`` to come
    first. By default only the first violation is returned; pass
    *report_all* to collect every inverted pair.
    """
    if len(annotations) < 2:
        return []

    violations: list[Violation] = []
    corrected: tuple[str, ...] | None = None

    for i in range(len(annotations)):
        for j in range(i + 1, len(annotations)):
            earlier, later = annotations[i], annotations[j]
            ordered = table.constraint_between(earlier.name, later.name)
            if ordered is None or ordered.first != later.name:
                continue

            if corrected is None:
                corrected = expected_order(annotations, table)
            violations.append(
                Violation(
                    annotation=later,
                    index=j,
                    conflicts_with=earlier,
                    conflicts_with_index=i,
                    constraint=ordered.constraint,
                    expected_order=corrected,
                )
            )
            if not report_all:
                return violations

    return violations


def check_names(
    names: Sequence[str],
    table: RuleTable,
    *,
    report_all: bool = False,
) -> list[Violation]:
    """Like :func:`check_annotations` for bare names; locations are positions."""
    annotations = [Annotation(name=name, location=idx) for idx, name in enumerate(names)]
    return check_annotations(annotations, table, report_all=report_all)
