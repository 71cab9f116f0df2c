"""Java source scanner: tree-sitter parsing and per-declaration annotation extraction."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import tree_sitter_java as tsjava
from tree_sitter import Language, Parser

from annorder.engine.checker import Annotation

if TYPE_CHECKING:
    from pathlib import Path

    from tree_sitter import Node as TSNode

_ANNOTATION_TYPES: frozenset[str] = frozenset({"marker_annotation", "annotation"})

# Loaded once per process.
_LANG_CACHE: dict[str, Language] = {}


@dataclass(frozen=True)
class SourceSpan:
    """Location of an annotation name: 1-based line, 0-based columns."""

    line: int
    column: int
    end_column: int


@dataclass(frozen=True)
class Declaration:
    """A class, method, field, variable or parameter carrying annotations."""

    kind: str  # tree-sitter node type, e.g. "method_declaration"
    name: str | None
    line: int
    annotations: tuple[Annotation, ...]


def _language() -> Language:
    if "java" not in _LANG_CACHE:
        _LANG_CACHE["java"] = Language(tsjava.language())
    return _LANG_CACHE["java"]


def _text(node: TSNode | None) -> str | None:
    if node is None or not node.text:
        return None
    return node.text.decode("utf-8")


def _declaration_name(node: TSNode) -> str | None:
    """Extract the declared name.

    Fields and local variables keep theirs inside a ``variable_declarator``.
    """
    name = _text(node.child_by_field_name("name"))
    if name is not None:
        return name
    declarator = node.child_by_field_name("declarator")
    if declarator is not None:
        return _text(declarator.child_by_field_name("name"))
    return None


def _annotation_name_node(node: TSNode) -> TSNode | None:
    """Return the simple-name node; ``@a.b.Nullable`` resolves to ``Nullable``."""
    name_node = node.child_by_field_name("name")
    while name_node is not None and name_node.type == "scoped_identifier":
        name_node = name_node.child_by_field_name("name")
    return name_node


def _char_column(source: bytes, byte_offset: int, byte_column: int) -> int:
    """Convert a tree-sitter byte column into a character column on the same line."""
    line_start = byte_offset - byte_column
    return len(source[line_start:byte_offset].decode("utf-8", errors="replace"))


def _annotations_of(modifiers: TSNode, source: bytes) -> tuple[Annotation, ...]:
    annotations: list[Annotation] = []
    for child in modifiers.children:
        if child.type not in _ANNOTATION_TYPES:
            continue
        name_node = _annotation_name_node(child)
        name = _text(name_node)
        if name_node is None or name is None:
            continue
        span = SourceSpan(
            line=name_node.start_point.row + 1,
            column=_char_column(source, name_node.start_byte, name_node.start_point.column),
            end_column=_char_column(source, name_node.end_byte, name_node.end_point.column),
        )
        annotations.append(Annotation(name=name, location=span))
    return tuple(annotations)


def scan_source(source: str) -> list[Declaration]:
    """Parse Java *source* and return every annotated declaration in source order."""
    if not source.strip():
        return []

    parser = Parser(_language())
    source_bytes = source.encode("utf-8")
    tree = parser.parse(source_bytes)

    declarations: list[Declaration] = []
    stack: list[TSNode] = [tree.root_node]
    while stack:
        node = stack.pop()
        if node.type == "modifiers" and node.parent is not None:
            annotations = _annotations_of(node, source_bytes)
            if annotations:
                owner = node.parent
                declarations.append(
                    Declaration(
                        kind=owner.type,
                        name=_declaration_name(owner),
                        line=owner.start_point.row + 1,
                        annotations=annotations,
                    )
                )
        # Reversed so the stack pops children in source order.
        stack.extend(reversed(node.children))

    return declarations


def scan_file(file_path: Path) -> list[Declaration]:
    """Read *file_path* as UTF-8 and scan it.

    Raises ``OSError`` / ``UnicodeDecodeError`` when the file cannot be read.
    """
    return scan_source(file_path.read_text(encoding="utf-8"))
