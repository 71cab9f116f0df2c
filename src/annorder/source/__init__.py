"""Source scanners — turn source files into annotated declarations."""

from annorder.source.java_scanner import Declaration, SourceSpan, scan_file, scan_source

__all__ = [
    "Declaration",
    "SourceSpan",
    "scan_file",
    "scan_source",
]
