"""Exceptions raised by the document service layer.

The block engine itself reports malformed input as warnings; these are for
the cases the caller has to act on:

- DocumentNotFoundError / SnapshotNotFoundError: nothing to operate on
- ComplexBlocksError: a full content replacement was refused
- EditRejectedError: every operation in a batch was skipped
- NotAnAccordionError: the accordion editor was pointed at another node
- VersionConflictError: the document changed between read and write
"""

from __future__ import annotations


class KodoError(Exception):
    """Base class for block engine errors."""


class DocumentNotFoundError(KodoError, LookupError):
    def __init__(self, document_id: str) -> None:
        super().__init__(f"Document not found: {document_id}")
        self.document_id = document_id


class SnapshotNotFoundError(KodoError, LookupError):
    def __init__(self, token: str) -> None:
        super().__init__(f"Snapshot not found: {token}")
        self.token = token


class ComplexBlocksError(KodoError):
    """Full content replacement refused because it would destroy complex blocks."""

    def __init__(self, block_types: list[str]) -> None:
        self.block_types = list(block_types)
        super().__init__(
            "Refusing to replace the whole document: it contains complex blocks "
            f"({', '.join(self.block_types)}) that would be lost. "
            "Use partial edits (insert / replace / remove blocks) instead."
        )


class EditRejectedError(KodoError):
    """No operation in the batch could be applied; nothing was saved."""

    def __init__(self, warnings: list[str]) -> None:
        self.warnings = list(warnings)
        super().__init__("No operation could be applied: " + "; ".join(self.warnings or ["empty batch"]))


class NotAnAccordionError(KodoError, TypeError):
    def __init__(self, index: int, node_type: str | None) -> None:
        super().__init__(f"Block {index} is {node_type!r}, not an accordion")
        self.index = index
        self.node_type = node_type


class VersionConflictError(KodoError):
    """The document changed between read and write."""

    def __init__(self, document_id: str, expected: int, actual: int) -> None:
        super().__init__(f"Document {document_id} was modified concurrently (expected version {expected}, found {actual})")
        self.document_id = document_id
        self.expected = expected
        self.actual = actual
