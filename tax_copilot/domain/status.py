"""
Document status state machine.

A document moves Uploaded -> Processing -> Indexed. Any failure after
Processing moves it to Failed. Failed and Indexed documents may be ingested
again, which restarts them at Processing. A document stuck in Processing
(cancelled run, crashed process) is restarted the same way.
"""

from __future__ import annotations

from enum import IntEnum

from tax_copilot.utils.exceptions import InvalidStatusTransitionError


class DocumentStatus(IntEnum):
    """Ingestion status of a document, persisted as its integer value."""

    UPLOADED = 0
    PROCESSING = 1
    INDEXED = 2
    FAILED = 3

    def __str__(self) -> str:
        return self.name.capitalize()


ALLOWED_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.UPLOADED: frozenset({DocumentStatus.PROCESSING}),
    DocumentStatus.PROCESSING: frozenset(
        {DocumentStatus.PROCESSING, DocumentStatus.INDEXED, DocumentStatus.FAILED}
    ),
    DocumentStatus.INDEXED: frozenset({DocumentStatus.PROCESSING}),
    DocumentStatus.FAILED: frozenset({DocumentStatus.PROCESSING}),
}


def can_transition(current: DocumentStatus, target: DocumentStatus) -> bool:
    """Return True if ``current`` may move to ``target``."""
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


def transition(current: DocumentStatus, target: DocumentStatus) -> DocumentStatus:
    """
    Validate a status change and return the new status.

    Args:
        current: Status the document is in now.
        target: Status requested.

    Returns:
        ``target`` when the move is allowed.

    Raises:
        InvalidStatusTransitionError: If the move is not allowed.
    """
    if not can_transition(current, target):
        raise InvalidStatusTransitionError(current, target)
    return target
