"""
Unit tests for the document status state machine.
"""

import pytest

from tax_copilot.domain.status import DocumentStatus, can_transition, transition
from tax_copilot.utils.exceptions import InvalidStatusTransitionError

ALLOWED = [
    (DocumentStatus.UPLOADED, DocumentStatus.PROCESSING),
    (DocumentStatus.PROCESSING, DocumentStatus.PROCESSING),
    (DocumentStatus.PROCESSING, DocumentStatus.INDEXED),
    (DocumentStatus.PROCESSING, DocumentStatus.FAILED),
    (DocumentStatus.INDEXED, DocumentStatus.PROCESSING),
    (DocumentStatus.FAILED, DocumentStatus.PROCESSING),
]


class TestDocumentStatus:
    def test_persisted_values(self):
        assert [int(s) for s in DocumentStatus] == [0, 1, 2, 3]

    def test_display_name(self):
        assert str(DocumentStatus.INDEXED) == "Indexed"
        assert str(DocumentStatus.PROCESSING) == "Processing"


class TestTransitions:
    @pytest.mark.parametrize("current,target", ALLOWED)
    def test_allowed(self, current, target):
        assert can_transition(current, target)
        assert transition(current, target) is target

    @pytest.mark.parametrize(
        "current,target",
        [
            (current, target)
            for current in DocumentStatus
            for target in DocumentStatus
            if (current, target) not in ALLOWED
        ],
    )
    def test_rejected(self, current, target):
        assert not can_transition(current, target)
        with pytest.raises(InvalidStatusTransitionError):
            transition(current, target)

    def test_processing_can_restart(self):
        """A run left in Processing can be started again."""
        assert transition(DocumentStatus.PROCESSING, DocumentStatus.PROCESSING) == DocumentStatus.PROCESSING

    def test_rejected_message_names_both_states(self):
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            transition(DocumentStatus.UPLOADED, DocumentStatus.INDEXED)

        assert "Uploaded" in str(exc_info.value)
        assert "Indexed" in str(exc_info.value)
