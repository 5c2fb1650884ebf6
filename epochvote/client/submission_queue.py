# epochvote/client/submission_queue.py
"""
One in-flight mutating call per session.

    IDLE --try_acquire--> SUBMITTING --broadcast_acknowledged--> AWAITING_CONFIRMATION
    SUBMITTING / AWAITING_CONFIRMATION --settle--> SETTLING --release--> IDLE

Checks and transitions run without awaiting, so under cooperative
scheduling nothing can slip in between ``try_acquire``'s test and its set.
"""
import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class SubmissionState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    SETTLING = "settling"


_TRANSITIONS = {
    SubmissionState.IDLE: {SubmissionState.SUBMITTING},
    SubmissionState.SUBMITTING: {SubmissionState.AWAITING_CONFIRMATION, SubmissionState.SETTLING},
    SubmissionState.AWAITING_CONFIRMATION: {SubmissionState.SETTLING},
    SubmissionState.SETTLING: {SubmissionState.IDLE},
}


class InvalidTransition(RuntimeError):
    pass


class SubmissionQueue:
    def __init__(self):
        self.state = SubmissionState.IDLE
        self.operation: Optional[str] = None
        self.tx_hash: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self.state != SubmissionState.IDLE

    def _move(self, target: SubmissionState):
        if target not in _TRANSITIONS[self.state]:
            raise InvalidTransition(f"{self.state.value} -> {target.value}")
        logger.debug(f"Submission {self.operation}: {self.state.value} -> {target.value}")
        self.state = target

    def try_acquire(self, operation: str) -> bool:
        if self.busy:
            logger.info(f"Refused {operation}: {self.operation} is {self.state.value}")
            return False
        self.operation = operation
        self._move(SubmissionState.SUBMITTING)
        return True

    def broadcast_acknowledged(self, tx_hash: str):
        self._move(SubmissionState.AWAITING_CONFIRMATION)
        self.tx_hash = tx_hash

    def settle(self):
        self._move(SubmissionState.SETTLING)

    def release(self):
        """Return to IDLE from whatever state the submission stopped in."""
        if self.state in (SubmissionState.SUBMITTING, SubmissionState.AWAITING_CONFIRMATION):
            self.settle()
        if self.state == SubmissionState.SETTLING:
            self._move(SubmissionState.IDLE)
        self.operation = None
        self.tx_hash = None
