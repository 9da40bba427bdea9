"""
Approval state machine, kept free of persistence.

    pending --approve (not last)--> in_progress --approve (last)--> approved
       |                                |
       +------------reject--------------+----------------------> rejected

`approved` and `rejected` are terminal. The comment recorded for a decision
carries the step that was decided, not the step moved to.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Sequence

from procurement.models.domain import TERMINAL_APPROVAL_STATUSES, ApprovalStatus

APPROVE = "approve"
REJECT = "reject"
ACTIONS = (APPROVE, REJECT)

MSG_COMPLETED = "Approval process completed successfully."
MSG_MOVED = "Step approved. Moved to next approver."
MSG_REJECTED = "Approval has been rejected."


class ApprovalTransitionError(ValueError):
    """Raised when a decision cannot be applied to the approval's current state."""


class AlreadyTerminalError(ApprovalTransitionError):
    def __init__(self, status: str):
        super().__init__(f"This approval is already {status}")
        self.status = status


class InvalidActionError(ApprovalTransitionError):
    def __init__(self, action: Any):
        super().__init__("Invalid action. Must be either 'approve' or 'reject'.")
        self.action = action


class InvalidCurrentStepError(ApprovalTransitionError):
    def __init__(self, step_no: int):
        super().__init__("Invalid current step in approval record")
        self.step_no = step_no


@dataclass(frozen=True)
class StepRef:
    step_no: int
    role_id: Optional[str] = None
    profile_id: Optional[str] = None

    @property
    def approver(self) -> Optional[str]:
        # A named profile outranks a role.
        return self.profile_id or self.role_id


@dataclass(frozen=True)
class Transition:
    previous_status: str
    new_status: str
    acted_step_no: int
    next_step_no: int

    @property
    def terminal(self) -> bool:
        return self.new_status in TERMINAL_APPROVAL_STATUSES

    @property
    def message(self) -> str:
        if self.new_status == ApprovalStatus.approved.value:
            return MSG_COMPLETED
        if self.new_status == ApprovalStatus.rejected.value:
            return MSG_REJECTED
        return MSG_MOVED


def ordered_steps(steps: Iterable[StepRef]) -> list[StepRef]:
    return sorted(steps, key=lambda s: s.step_no)


def first_step(steps: Iterable[StepRef]) -> Optional[StepRef]:
    return next((s for s in steps if s.step_no == 1), None)


def next_transition(
    *,
    status: str,
    current_step_no: int,
    steps: Sequence[StepRef],
    action: str,
) -> Transition:
    if status in TERMINAL_APPROVAL_STATUSES:
        raise AlreadyTerminalError(status)
    if action not in ACTIONS:
        raise InvalidActionError(action)

    ordered = ordered_steps(steps)
    index = next((i for i, s in enumerate(ordered) if s.step_no == current_step_no), None)
    if index is None:
        raise InvalidCurrentStepError(current_step_no)

    if action == REJECT:
        return Transition(
            previous_status=status,
            new_status=ApprovalStatus.rejected.value,
            acted_step_no=current_step_no,
            next_step_no=current_step_no,
        )

    if index + 1 < len(ordered):
        return Transition(
            previous_status=status,
            new_status=ApprovalStatus.in_progress.value,
            acted_step_no=current_step_no,
            next_step_no=ordered[index + 1].step_no,
        )

    return Transition(
        previous_status=status,
        new_status=ApprovalStatus.approved.value,
        acted_step_no=current_step_no,
        next_step_no=current_step_no,
    )


def comment_entry(
    *,
    actor_profile_id: str,
    action: str,
    comment: Optional[str],
    step_no: int,
    at: datetime,
) -> Dict[str, Any]:
    return {
        "actor_profile_id": actor_profile_id,
        "action": action,
        "comment": comment or None,
        "step_no": step_no,
        "timestamp": at.isoformat(),
    }
