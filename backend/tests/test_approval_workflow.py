from datetime import datetime, timezone

import pytest

from procurement.services import approval_workflow as wf
from procurement.services.approval_workflow import StepRef

STEPS = [StepRef(step_no=3), StepRef(step_no=1, role_id="r1"), StepRef(step_no=2)]


def test_approve_moves_to_the_next_step_by_order():
    t = wf.next_transition(status="pending", current_step_no=1, steps=STEPS, action="approve")

    assert (t.new_status, t.acted_step_no, t.next_step_no) == ("in_progress", 1, 2)
    assert t.message == "Step approved. Moved to next approver."
    assert not t.terminal


def test_approve_on_last_step_completes_without_moving():
    t = wf.next_transition(status="in_progress", current_step_no=3, steps=STEPS, action="approve")

    assert (t.new_status, t.next_step_no) == ("approved", 3)
    assert t.terminal
    assert t.message == "Approval process completed successfully."


def test_reject_is_terminal_and_keeps_step():
    t = wf.next_transition(status="in_progress", current_step_no=2, steps=STEPS, action="reject")

    assert (t.previous_status, t.new_status, t.next_step_no) == ("in_progress", "rejected", 2)
    assert t.message == "Approval has been rejected."


def test_steps_with_gaps_follow_step_order():
    steps = [StepRef(step_no=1), StepRef(step_no=5)]

    t = wf.next_transition(status="pending", current_step_no=1, steps=steps, action="approve")

    assert t.next_step_no == 5


@pytest.mark.parametrize("status", ["approved", "rejected"])
def test_terminal_states_refuse_decisions(status):
    with pytest.raises(wf.AlreadyTerminalError, match=f"already {status}"):
        wf.next_transition(status=status, current_step_no=1, steps=STEPS, action="approve")


def test_unknown_action_is_refused():
    with pytest.raises(wf.InvalidActionError):
        wf.next_transition(status="pending", current_step_no=1, steps=STEPS, action="escalate")


def test_current_step_missing_from_template():
    with pytest.raises(wf.InvalidCurrentStepError):
        wf.next_transition(status="pending", current_step_no=9, steps=STEPS, action="approve")


def test_first_step_and_approver_precedence():
    both = StepRef(step_no=1, role_id="role", profile_id="person")

    assert wf.first_step([StepRef(step_no=2), both]) is both
    assert both.approver == "person"
    assert StepRef(step_no=1, role_id="role").approver == "role"
    assert wf.first_step([StepRef(step_no=2)]) is None


def test_comment_entry_records_the_decided_step():
    at = datetime(2026, 1, 1, tzinfo=timezone.utc)

    entry = wf.comment_entry(
        actor_profile_id="p1", action="approve", comment="", step_no=2, at=at
    )

    assert entry == {
        "actor_profile_id": "p1",
        "action": "approve",
        "comment": None,
        "step_no": 2,
        "timestamp": "2026-01-01T00:00:00+00:00",
    }
