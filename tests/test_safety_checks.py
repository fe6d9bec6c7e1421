from yardgate.schemas.processing import (
    ProcessingDraft,
    SafetyCheckItem,
    SafetyCheckStatus,
    SafetyResponse,
)
from yardgate.services import safety_checks


def _draft():
    return ProcessingDraft(safety_checks=safety_checks.default_checklist())


def test_default_checklist_has_six_unanswered_items():
    items = safety_checks.default_checklist()
    assert len(items) == 6
    assert items[0].name == "Alcohol Check"
    assert all(item.response == SafetyResponse.NO for item in items)
    assert all(item.status == SafetyCheckStatus.FAIL for item in items)


def test_yes_passes_and_no_fails():
    assert safety_checks.status_for(SafetyResponse.YES) == SafetyCheckStatus.PASS
    assert safety_checks.status_for(SafetyResponse.NO) == SafetyCheckStatus.FAIL


def test_empty_checklist_never_passes():
    assert safety_checks.all_passed([]) is False


def test_all_yes_opens_the_gate():
    draft = _draft()
    for index in range(6):
        safety_checks.set_response(draft, index, SafetyResponse.YES)
    assert draft.all_safety_checks_passed is True
    assert safety_checks.safety_gate_open(draft) is True
    assert safety_checks.failing_items(draft.safety_checks) == []


def test_answer_can_be_changed_back():
    draft = _draft()
    for index in range(6):
        safety_checks.set_response(draft, index, SafetyResponse.YES)
    safety_checks.set_response(draft, 2, SafetyResponse.NO)

    assert draft.all_safety_checks_passed is False
    failing = safety_checks.failing_items(draft.safety_checks)
    assert [item.name for item in failing] == ["Ensure Spark arrestor for Hazardous goods"]


def test_exceptional_approval_opens_the_gate_despite_failures():
    draft = _draft()
    draft.safety_checks_exceptionally_approved = True
    assert draft.all_safety_checks_passed is False
    assert safety_checks.safety_gate_open(draft) is True


def test_unknown_item_index_raises():
    draft = _draft()
    for index in (-1, 6):
        try:
            safety_checks.set_response(draft, index, SafetyResponse.YES)
        except IndexError:
            continue
        raise AssertionError(f"index {index} was accepted")


def test_items_round_trip_through_json():
    item = SafetyCheckItem(name="Alcohol Check", response=SafetyResponse.YES, status=SafetyCheckStatus.PASS)
    draft = ProcessingDraft.model_validate({"safety_checks": [item.model_dump(mode="json")]})
    assert safety_checks.all_passed(draft.safety_checks) is True
