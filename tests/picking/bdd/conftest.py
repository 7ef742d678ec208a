"""Shared BDD fixtures and step definitions for the Picking domain."""

import pytest
from picking.task.task import EntryMode
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then


@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a manual pick task on picklist "{picklist_id}"'), target_fixture="task")
def manual_pick_task(workflow, selector, picklist_id):
    selector.set_mode(EntryMode.MANUAL)
    return workflow.start(picklist_id)


@given(parsers.cfparse('a camera pick task on picklist "{picklist_id}"'), target_fixture="task")
def camera_pick_task(workflow, selector, picklist_id):
    selector.set_mode(EntryMode.CAMERA)
    return workflow.start(picklist_id)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the pick task stage is "{stage}"'))
def pick_task_stage_is(task, stage):
    assert task.stage == stage


@then("the item action fails with a validation error")
def item_action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)
