"""BDD tests for picking items off a shelf."""

from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, scenarios, then, when

scenarios("features/shelf_picking.feature")


@given(parsers.cfparse('shelf "{shelf_code}" is selected'), target_fixture="ledger")
def shelf_is_selected(workflow, shelf_code):
    return workflow.select_shelf(shelf_code)


@when(parsers.cfparse('the worker bulk picks {quantity:d} "{sku}" as "{inventory_type}" stock'))
def worker_bulk_picks(workflow, quantity, sku, inventory_type, error):
    try:
        workflow.bulk_pick(sku, quantity, inventory_type)
    except ValidationError as exc:
        error["exc"] = exc


@when(parsers.cfparse('the worker picks one "{sku}" {times:d} times'))
def worker_picks_one(workflow, sku, times):
    for _ in range(times):
        workflow.pick_one(sku)


@when(parsers.cfparse('the worker unpicks one "{sku}"'))
def worker_unpicks_one(workflow, sku):
    workflow.unpick_one(sku)


@when(parsers.cfparse('the worker short-picks "{sku}"'))
def worker_short_picks(workflow, sku):
    workflow.short_pick(sku)


@when(parsers.cfparse('the worker marks "{sku}" as damaged'))
def worker_marks_damaged(workflow, sku):
    workflow.mark_damaged(sku)


@when(parsers.cfparse('the worker marks "{sku}" as not found'))
def worker_marks_not_found(workflow, sku):
    workflow.mark_not_found(sku)


@when(parsers.cfparse('the worker enters the code "{code}"'))
def worker_enters_code(workflow, code):
    workflow.enter_sku(code)


@then(parsers.cfparse('"{sku}" has {picked:d} picked and {pending:d} pending'))
def entry_quantities(ledger, sku, picked, pending):
    entry = ledger.entry_for(sku)
    assert entry.picked_quantity == picked
    assert entry.pending_quantity() == pending


@then(parsers.cfparse('"{sku}" is resolved'))
def entry_is_resolved(ledger, sku):
    assert ledger.entry_for(sku).is_resolved() is True


@then(parsers.cfparse('"{sku}" is not resolved'))
def entry_is_not_resolved(ledger, sku):
    assert ledger.entry_for(sku).is_resolved() is False


@then("the worker is asked to confirm completion")
def asked_to_confirm(workflow):
    assert workflow.awaiting_confirmation is True
    assert workflow.snapshot()["ledger"]["all_resolved"] is True
