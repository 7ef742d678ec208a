"""Active workflow registry.

One worker session per process: get_workflow() returns the workflow bound to
the process-wide entry mode selector, creating it on first use.
"""

from picking.workflow.state_machine import PickingWorkflow

_current_workflow: PickingWorkflow | None = None


def get_workflow() -> PickingWorkflow:
    """Return the active workflow. Requires init_entry_mode() to have run."""
    global _current_workflow
    if _current_workflow is None:
        from picking.workflow.entry_mode import get_entry_mode_selector

        _current_workflow = PickingWorkflow(get_entry_mode_selector())
    return _current_workflow


def set_workflow(workflow: PickingWorkflow) -> None:
    """Override the active workflow (useful for tests)."""
    global _current_workflow
    _current_workflow = workflow


def reset_workflow() -> None:
    """Close and drop the active workflow."""
    global _current_workflow
    if _current_workflow is not None:
        _current_workflow.close()
    _current_workflow = None
