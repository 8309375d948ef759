"""
Selection state transitions.

Every function here is pure: it takes a SelectionState and returns a
new one. The store applies the result and notifies subscribers.

State machine (informal):
    Idle --set_selection_mode(True)--> Selecting
    Selecting --select/add/remove--> Selecting (self loop)
    Selecting, non-empty --create annotation--> selection cleared
    any --set_selection_mode(False)--> Idle

INVARIANT: Leaving selection mode clears the selected nodes and any
pending draft. Creation is allowed only in selection mode with at
least one node selected.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Mapping, Optional, Set, Tuple

from .models import PendingAnnotation, SelectionState


def set_selection_mode(state: SelectionState, active: bool) -> SelectionState:
    """
    Enter or leave selection mode.

    Entering preserves the current selection; leaving clears selected
    nodes and the pending draft. Idempotent either way.
    """
    if active:
        return state.model_copy(update={"is_selection_mode": True})
    return state.model_copy(update={
        "is_selection_mode": False,
        "selected_node_ids": (),
        "pending_annotation": None,
    })


def select_nodes(state: SelectionState, node_ids: Iterable[str]) -> SelectionState:
    """Replace the selection wholesale (not additive)."""
    return state.model_copy(update={"selected_node_ids": tuple(dict.fromkeys(node_ids))})


def add_to_selection(state: SelectionState, node_id: str) -> SelectionState:
    """Add one node. No-op if it is already selected."""
    if node_id in state.selected_node_ids:
        return state
    return state.model_copy(update={"selected_node_ids": state.selected_node_ids + (node_id,)})


def remove_from_selection(state: SelectionState, node_id: str) -> SelectionState:
    """Remove one node. No-op if it is not selected."""
    if node_id not in state.selected_node_ids:
        return state
    return state.model_copy(update={
        "selected_node_ids": tuple(n for n in state.selected_node_ids if n != node_id),
    })


def toggle_selection(state: SelectionState, node_id: str) -> SelectionState:
    """Add the node if absent, remove it if present."""
    if node_id in state.selected_node_ids:
        return remove_from_selection(state, node_id)
    return add_to_selection(state, node_id)


def clear_selection(state: SelectionState) -> SelectionState:
    """Empty the selection and drop the pending draft. Mode is unchanged."""
    return state.model_copy(update={"selected_node_ids": (), "pending_annotation": None})


def set_pending_annotation(
    state: SelectionState,
    draft: Optional[PendingAnnotation],
) -> SelectionState:
    """Store (or drop, with None) the pending annotation draft."""
    return state.model_copy(update={"pending_annotation": draft})


def can_create_annotation(state: SelectionState) -> bool:
    """
    Check whether the selection allows annotation creation.

    Returns:
        True iff selection mode is active and at least one node is selected
    """
    return state.is_selection_mode and len(state.selected_node_ids) > 0


@dataclass(frozen=True)
class SelectionValidation:
    """Outcome of validate_selection_state()."""

    is_valid: bool
    errors: List[str] = field(default_factory=list)


def validate_selection_state(
    selected_node_ids: Iterable[str],
    available_node_ids: Iterable[str],
    is_selection_mode: bool,
) -> SelectionValidation:
    """
    Check a selection against the nodes currently on the diagram.

    Reports:
    - nodes selected while selection mode is off
    - selected nodes that are not available on the diagram

    The store itself never validates node existence; this is a
    diagnostic for the UI layer.
    """
    selected = list(dict.fromkeys(selected_node_ids))
    available: Set[str] = set(available_node_ids)
    errors: List[str] = []

    if selected and not is_selection_mode:
        errors.append("Nodes are selected but selection mode is not active")

    for node_id in selected:
        if node_id not in available:
            errors.append(f"Selected node '{node_id}' is not available")

    return SelectionValidation(is_valid=not errors, errors=errors)


def nodes_in_area(
    node_positions: Mapping[str, Tuple[float, float]],
    available_node_ids: Iterable[str],
    start: Tuple[float, float],
    end: Tuple[float, float],
) -> List[str]:
    """
    Find nodes whose position lies inside a drag rectangle.

    Args:
        node_positions: node id -> (x, y)
        available_node_ids: Nodes eligible for selection
        start: One corner of the rectangle
        end: The opposite corner (any orientation)

    Returns:
        Matching node ids in node_positions order. Bounds are inclusive.
    """
    available = set(available_node_ids)
    min_x, max_x = sorted((start[0], end[0]))
    min_y, max_y = sorted((start[1], end[1]))

    return [
        node_id
        for node_id, (x, y) in node_positions.items()
        if node_id in available and min_x <= x <= max_x and min_y <= y <= max_y
    ]
