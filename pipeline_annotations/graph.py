"""
Graph connectivity queries over a diagram edge list.

Pure and stateless. Used by the UI layer (not the store) to highlight
extension candidates for the current selection.
"""

from typing import Any, Iterable, Set


def _endpoint(edge: Any, name: str) -> Any:
    if isinstance(edge, dict):
        return edge.get(name)
    return getattr(edge, name, None)


def connected_node_ids(selected_node_ids: Iterable[str], edges: Iterable[Any]) -> Set[str]:
    """
    Find nodes adjacent to a selection but not part of it.

    Args:
        selected_node_ids: Currently selected nodes
        edges: Edges as dicts or objects exposing 'source' and 'target'

    Returns:
        Node ids one edge away from the selection, excluding selected nodes.
        Edge direction is ignored.
    """
    selected = set(selected_node_ids)
    connected: Set[str] = set()

    for edge in edges:
        source = _endpoint(edge, "source")
        target = _endpoint(edge, "target")
        if source in selected and target not in selected and target is not None:
            connected.add(target)
        if target in selected and source not in selected and source is not None:
            connected.add(source)

    return connected
