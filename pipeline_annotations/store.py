"""
Annotation store - single owner of the annotation state.

The store provides:
- Annotation CRUD with the non-empty node set invariant
- Selection and UI state passthroughs
- Preferences and color lookup
- Synchronous subscribe/notify
- Explicit serialize/load and save/load operations (no auto-persist)

Every mutation builds a new AnnotationState from the old one and swaps
it in before any subscriber runs, so subscribers only ever observe
fully-applied states. A subscriber may call back into the store; that
produces a nested notification pass over the newer state.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Union

from . import selection
from .colors import resolve_color
from .errors import EmptySelectionError, ImmutableFieldError, MalformedPersistedDataError
from .factory import build_annotation
from .models import (
    Annotation,
    AnnotationState,
    AnnotationUpdate,
    PendingAnnotation,
    PipelinePatternType,
    Preferences,
    PreferencesUpdate,
    SelectionState,
    UIState,
)
from .persistence import AnnotationDocument, deserialize_state, serialize_state
from .settings import AnnotationSettings

logger = logging.getLogger(__name__)

Listener = Callable[[AnnotationState], None]

# Fields fixed at creation or managed by the store itself
_IMMUTABLE_FIELDS = ("id", "createdAt", "created_at", "modifiedAt", "modified_at")


class AnnotationStore:
    """
    In-memory annotation state with change notification.

    Reads return copies; the live state is never handed out.
    Unknown annotation ids are reported as False, not raised.
    """

    def __init__(
        self,
        initial_state: Optional[AnnotationState] = None,
        document: Optional[AnnotationDocument] = None,
        default_preferences: Optional[Preferences] = None,
    ):
        """
        Initialize store.

        Args:
            initial_state: Starting state (defaults to an empty state)
            document: Optional AnnotationDocument for explicit save/load
            default_preferences: Preferences that persisted values are
                merged over on load (defaults to the initial preferences)
        """
        # The store owns its state: caller values are copied, never shared
        if default_preferences is None:
            default_preferences = initial_state.preferences if initial_state else Preferences()
        self._default_preferences = default_preferences.model_copy(deep=True)

        if initial_state is None:
            initial_state = AnnotationState(preferences=self._default_preferences)
        self._state = initial_state.model_copy(deep=True)
        self._document = document

        # registration token -> listener
        self._listeners: Dict[int, Listener] = {}
        self._next_token = 0

    @classmethod
    def from_settings(cls, settings: AnnotationSettings) -> "AnnotationStore":
        """Build a store from settings, wiring the document if a path is set."""
        document = AnnotationDocument(settings.document_path) if settings.document_path else None
        return cls(document=document, default_preferences=settings.default_preferences())

    @property
    def document(self) -> Optional[AnnotationDocument]:
        return self._document

    # === Subscription ===

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called with a state snapshot after every change.

        Returns:
            Function removing exactly this registration. Safe to call twice.
        """
        token = self._next_token
        self._next_token += 1
        self._listeners[token] = listener

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    def get_state(self) -> AnnotationState:
        """Get a deep copy of the current state."""
        return self._state.model_copy(deep=True)

    def _notify(self) -> None:
        # Registrations added or removed during this pass take effect next pass
        for listener in list(self._listeners.values()):
            listener(self.get_state())

    def _apply(self, operation: str, **updates) -> None:
        self._state = self._state.model_copy(update=updates)
        logger.debug("Annotation state updated: %s", operation)
        self._notify()

    # === Annotation CRUD ===

    def create_annotation(
        self,
        node_ids: Iterable[str],
        pattern_type: Union[PipelinePatternType, str],
        pattern_subtype: str,
        label: Optional[str] = None,
    ) -> str:
        """
        Create an annotation over the given nodes.

        Clears the current selection and pending draft.

        Returns:
            The new annotation id

        Raises:
            EmptySelectionError: If node_ids is empty (state unchanged)
        """
        nodes = tuple(node_ids)
        if not nodes:
            raise EmptySelectionError()

        annotation = build_annotation(
            nodes,
            pattern_type,
            pattern_subtype,
            self._state.preferences.color_scheme,
            label=label,
        )

        self._apply(
            f"create_annotation {annotation.id}",
            annotations={**self._state.annotations, annotation.id: annotation},
            selection_state=selection.clear_selection(self._state.selection_state),
        )
        return annotation.id

    def get_annotation(self, annotation_id: str) -> Optional[Annotation]:
        """
        Retrieve an annotation by ID.

        Returns:
            The annotation if found, None otherwise
        """
        return self._state.annotations.get(annotation_id)

    def get_all_annotations(self) -> List[Annotation]:
        """List all annotations. Order is not meaningful."""
        return list(self._state.annotations.values())

    def update_annotation(
        self,
        annotation_id: str,
        update: Union[AnnotationUpdate, Mapping[str, object]],
    ) -> bool:
        """
        Merge changes into an existing annotation and bump modified_at.

        An update that empties node_ids deletes the annotation.

        Args:
            annotation_id: The annotation to update
            update: AnnotationUpdate, or a mapping of its fields

        Returns:
            True if the annotation existed, False otherwise

        Raises:
            ImmutableFieldError: If the mapping names id or a timestamp
            pydantic.ValidationError: If the mapping has unknown fields or bad values
        """
        if not isinstance(update, AnnotationUpdate):
            for name in _IMMUTABLE_FIELDS:
                if name in update:
                    raise ImmutableFieldError(name)
            update = AnnotationUpdate.model_validate(dict(update))

        existing = self._state.annotations.get(annotation_id)
        if existing is None:
            return False

        changes = update.changes()
        if "node_ids" in changes and not changes["node_ids"]:
            return self.delete_annotation(annotation_id)

        updated = Annotation.model_validate({
            **existing.model_dump(),
            **changes,
            "modified_at": datetime.now(timezone.utc),
        })

        self._apply(
            f"update_annotation {annotation_id}",
            annotations={**self._state.annotations, annotation_id: updated},
        )
        return True

    def delete_annotation(self, annotation_id: str) -> bool:
        """
        Delete an annotation.

        Clears the active/hovered reference if it pointed at this annotation.

        Returns:
            True if the annotation existed, False otherwise
        """
        if annotation_id not in self._state.annotations:
            return False

        annotations = {
            key: value
            for key, value in self._state.annotations.items()
            if key != annotation_id
        }

        ui_state = self._state.ui_state
        ui_updates = {}
        if ui_state.active_annotation_id == annotation_id:
            ui_updates["active_annotation_id"] = None
        if ui_state.hovered_annotation_id == annotation_id:
            ui_updates["hovered_annotation_id"] = None

        self._apply(
            f"delete_annotation {annotation_id}",
            annotations=annotations,
            ui_state=ui_state.model_copy(update=ui_updates),
        )
        return True

    def add_nodes_to_annotation(self, annotation_id: str, node_ids: Iterable[str]) -> bool:
        """Add nodes to an annotation (set union). Already-present nodes are ignored."""
        existing = self._state.annotations.get(annotation_id)
        if existing is None:
            return False

        merged = tuple(dict.fromkeys(existing.node_ids + tuple(node_ids)))
        return self.update_annotation(annotation_id, AnnotationUpdate(node_ids=merged))

    def remove_nodes_from_annotation(self, annotation_id: str, node_ids: Iterable[str]) -> bool:
        """
        Remove nodes from an annotation.

        INVARIANT: If no nodes remain, the annotation is deleted.
        """
        existing = self._state.annotations.get(annotation_id)
        if existing is None:
            return False

        removed = set(node_ids)
        remaining = tuple(n for n in existing.node_ids if n not in removed)
        if not remaining:
            return self.delete_annotation(annotation_id)

        return self.update_annotation(annotation_id, AnnotationUpdate(node_ids=remaining))

    # === Selection State ===

    def _set_selection(self, operation: str, new_state: SelectionState) -> None:
        # No-op transitions return the same object and do not notify
        if new_state is self._state.selection_state:
            return
        self._apply(operation, selection_state=new_state)

    def set_selection_mode(self, active: bool) -> None:
        """Enter or leave selection mode. Leaving clears the selection."""
        self._set_selection(
            "set_selection_mode",
            selection.set_selection_mode(self._state.selection_state, active),
        )

    def select_nodes(self, node_ids: Iterable[str]) -> None:
        """Replace the selection wholesale."""
        self._set_selection(
            "select_nodes",
            selection.select_nodes(self._state.selection_state, node_ids),
        )

    def add_node_to_selection(self, node_id: str) -> None:
        self._set_selection(
            "add_node_to_selection",
            selection.add_to_selection(self._state.selection_state, node_id),
        )

    def remove_node_from_selection(self, node_id: str) -> None:
        self._set_selection(
            "remove_node_from_selection",
            selection.remove_from_selection(self._state.selection_state, node_id),
        )

    def toggle_node_selection(self, node_id: str) -> None:
        self._set_selection(
            "toggle_node_selection",
            selection.toggle_selection(self._state.selection_state, node_id),
        )

    def clear_selection(self) -> None:
        """Empty the selection and pending draft, independent of mode."""
        self._set_selection(
            "clear_selection",
            selection.clear_selection(self._state.selection_state),
        )

    def set_pending_annotation(
        self,
        draft: Union[PendingAnnotation, Mapping[str, object], None],
    ) -> None:
        """Hold (or drop, with None) a not-yet-committed annotation draft."""
        if draft is not None and not isinstance(draft, PendingAnnotation):
            draft = PendingAnnotation.model_validate(dict(draft))
        self._set_selection(
            "set_pending_annotation",
            selection.set_pending_annotation(self._state.selection_state, draft),
        )

    def can_create_annotation(self) -> bool:
        """True iff selection mode is active and at least one node is selected."""
        return selection.can_create_annotation(self._state.selection_state)

    # === UI State ===

    def set_annotation_mode(self, enabled: bool) -> None:
        self._apply(
            "set_annotation_mode",
            ui_state=self._state.ui_state.model_copy(update={"is_annotation_mode": enabled}),
        )

    def set_active_annotation(self, annotation_id: Optional[str] = None) -> None:
        self._apply(
            "set_active_annotation",
            ui_state=self._state.ui_state.model_copy(update={"active_annotation_id": annotation_id}),
        )

    def set_hovered_annotation(self, annotation_id: Optional[str] = None) -> None:
        self._apply(
            "set_hovered_annotation",
            ui_state=self._state.ui_state.model_copy(update={"hovered_annotation_id": annotation_id}),
        )

    # === Preferences and queries ===

    def get_color_for_pattern(
        self,
        pattern_type: Union[PipelinePatternType, str],
        pattern_subtype: str,
    ) -> str:
        """Resolve a color using the current preference color scheme."""
        return resolve_color(pattern_type, pattern_subtype, self._state.preferences.color_scheme)

    def update_preferences(self, update: Union[PreferencesUpdate, Mapping[str, object]]) -> None:
        """Shallow-merge preference changes."""
        if not isinstance(update, PreferencesUpdate):
            update = PreferencesUpdate.model_validate(dict(update))

        preferences = Preferences.model_validate({
            **self._state.preferences.model_dump(),
            **update.changes(),
        })
        self._apply("update_preferences", preferences=preferences)

    def get_annotations_for_node(self, node_id: str) -> List[Annotation]:
        """List annotations whose node set contains node_id."""
        return [a for a in self._state.annotations.values() if node_id in a.node_ids]

    def are_nodes_annotated(self, node_ids: Iterable[str]) -> bool:
        """True if any of the given nodes belongs to any annotation."""
        return any(self.get_annotations_for_node(node_id) for node_id in node_ids)

    def clear_all_annotations(self) -> None:
        """
        Remove every annotation and reset selection and UI state.

        Preferences are kept. Subscribers are notified once.
        """
        self._apply(
            "clear_all_annotations",
            annotations={},
            selection_state=SelectionState(),
            ui_state=UIState(),
        )

    # === Persistence ===

    def serialize_annotations(self) -> str:
        """Serialize annotations and preferences (transient state excluded)."""
        return serialize_state(self._state)

    def _replace_persisted(self, operation: str, recovered: AnnotationState) -> None:
        self._apply(
            operation,
            annotations=recovered.annotations,
            preferences=recovered.preferences,
            selection_state=SelectionState(),
            ui_state=UIState(),
        )

    def load_annotations(self, data: Union[str, bytes]) -> bool:
        """
        Replace annotations and preferences from serialized data.

        Invalid individual records are discarded. Selection and UI state
        are reset.

        Returns:
            True on success, False if the document itself is malformed
            (state unchanged)
        """
        try:
            recovered = deserialize_state(data, self._default_preferences)
        except MalformedPersistedDataError as e:
            logger.error("Failed to load annotations: %s", e)
            return False

        self._replace_persisted("load_annotations", recovered)
        return True

    def save(self) -> None:
        """
        Explicitly write annotations to the configured document.

        Raises:
            ValueError: If no document is configured
        """
        if self._document is None:
            raise ValueError("No annotation document configured for AnnotationStore")
        self._document.write(self._state)

    def load(self) -> bool:
        """
        Explicitly load annotations from the configured document.

        Returns:
            True on success, False if the document is missing or malformed

        Raises:
            ValueError: If no document is configured
        """
        if self._document is None:
            raise ValueError("No annotation document configured for AnnotationStore")

        try:
            recovered = self._document.read(self._default_preferences)
        except MalformedPersistedDataError as e:
            logger.error("Failed to load annotations from %s: %s", self._document.path, e)
            return False

        self._replace_persisted("load", recovered)
        return True
