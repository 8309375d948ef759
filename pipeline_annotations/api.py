"""
Annotation API Routes

============================================================================
ENDPOINTS
============================================================================
GET    /annotations                       - List annotations
POST   /annotations                       - Create annotation from node ids
GET    /annotations/state                 - Full state snapshot
PUT    /annotations/selection             - Set selection mode and/or nodes
DELETE /annotations/selection             - Clear selection
PUT    /annotations/ui                    - Annotation mode, active, hovered
PATCH  /annotations/preferences           - Shallow-merge preferences
GET    /annotations/patterns              - Pattern subtype catalog
GET    /annotations/nodes/{node_id}       - Annotations covering a node
POST   /annotations/connected             - Neighbours of a selection
GET    /annotations/export                - Persisted document
POST   /annotations/import                - Load a persisted document
POST   /annotations/save                  - Write configured document
POST   /annotations/load                  - Read configured document
GET    /annotations/{id}                  - One annotation
PATCH  /annotations/{id}                  - Update mutable fields
DELETE /annotations/{id}                  - Delete
POST   /annotations/{id}/nodes/add        - Add nodes
POST   /annotations/{id}/nodes/remove     - Remove nodes (may delete)

The diagram UI drives the store through these routes and re-reads
/annotations/state after each call. Bodies use camelCase keys.
============================================================================
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, FastAPI, HTTPException, Request
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from . import __version__
from .colors import list_pattern_subtypes
from .errors import EmptySelectionError, ImmutableFieldError, UnknownAnnotationError
from .graph import connected_node_ids
from .models import (
    Annotation,
    AnnotationState,
    PipelinePatternType,
    Preferences,
    PreferencesUpdate,
    SelectionState,
    UIState,
)
from .persistence import state_to_document
from .settings import AnnotationSettings
from .store import AnnotationStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/annotations", tags=["annotations"])


# ============================================================================
# REQUEST/RESPONSE MODELS
# ============================================================================

class ApiModel(BaseModel):
    """Base for request/response bodies: camelCase on the wire, no extras."""

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class CreateAnnotationRequest(ApiModel):
    node_ids: List[str]
    pattern_type: PipelinePatternType
    pattern_subtype: str
    label: Optional[str] = None


class CreateAnnotationResponse(ApiModel):
    id: str
    annotation: Annotation


class NodeIdsRequest(ApiModel):
    node_ids: List[str]


class MutationResponse(ApiModel):
    """Outcome of an update; deleted=True when the annotation lost its last node."""

    success: bool
    deleted: bool = False
    annotation: Optional[Annotation] = None


class OperationResponse(ApiModel):
    success: bool
    message: str = ""


class SelectionRequest(ApiModel):
    is_selection_mode: Optional[bool] = None
    node_ids: Optional[List[str]] = None


class SelectionResponse(ApiModel):
    selection: SelectionState
    can_create_annotation: bool


class UIRequest(ApiModel):
    is_annotation_mode: Optional[bool] = None
    active_annotation_id: Optional[str] = None
    hovered_annotation_id: Optional[str] = None


class Edge(ApiModel):
    source: str
    target: str


class ConnectedNodesRequest(ApiModel):
    selected_node_ids: List[str]
    edges: List[Edge]


class ConnectedNodesResponse(ApiModel):
    node_ids: List[str]


class ImportResponse(ApiModel):
    success: bool
    annotation_count: int


# ============================================================================
# HELPERS
# ============================================================================

def _store(request: Request) -> AnnotationStore:
    return request.app.state.annotation_store


def _require_annotation(store: AnnotationStore, annotation_id: str) -> Annotation:
    annotation = store.get_annotation(annotation_id)
    if annotation is None:
        raise HTTPException(status_code=404, detail=str(UnknownAnnotationError(annotation_id)))
    return annotation


def _mutation_result(store: AnnotationStore, annotation_id: str) -> MutationResponse:
    annotation = store.get_annotation(annotation_id)
    return MutationResponse(success=True, deleted=annotation is None, annotation=annotation)


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.get("", response_model=List[Annotation])
async def list_annotations(request: Request) -> List[Annotation]:
    return _store(request).get_all_annotations()


@router.post("", response_model=CreateAnnotationResponse, status_code=201)
async def create_annotation(
    request: Request,
    body: CreateAnnotationRequest,
) -> CreateAnnotationResponse:
    """Create an annotation. Clears the current selection."""
    store = _store(request)
    try:
        annotation_id = store.create_annotation(
            body.node_ids,
            body.pattern_type,
            body.pattern_subtype,
            label=body.label,
        )
    except EmptySelectionError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid annotation: {e}")

    logger.info("Created annotation %s over %d nodes", annotation_id, len(body.node_ids))
    return CreateAnnotationResponse(id=annotation_id, annotation=store.get_annotation(annotation_id))


@router.get("/state", response_model=AnnotationState)
async def get_state(request: Request) -> AnnotationState:
    return _store(request).get_state()


@router.put("/selection", response_model=SelectionResponse)
async def set_selection(request: Request, body: SelectionRequest) -> SelectionResponse:
    """Apply selection mode first, then the node set."""
    store = _store(request)
    if body.is_selection_mode is not None:
        store.set_selection_mode(body.is_selection_mode)
    if body.node_ids is not None:
        store.select_nodes(body.node_ids)

    return SelectionResponse(
        selection=store.get_state().selection_state,
        can_create_annotation=store.can_create_annotation(),
    )


@router.delete("/selection", response_model=SelectionResponse)
async def clear_selection(request: Request) -> SelectionResponse:
    store = _store(request)
    store.clear_selection()
    return SelectionResponse(
        selection=store.get_state().selection_state,
        can_create_annotation=store.can_create_annotation(),
    )


@router.put("/ui", response_model=UIState)
async def set_ui_state(request: Request, body: UIRequest) -> UIState:
    """Only fields present in the body are applied; null clears a reference."""
    store = _store(request)
    fields = body.model_fields_set

    if "is_annotation_mode" in fields and body.is_annotation_mode is not None:
        store.set_annotation_mode(body.is_annotation_mode)
    if "active_annotation_id" in fields:
        store.set_active_annotation(body.active_annotation_id)
    if "hovered_annotation_id" in fields:
        store.set_hovered_annotation(body.hovered_annotation_id)

    return store.get_state().ui_state


@router.patch("/preferences", response_model=Preferences)
async def update_preferences(request: Request, body: PreferencesUpdate) -> Preferences:
    store = _store(request)
    store.update_preferences(body)
    return store.get_state().preferences


@router.get("/patterns")
async def list_patterns() -> Dict[str, List[Dict[str, str]]]:
    return {
        pattern_type.value: list_pattern_subtypes(pattern_type)
        for pattern_type in PipelinePatternType
    }


@router.get("/nodes/{node_id}", response_model=List[Annotation])
async def annotations_for_node(request: Request, node_id: str) -> List[Annotation]:
    return _store(request).get_annotations_for_node(node_id)


@router.post("/connected", response_model=ConnectedNodesResponse)
async def connected_nodes(body: ConnectedNodesRequest) -> ConnectedNodesResponse:
    """Nodes one edge away from the selection, for extension highlighting."""
    connected = connected_node_ids(body.selected_node_ids, body.edges)
    return ConnectedNodesResponse(node_ids=sorted(connected))


@router.get("/export")
async def export_annotations(request: Request) -> Dict[str, Any]:
    return state_to_document(_store(request).get_state())


@router.post("/import", response_model=ImportResponse)
async def import_annotations(request: Request) -> ImportResponse:
    """Replace annotations from a persisted document. Invalid records are dropped."""
    store = _store(request)
    if not store.load_annotations(await request.body()):
        raise HTTPException(status_code=400, detail="Malformed annotation document")
    return ImportResponse(success=True, annotation_count=len(store.get_all_annotations()))


@router.post("/save", response_model=OperationResponse)
async def save_annotations(request: Request) -> OperationResponse:
    store = _store(request)
    if store.document is None:
        raise HTTPException(status_code=409, detail="No annotation document configured")
    store.save()
    return OperationResponse(success=True, message=f"Saved to {store.document.path}")


@router.post("/load", response_model=ImportResponse)
async def load_annotations(request: Request) -> ImportResponse:
    store = _store(request)
    if store.document is None:
        raise HTTPException(status_code=409, detail="No annotation document configured")
    if not store.load():
        raise HTTPException(status_code=400, detail=f"Cannot load {store.document.path}")
    return ImportResponse(success=True, annotation_count=len(store.get_all_annotations()))


@router.get("/{annotation_id}", response_model=Annotation)
async def get_annotation(request: Request, annotation_id: str) -> Annotation:
    return _require_annotation(_store(request), annotation_id)


@router.patch("/{annotation_id}", response_model=MutationResponse)
async def update_annotation(
    request: Request,
    annotation_id: str,
    body: Dict[str, Any] = Body(...),
) -> MutationResponse:
    """Update mutable fields. id and timestamps are rejected."""
    store = _store(request)
    _require_annotation(store, annotation_id)

    try:
        store.update_annotation(annotation_id, body)
    except ImmutableFieldError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid update: {e}")

    return _mutation_result(store, annotation_id)


@router.delete("/{annotation_id}", response_model=OperationResponse)
async def delete_annotation(request: Request, annotation_id: str) -> OperationResponse:
    store = _store(request)
    if not store.delete_annotation(annotation_id):
        raise HTTPException(status_code=404, detail=str(UnknownAnnotationError(annotation_id)))
    return OperationResponse(success=True, message=f"Deleted {annotation_id}")


@router.post("/{annotation_id}/nodes/add", response_model=MutationResponse)
async def add_nodes(request: Request, annotation_id: str, body: NodeIdsRequest) -> MutationResponse:
    store = _store(request)
    if not store.add_nodes_to_annotation(annotation_id, body.node_ids):
        raise HTTPException(status_code=404, detail=str(UnknownAnnotationError(annotation_id)))
    return _mutation_result(store, annotation_id)


@router.post("/{annotation_id}/nodes/remove", response_model=MutationResponse)
async def remove_nodes(request: Request, annotation_id: str, body: NodeIdsRequest) -> MutationResponse:
    """Removing the last node deletes the annotation (deleted=true)."""
    store = _store(request)
    if not store.remove_nodes_from_annotation(annotation_id, body.node_ids):
        raise HTTPException(status_code=404, detail=str(UnknownAnnotationError(annotation_id)))
    return _mutation_result(store, annotation_id)


# ============================================================================
# APPLICATION
# ============================================================================

def create_app(
    store: Optional[AnnotationStore] = None,
    settings: Optional[AnnotationSettings] = None,
) -> FastAPI:
    """
    Build the annotation service.

    Args:
        store: Store to serve (defaults to one built from settings)
        settings: Settings used when no store is given (defaults to env)

    When the store is built here and its document exists, it is loaded
    once at startup.
    """
    if store is None:
        store = AnnotationStore.from_settings(settings or AnnotationSettings.from_env())
        if store.document is not None and store.document.exists():
            store.load()

    app = FastAPI(title="Pipeline Annotations", version=__version__)
    app.state.annotation_store = store
    app.include_router(router)
    return app
