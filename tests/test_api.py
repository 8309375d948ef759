"""
Tests for the annotation HTTP API.

Uses FastAPI's TestClient against an in-memory store.
"""

import json

import pytest
from fastapi.testclient import TestClient

from pipeline_annotations.api import create_app
from pipeline_annotations.persistence import AnnotationDocument
from pipeline_annotations.settings import AnnotationSettings
from pipeline_annotations.store import AnnotationStore


@pytest.fixture
def client(store):
    return TestClient(create_app(store=store))


def create(client, node_ids=("n1", "n2"), pattern_type="cicd", subtype="testing", **extra):
    response = client.post("/annotations", json={
        "nodeIds": list(node_ids),
        "patternType": pattern_type,
        "patternSubtype": subtype,
        **extra,
    })
    assert response.status_code == 201
    return response.json()["id"]


class TestAnnotationEndpoints:
    """Test CRUD endpoints."""

    def test_create(self, client):
        response = client.post("/annotations", json={
            "nodeIds": ["n1", "n2"],
            "patternType": "cicd",
            "patternSubtype": "testing",
            "label": "Tests",
        })

        assert response.status_code == 201
        body = response.json()
        assert body["annotation"]["id"] == body["id"]
        assert body["annotation"]["color"] == "#3b82f6"
        assert body["annotation"]["nodeIds"] == ["n1", "n2"]
        assert body["annotation"]["label"] == "Tests"

    def test_create_empty_selection(self, client):
        response = client.post("/annotations", json={
            "nodeIds": [],
            "patternType": "cicd",
            "patternSubtype": "testing",
        })
        assert response.status_code == 400

    def test_create_unknown_pattern_type(self, client):
        response = client.post("/annotations", json={
            "nodeIds": ["n1"],
            "patternType": "observability",
            "patternSubtype": "testing",
        })
        assert response.status_code == 422

    def test_list_and_get(self, client):
        annotation_id = create(client)

        listed = client.get("/annotations").json()
        assert [a["id"] for a in listed] == [annotation_id]

        response = client.get(f"/annotations/{annotation_id}")
        assert response.status_code == 200
        assert response.json()["patternSubtype"] == "testing"

    def test_get_unknown(self, client):
        response = client.get("/annotations/missing")

        assert response.status_code == 404
        assert "missing" in response.json()["detail"]

    def test_patch_label(self, client):
        annotation_id = create(client)

        response = client.patch(f"/annotations/{annotation_id}", json={"label": "Renamed"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["deleted"] is False
        assert body["annotation"]["label"] == "Renamed"

    def test_patch_immutable_field(self, client):
        annotation_id = create(client)

        response = client.patch(f"/annotations/{annotation_id}", json={"createdAt": "2020-01-01T00:00:00Z"})

        assert response.status_code == 400
        assert "immutable" in response.json()["detail"]

    def test_patch_invalid_value(self, client):
        annotation_id = create(client)
        response = client.patch(f"/annotations/{annotation_id}", json={"color": ""})
        assert response.status_code == 400

    def test_patch_unknown(self, client):
        response = client.patch("/annotations/missing", json={"label": "x"})
        assert response.status_code == 404

    def test_patch_empty_nodes_deletes(self, client):
        annotation_id = create(client)

        body = client.patch(f"/annotations/{annotation_id}", json={"nodeIds": []}).json()

        assert body["deleted"] is True
        assert body["annotation"] is None
        assert client.get(f"/annotations/{annotation_id}").status_code == 404

    def test_delete(self, client):
        annotation_id = create(client)

        assert client.delete(f"/annotations/{annotation_id}").status_code == 200
        assert client.delete(f"/annotations/{annotation_id}").status_code == 404


class TestNodeEndpoints:
    """Test node membership endpoints."""

    def test_add_nodes(self, client):
        annotation_id = create(client, node_ids=["n1"])

        response = client.post(f"/annotations/{annotation_id}/nodes/add", json={"nodeIds": ["n2"]})

        assert response.status_code == 200
        assert response.json()["annotation"]["nodeIds"] == ["n1", "n2"]

    def test_remove_last_nodes_deletes(self, client):
        annotation_id = create(client)

        response = client.post(f"/annotations/{annotation_id}/nodes/remove", json={"nodeIds": ["n1", "n2"]})

        assert response.status_code == 200
        assert response.json()["deleted"] is True
        assert client.get("/annotations").json() == []

    def test_unknown_annotation(self, client):
        response = client.post("/annotations/missing/nodes/add", json={"nodeIds": ["n1"]})
        assert response.status_code == 404

    def test_annotations_for_node(self, client):
        first = create(client, node_ids=["n1", "n2"])
        create(client, node_ids=["n3"])

        listed = client.get("/annotations/nodes/n2").json()
        assert [a["id"] for a in listed] == [first]

    def test_connected_nodes(self, client):
        response = client.post("/annotations/connected", json={
            "selectedNodeIds": ["a"],
            "edges": [
                {"source": "a", "target": "c"},
                {"source": "b", "target": "a"},
                {"source": "c", "target": "d"},
            ],
        })

        assert response.status_code == 200
        assert response.json() == {"nodeIds": ["b", "c"]}


class TestStateEndpoints:
    """Test selection, UI and preferences endpoints."""

    def test_state_shape(self, client):
        body = client.get("/annotations/state").json()
        assert set(body) == {"annotations", "selectionState", "uiState", "preferences"}

    def test_selection(self, client):
        response = client.put("/annotations/selection", json={"isSelectionMode": True, "nodeIds": ["n1"]})

        body = response.json()
        assert body["selection"]["selectedNodeIds"] == ["n1"]
        assert body["canCreateAnnotation"] is True

        body = client.delete("/annotations/selection").json()
        assert body["selection"]["selectedNodeIds"] == []
        assert body["selection"]["isSelectionMode"] is True
        assert body["canCreateAnnotation"] is False

    def test_ui_state(self, client):
        annotation_id = create(client)

        body = client.put("/annotations/ui", json={
            "isAnnotationMode": True,
            "activeAnnotationId": annotation_id,
        }).json()
        assert body["isAnnotationMode"] is True
        assert body["activeAnnotationId"] == annotation_id

        body = client.put("/annotations/ui", json={"activeAnnotationId": None}).json()
        assert body["activeAnnotationId"] is None
        assert body["isAnnotationMode"] is True

    def test_preferences(self, client):
        body = client.patch("/annotations/preferences", json={"showLabels": False}).json()

        assert body["showLabels"] is False
        assert body["animationEnabled"] is True

    def test_patterns(self, client):
        body = client.get("/annotations/patterns").json()

        assert set(body) == {"cicd", "data-processing", "ai-agent", "rpa"}
        assert body["cicd"][0]["key"] == "testing"


class TestPersistenceEndpoints:
    """Test export/import and save/load endpoints."""

    def test_export_import(self, client):
        annotation_id = create(client)
        exported = client.get("/annotations/export").json()

        other = TestClient(create_app(store=AnnotationStore()))
        response = other.post("/annotations/import", content=json.dumps(exported))

        assert response.status_code == 200
        assert response.json() == {"success": True, "annotationCount": 1}
        assert other.get(f"/annotations/{annotation_id}").status_code == 200

    def test_import_malformed(self, client):
        response = client.post("/annotations/import", content="not json")
        assert response.status_code == 400

    def test_import_deeply_nested(self, client):
        response = client.post("/annotations/import", content="[" * 200000 + "]" * 200000)
        assert response.status_code == 400

    def test_save_load_without_document(self, client):
        assert client.post("/annotations/save").status_code == 409
        assert client.post("/annotations/load").status_code == 409

    def test_save_and_reload(self, tmp_path):
        document = AnnotationDocument(tmp_path / "annotations.json")
        client = TestClient(create_app(store=AnnotationStore(document=document)))
        create(client)

        assert client.post("/annotations/save").status_code == 200
        assert document.exists()

        response = client.post("/annotations/load")
        assert response.json()["annotationCount"] == 1

    def test_app_loads_existing_document(self, tmp_path):
        path = tmp_path / "annotations.json"
        seed = AnnotationStore(document=AnnotationDocument(path))
        annotation_id = seed.create_annotation(["n1"], "rpa", "browseAutomation")
        seed.save()

        client = TestClient(create_app(settings=AnnotationSettings(document_path=str(path))))

        assert client.get(f"/annotations/{annotation_id}").status_code == 200
