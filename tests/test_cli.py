"""
Tests for the pipeline-annotations CLI.
"""

import json

import pytest

from pipeline_annotations.cli import main
from pipeline_annotations.persistence import AnnotationDocument
from pipeline_annotations.store import AnnotationStore


@pytest.fixture
def document_path(tmp_path):
    """Document with two annotations sharing node n2."""
    path = tmp_path / "annotations.json"
    store = AnnotationStore(document=AnnotationDocument(path))
    store.create_annotation(["n1", "n2"], "cicd", "testing")
    store.create_annotation(["n2", "n3"], "ai-agent", "routing", label="Router")
    store.save()
    return path


def run(argv):
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestValidateCommand:
    """Test `validate`."""

    def test_valid_document(self, document_path, capsys):
        assert run(["validate", str(document_path)]) == 0

        out = capsys.readouterr().out
        assert "Annotation document is valid" in out
        assert "Annotations: 2" in out

    def test_discarded_records(self, document_path, capsys):
        data = json.loads(document_path.read_text(encoding="utf-8"))
        data["annotations"].append(["x", {}])
        document_path.write_text(json.dumps(data), encoding="utf-8")

        assert run(["validate", str(document_path)]) == 1
        assert "1 of 3 annotation records are invalid" in capsys.readouterr().err

    def test_duplicate_id_is_valid(self, document_path, capsys):
        data = json.loads(document_path.read_text(encoding="utf-8"))
        data["annotations"].append(data["annotations"][0])
        document_path.write_text(json.dumps(data), encoding="utf-8")

        assert run(["validate", str(document_path)]) == 0
        assert "Annotations: 2" in capsys.readouterr().out

    def test_deeply_nested_document(self, tmp_path, capsys):
        path = tmp_path / "annotations.json"
        path.write_text("[" * 200000 + "]" * 200000, encoding="utf-8")

        assert run(["validate", str(path)]) == 4
        assert "Malformed annotation data" in capsys.readouterr().err

    def test_missing_document(self, tmp_path, capsys):
        assert run(["validate", str(tmp_path / "missing.json")]) == 4
        assert "not found" in capsys.readouterr().err

    def test_malformed_document(self, tmp_path, capsys):
        path = tmp_path / "annotations.json"
        path.write_text("[]", encoding="utf-8")

        assert run(["validate", str(path)]) == 4
        assert "Malformed annotation data" in capsys.readouterr().err


class TestShowCommand:
    """Test `show` and `node`."""

    def test_show(self, document_path, capsys):
        assert run(["show", str(document_path)]) == 0

        output = json.loads(capsys.readouterr().out)
        assert len(output["annotations"]) == 2
        assert output["preferences"]["showLabels"] is True

    def test_node(self, document_path, capsys):
        assert run(["node", str(document_path), "n3"]) == 0

        output = json.loads(capsys.readouterr().out)
        assert [a["label"] for a in output] == ["Router"]

    def test_node_shared(self, document_path, capsys):
        assert run(["node", str(document_path), "n2"]) == 0
        assert len(json.loads(capsys.readouterr().out)) == 2


class TestArguments:
    """Test argument parsing."""

    def test_command_required(self):
        assert run([]) == 2
