import json
import sys
from unittest.mock import patch

import pytest

from ontology_resolver import main
from ontology_resolver.cli import run
from ontology_resolver.data_model import DEFAULT_NAMESPACE as NS
from ontology_resolver.errors import CompoundNestingError


@pytest.fixture
def files(tmp_path, ontology_dict):
    ontology_path = tmp_path / "ontology.json"
    ontology_path.write_text(json.dumps(ontology_dict), encoding="utf-8")

    entities = [
        {
            "id": "v1",
            "type": "vertex",
            "properties": [
                {"name": NS + "conceptType", "value": NS + "person"},
                {"name": NS + "firstName", "value": "Jane"},
                {"name": NS + "lastName", "value": "Doe"},
                {"name": NS + "age", "value": 42},
            ],
        },
        {
            "id": "v2",
            "type": "vertex",
            "properties": [
                {"name": NS + "firstName", "value": "Adam"},
                {"name": NS + "age", "value": 7},
            ],
        },
    ]
    entities_path = tmp_path / "entities.json"
    entities_path.write_text(json.dumps({"elements": entities}), encoding="utf-8")
    return str(ontology_path), str(entities_path)


def _results(lines):
    return [json.loads(line) for line in lines]


class TestRun:
    def test_resolve(self, files):
        """Test resolving a display value for every entity."""
        lines = run("resolve", *files, property_name="fullName")
        assert _results(lines) == [
            {"id": "v1", "result": "Jane Doe"},
            {"id": "v2", "result": "Adam "},
        ]

    def test_raw(self, files):
        """Test resolving raw values."""
        lines = run("raw", *files, property_name="age")
        assert [r["result"] for r in _results(lines)] == [42, 7]

    def test_title(self, files):
        """Test titles with the properties the title formula read."""
        lines = run("title", *files)
        first = _results(lines)[0]
        assert first["result"] == {"title": "Jane Doe", "accessed": [NS + "fullName"]}

    def test_sort(self, files):
        """Test sorting entities."""
        lines = run("sort", *files, property_name="age", order="ASC")
        assert [r["id"] for r in _results(lines)] == ["v2", "v1"]

    def test_validate(self, files):
        """Test validating candidate values."""
        lines = run("validate", *files, property_name="age", values=[-5])
        assert [r["result"] for r in _results(lines)] == [False, False]

    def test_namespace_override(self, files):
        """Test that a namespace override changes how bare names expand."""
        lines = run("raw", *files, property_name="age", namespace="http://other.org/x#")
        assert [r["result"] for r in _results(lines)] == [None, None]

    def test_property_required(self, files):
        """Test that commands other than title require a property."""
        with pytest.raises(ValueError, match="requires --property"):
            run("resolve", *files)

    @patch("ontology_resolver.cli.logger")
    def test_resolver_error_is_logged(self, mock_logger, files):
        """Test that resolver errors are logged and raised."""
        with pytest.raises(CompoundNestingError):
            run("raw", *files, property_name="badCompound")
        mock_logger.error.assert_called_once()


class TestMain:
    def test_main_prints_results(self, clean_env, files, capsys):
        """Test the command line entry point."""
        ontology_path, entities_path = files
        argv = [
            "ontology-resolver",
            "resolve",
            "--ontology",
            ontology_path,
            "--entities",
            entities_path,
            "--property",
            "firstName",
        ]
        with patch.object(sys, "argv", argv):
            main()

        out = capsys.readouterr().out.splitlines()
        assert _results(out) == [
            {"id": "v1", "result": "Jane"},
            {"id": "v2", "result": "Adam"},
        ]
