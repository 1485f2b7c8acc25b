import argparse
import os
from typing import Any

import pytest

from ontology_resolver.data_model import (
    DEFAULT_NAMESPACE,
    THING_CONCEPT,
    Entity,
    OntologySchema,
)
from ontology_resolver.resolver import PropertyResolver

NS = DEFAULT_NAMESPACE


def iri(name: str) -> str:
    return NS + name


@pytest.fixture
def clean_env():
    """Fixture to clean environment variables before each test."""
    env_vars = [
        "ONTOLOGY_RESOLVER_ONTOLOGY",
        "ONTOLOGY_RESOLVER_ENTITIES",
        "ONTOLOGY_RESOLVER_NAMESPACE",
        "ONTOLOGY_RESOLVER_SORT_ORDER",
        "ONTOLOGY_RESOLVER_LOG_LEVEL",
    ]
    # Store original values
    original_values = {}
    for var in env_vars:
        if var in os.environ:
            original_values[var] = os.environ[var]
            del os.environ[var]

    yield

    # Restore original values
    for var in env_vars:
        os.environ.pop(var, None)
    for var, value in original_values.items():
        os.environ[var] = value


@pytest.fixture
def args_factory():
    """Factory fixture to create argparse.Namespace objects with default None values."""

    def _create_args(**kwargs):
        defaults = {
            "ontology": None,
            "entities": None,
            "namespace": None,
            "order": None,
            "log_level": None,
        }
        defaults.update(kwargs)
        return argparse.Namespace(**defaults)

    return _create_args


@pytest.fixture(scope="session")
def ontology_dict() -> dict[str, Any]:
    return {
        "namespace": NS,
        "concepts": [
            {"id": THING_CONCEPT, "displayName": "Thing", "properties": [iri("title")]},
            {
                "id": iri("person"),
                "displayName": "Person",
                "parentConcept": THING_CONCEPT,
                "properties": [iri("fullName"), iri("age")],
                "titleFormula": "prop('fullName')",
                "subtitleFormula": "prop('age')",
            },
            {
                "id": iri("employee"),
                "displayName": "Employee",
                "parentConcept": iri("person"),
                "properties": [iri("phone")],
            },
            {"id": iri("loopA"), "parentConcept": iri("loopB")},
            {"id": iri("loopB"), "parentConcept": iri("loopA")},
        ],
        "properties": [
            {"title": iri("title"), "displayName": "Title", "dataType": "string"},
            {
                "title": iri("conceptType"),
                "displayName": "Concept Type",
                "dataType": "string",
                "userVisible": False,
            },
            {"title": iri("firstName"), "displayName": "First Name", "dataType": "string"},
            {"title": iri("lastName"), "displayName": "Last Name", "dataType": "string"},
            {
                "title": iri("formalName"),
                "displayName": "Formal Name",
                "dataType": "string",
                "dependentPropertyIris": [iri("firstName"), iri("lastName")],
                "displayFormula": f"dependentProp('{iri('lastName')}') + ', ' + dependentProp('{iri('firstName')}')",
            },
            {
                "title": iri("fullName"),
                "displayName": "Full Name",
                "dataType": "string",
                "dependentPropertyIris": [iri("firstName"), iri("lastName")],
            },
            {
                "title": iri("badCompound"),
                "displayName": "Bad Compound",
                "dataType": "string",
                "dependentPropertyIris": [iri("fullName"), iri("age")],
            },
            {
                "title": iri("age"),
                "displayName": "Age",
                "dataType": "integer",
                "validationFormula": "propRaw('age') is not None and propRaw('age') >= 0",
            },
            {
                "title": iri("minAge"),
                "displayName": "Minimum Age",
                "dataType": "integer",
                "validationFormula": "propRaw('minAge') >= 0",
            },
            {
                "title": iri("maxAge"),
                "displayName": "Maximum Age",
                "dataType": "integer",
            },
            {
                "title": iri("ageRange"),
                "displayName": "Age Range",
                "dataType": "string",
                "dependentPropertyIris": [iri("minAge"), iri("maxAge")],
                "displayFormula": f"str(dependentPropRaw('{iri('minAge')}')) + '-' + str(dependentPropRaw('{iri('maxAge')}'))",
                "validationFormula": f"dependentPropRaw('{iri('minAge')}') <= dependentPropRaw('{iri('maxAge')}')",
            },
            {"title": iri("active"), "displayName": "Active", "dataType": "boolean"},
            {
                "title": iri("birthDate"),
                "displayName": "Birth Date",
                "dataType": "date",
                "displayType": "dateOnly",
            },
            {"title": iri("createdDate"), "displayName": "Created", "dataType": "date"},
            {
                "title": iri("phone"),
                "displayName": "Phone",
                "dataType": "string",
                "displayType": "phoneNumber",
            },
            {
                "title": iri("size"),
                "displayName": "Size",
                "dataType": "integer",
                "displayType": "bytes",
            },
            {
                "title": iri("heading"),
                "displayName": "Heading",
                "dataType": "double",
                "displayType": "heading",
            },
            {
                "title": iri("gender"),
                "displayName": "Gender",
                "dataType": "string",
                "possibleValues": {"M": "Male", "F": "Female"},
            },
            {
                "title": iri("nickname"),
                "displayName": "Nickname",
                "dataType": "string",
                "displayFormula": "'@' + propRaw('nickname')",
            },
            {"title": iri("location"), "displayName": "Location", "dataType": "geoLocation"},
            {"title": iri("visibilityJson"), "displayName": "Visibility", "dataType": "visibility"},
            {"title": iri("raw"), "displayName": "Raw", "dataType": "string", "userVisible": False},
        ],
        "relationships": [
            {
                "title": iri("knows"),
                "displayName": "Knows",
                "titleFormula": "label",
                "subtitleFormula": "prop('firstName')",
            }
        ],
    }


@pytest.fixture(scope="session")
def schema(ontology_dict) -> OntologySchema:
    return OntologySchema.model_validate(ontology_dict)


@pytest.fixture
def resolver(schema) -> PropertyResolver:
    return PropertyResolver(schema)


@pytest.fixture
def entity_factory():
    """Factory fixture to create entities from (name, value) pairs or property dicts."""

    def _create_entity(*properties, id: str = "v1", type: str | None = "vertex", label=None):
        props = []
        for p in properties:
            if isinstance(p, tuple):
                name, value = p
                p = {"name": iri(name) if "#" not in name else name, "value": value}
            props.append(p)
        return Entity.model_validate(
            {"id": id, "type": type, "properties": props, "label": label}
        )

    return _create_entity


@pytest.fixture
def person(entity_factory) -> Entity:
    return entity_factory(
        ("conceptType", iri("person")),
        ("firstName", "Jane"),
        ("lastName", "Doe"),
        ("age", 42),
    )
