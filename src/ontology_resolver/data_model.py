import json
import logging
from collections import Counter
from enum import Enum
from functools import cached_property
from pathlib import Path
from typing import Any, Iterator, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "http://graph.local/ontology#"
THING_CONCEPT = "http://www.w3.org/2002/07/owl#Thing"

NUMERIC_DATA_TYPES = ("date", "integer", "currency", "number", "double")


class _CamelModel(BaseModel):
    "Accepts the camelCase keys of the ontology JSON while exposing snake_case attributes."

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SandboxStatus(str, Enum):
    "The publication state of a property value."

    PUBLIC = "PUBLIC"
    PRIVATE = "PRIVATE"
    PUBLIC_CHANGED = "PUBLIC_CHANGED"


class Property(_CamelModel):
    "A single typed key/value property instance attached to an entity."

    name: str = Field(description="The IRI of the property.")
    key: str = Field(
        default="",
        description="Disambiguates multiple instances of the same property name.",
    )
    value: Any = Field(default=None, description="The raw value of the property.")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Property metadata, e.g. the confidence of the value.",
    )
    sandbox_status: SandboxStatus | None = Field(
        default=None, description="The publication state of the value, if known."
    )


class Entity(_CamelModel):
    "A vertex or an edge of the graph together with its denormalized property list."

    id: str = Field(description="The id of the element.", min_length=1)
    type: Literal["vertex", "edge"] | None = Field(
        default=None, description="Whether the element is a vertex or an edge."
    )
    properties: list[Property] = Field(
        default_factory=list,
        description="The properties of the element. Order is insertion order.",
    )
    label: str | None = Field(
        default=None, description="The relationship IRI. Only set for edges."
    )

    @property
    def is_vertex(self) -> bool:
        return self.type == "vertex"

    @property
    def is_edge(self) -> bool:
        return self.type == "edge"


class OntologyProperty(_CamelModel):
    "The schema definition of a property."

    title: str = Field(description="The IRI of the property.")
    display_name: str = Field(default="", description="The human readable name.")
    data_type: str = Field(
        default="string",
        description="The data type, e.g. string, boolean, date, integer, double, currency, geoLocation.",
    )
    display_type: str | None = Field(
        default=None,
        description="Optional display hint, e.g. phoneNumber, ssn, bytes, heading, duration, dateOnly.",
    )
    dependent_property_iris: list[str] = Field(
        default_factory=list,
        description="For compound properties, the ordered IRIs of the simple properties it is composed of.",
    )
    display_formula: str | None = Field(default=None)
    validation_formula: str | None = Field(default=None)
    possible_values: dict[str, str] | None = Field(
        default=None, description="Mapping from raw values to display labels."
    )
    user_visible: bool = Field(default=True)

    @property
    def iri(self) -> str:
        return self.title

    @property
    def is_compound(self) -> bool:
        return bool(self.dependent_property_iris)


class OntologyConcept(_CamelModel):
    "A node of the concept tree."

    id: str = Field(description="The IRI of the concept.", min_length=1)
    display_name: str = Field(default="")
    parent_concept: str | None = Field(
        default=None, description="The id of the parent concept. The root has none."
    )
    properties: list[str] = Field(
        default_factory=list,
        description="The IRIs of the properties declared on this concept.",
    )
    glyph_icon_href: str | None = Field(default=None)
    glyph_icon_selected_href: str | None = Field(default=None)
    title_formula: str | None = Field(default=None)
    subtitle_formula: str | None = Field(default=None)
    time_formula: str | None = Field(default=None)


class OntologyRelationship(_CamelModel):
    "The schema definition of an edge label."

    title: str = Field(description="The IRI of the relationship.")
    display_name: str = Field(default="")
    title_formula: str | None = Field(default=None)
    subtitle_formula: str | None = Field(default=None)
    time_formula: str | None = Field(default=None)


class OntologySchema(_CamelModel):
    "The loaded ontology. Immutable and shared by every resolution call."

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    namespace: str = Field(
        default=DEFAULT_NAMESPACE,
        description="The prefix used to expand bare property names into IRIs.",
    )
    concepts: list[OntologyConcept] = Field(default_factory=list)
    properties: list[OntologyProperty] = Field(default_factory=list)
    relationships: list[OntologyRelationship] = Field(default_factory=list)

    @field_validator("concepts")
    def validate_concepts(cls, concepts: list[OntologyConcept]) -> list[OntologyConcept]:
        "Validate the concepts."
        counts = Counter([c.id for c in concepts])
        for concept_id, count in counts.items():
            if count > 1:
                raise ValueError(
                    f"Concept {concept_id} appears {count} times in ontology"
                )
        return concepts

    @field_validator("properties")
    def validate_properties(
        cls, properties: list[OntologyProperty]
    ) -> list[OntologyProperty]:
        "Validate the properties."
        counts = Counter([p.title for p in properties])
        for title, count in counts.items():
            if count > 1:
                raise ValueError(f"Property {title} appears {count} times in ontology")
        return properties

    @cached_property
    def concepts_by_id(self) -> dict[str, OntologyConcept]:
        "{concept_id: concept}"
        return {c.id: c for c in self.concepts}

    @cached_property
    def properties_by_title(self) -> dict[str, OntologyProperty]:
        "{property_iri: property}"
        return {p.title: p for p in self.properties}

    @cached_property
    def properties_by_dependent_to_compound(self) -> dict[str, str]:
        "{dependent_property_iri: compound_property_iri}"
        return {
            iri: p.title
            for p in self.properties
            for iri in p.dependent_property_iris
        }

    @cached_property
    def relationships_by_title(self) -> dict[str, OntologyRelationship]:
        "{relationship_iri: relationship}"
        return {r.title: r for r in self.relationships}

    def iri(self, local_name: str) -> str:
        "Expand a local name into an IRI of this ontology's namespace."
        return self.namespace + local_name

    def iter_concept_chain(self, concept_id: str | None) -> Iterator[OntologyConcept]:
        """
        Yield the concept and then each of its ancestors up to the root.

        The walk stops at a missing concept or when a concept is visited twice,
        logging a warning, so a malformed concept graph cannot loop forever.
        """
        visited: set[str] = set()
        while concept_id:
            if concept_id in visited:
                logger.warning(f"Concept hierarchy has a cycle at {concept_id}")
                return
            visited.add(concept_id)
            concept = self.concepts_by_id.get(concept_id)
            if concept is None:
                logger.warning(f"Concept: {concept_id} is not in ontology")
                return
            yield concept
            concept_id = concept.parent_concept

    def lookup_concept_formula(
        self, concept_id: str | None, formula_key: str
    ) -> str | None:
        "Find the closest formula named `formula_key` walking up the concept tree."
        for concept in self.iter_concept_chain(concept_id):
            formula = getattr(concept, formula_key, None)
            if formula:
                return formula
        return None

    @classmethod
    def from_json_file(cls, path: str | Path) -> "OntologySchema":
        "Load an ontology JSON document."
        with open(path, encoding="utf-8") as f:
            return cls.model_validate(json.load(f))
