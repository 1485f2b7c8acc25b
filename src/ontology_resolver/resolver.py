import logging
import re
from collections.abc import Mapping
from functools import cmp_to_key
from numbers import Number
from typing import Any

from pydantic import ValidationError

from . import formats
from .data_model import (
    THING_CONCEPT,
    Entity,
    OntologyConcept,
    OntologyProperty,
    OntologySchema,
    Property,
    SandboxStatus,
)
from .display import DisplayFormatter
from .errors import CompoundNestingError, InvalidArgumentError
from .formula import Capabilities, ExpressionEvaluator, FormulaEvaluator
from .messages import i18n

logger = logging.getLogger(__name__)

UNSET: Any = object()

_UNPUBLISHED_PATTERN = re.compile(r"^(private|public_changed)$", re.IGNORECASE)


def check_entity(entity: Any) -> Entity:
    "Validate an entity argument. Mappings are validated into an `Entity`."
    if isinstance(entity, Mapping):
        if not entity.get("id") or not isinstance(entity.get("properties"), list):
            raise InvalidArgumentError(f"Entity is invalid: {entity!r}")
        try:
            return Entity.model_validate(entity)
        except ValidationError as e:
            raise InvalidArgumentError(f"Entity is invalid: {e}") from e
    if not isinstance(entity, Entity) or not entity.id:
        raise InvalidArgumentError(f"Entity is invalid: {entity!r}")
    return entity


def check_entity_and_property_name(entity: Any, name: Any) -> Entity:
    """
    Validate the arguments of every resolver entry point.

    Parameters
    ----------
    entity : Entity | Mapping
        The element. Mappings are validated into an `Entity`.
    name : str
        The property name.

    Returns
    -------
    entity : Entity
        The validated element.

    Raises
    ------
    InvalidArgumentError
        If the entity has no id, its properties are not a list, or the name is
        not a non-empty string.
    """
    entity = check_entity(entity)
    if not name or not isinstance(name, str):
        raise InvalidArgumentError(f"Property name is invalid: {name!r}")
    return entity


class PropertyResolver:
    """
    Resolves the display and raw values of ontology properties on graph
    entities.

    All state is the immutable schema and the injected collaborators, so a
    single resolver may be shared freely.
    """

    def __init__(
        self,
        schema: OntologySchema,
        evaluator: FormulaEvaluator | None = None,
        formatter: DisplayFormatter | None = None,
    ):
        self.schema = schema
        self.evaluator = evaluator or ExpressionEvaluator()
        self.formatter = formatter or DisplayFormatter()

        self.title_iri = schema.iri("title")
        self.concept_type_iri = schema.iri("conceptType")
        self.visibility_iri = schema.iri("visibilityJson")
        self.confidence_iri = schema.iri("confidence")

    def ontology_property(self, name: str) -> OntologyProperty | None:
        return self.schema.properties_by_title.get(self.canonicalize(name))

    def canonicalize(self, name: str) -> str:
        """
        Resolve a bare property title or an IRI to the name the ontology knows
        it by. Unknown names are returned unchanged.
        """
        properties = self.schema.properties_by_title
        expanded = name if name.startswith(self.schema.namespace) else self.schema.iri(name)
        ontology_property = properties.get(name) or properties.get(expanded)
        if ontology_property is None:
            return name
        return name if ontology_property.title == name else expanded

    def capabilities(self) -> Capabilities:
        "The resolver functions handed to formulas."
        return Capabilities(
            prop=self.resolve,
            prop_raw=self.resolve_raw,
            longest_prop=self.longest_prop,
            is_edge=lambda entity: isinstance(entity, Entity) and entity.is_edge,
        )

    def find_matches(
        self, entity: Entity, name: str, key: Any = UNSET
    ) -> list[Property]:
        "The property instances on `entity` matching `name` (or its dependents) and `key`."
        name = self.canonicalize(name)
        has_key = key is not UNSET
        ontology_property = self.schema.properties_by_title.get(name)
        iris = (
            ontology_property.dependent_property_iris
            if ontology_property and ontology_property.is_compound
            else [name]
        )
        matches = [
            p
            for p in entity.properties
            if p.name in iris and (not has_key or p.key == key)
        ]

        if name == self.visibility_iri and not matches:
            return [
                Property(
                    name=self.visibility_iri,
                    key="",
                    value={"source": ""},
                    metadata={},
                    sandbox_status=SandboxStatus.PUBLIC,
                )
            ]
        return matches

    def resolve_all(self, entity: Any, name: str, key: Any = UNSET) -> list[Property]:
        """
        All property instances matching `name`, optionally filtered by `key`.

        Omit `key` to return every instance; an explicit `None` key is rejected.
        """
        entity = check_entity_and_property_name(entity, name)
        if key is None:
            raise InvalidArgumentError(
                "Undefined key is not allowed. Remove parameter to return all named properties"
            )
        return self.find_matches(entity, name, key)

    def _confidence(self, p: Property) -> Any:
        if self.confidence_iri in p.metadata:
            return p.metadata[self.confidence_iri]
        return p.metadata.get("confidence")

    def _ordered_matches(self, entity: Entity, iris: list[str]) -> list[Property]:
        def compare(p1: Property, p2: Property) -> int:
            c1 = self._confidence(p1)
            c2 = self._confidence(p2)
            p1_has_confidence = isinstance(c1, Number) and not isinstance(c1, bool)
            p2_has_confidence = isinstance(c2, Number) and not isinstance(c2, bool)

            if p1_has_confidence and p2_has_confidence and c1 != c2:
                return -1 if c1 > c2 else 1
            if p1_has_confidence != p2_has_confidence:
                return -1 if p1_has_confidence else 1

            v1 = self.display(p1.name, p1.value)
            v2 = self.display(p2.name, p2.value)
            if isinstance(v1, str) and isinstance(v2, str):
                v1, v2 = v1.lower(), v2.lower()
                return (v1 > v2) - (v1 < v2)
            return 0

        matches = [p for p in entity.properties if p.name in iris]
        return sorted(matches, key=cmp_to_key(compare))

    def resolve_raw(
        self,
        entity: Any,
        name: str,
        key: str | None = None,
        *,
        default_value: Any = None,
        _dependent: bool = False,
    ) -> Any:
        """
        The raw value of a property.

        A compound property resolves to a list with one raw value per
        dependent, in declared order. A simple property resolves to the value
        of its best instance: instances with a higher confidence come first,
        ties are broken by display value. The confidence is read from the
        `<namespace>confidence` metadata entry, or a bare `confidence` entry.

        Parameters
        ----------
        entity : Entity | Mapping
            The element.
        name : str
            The property title or IRI.
        key : str | None
            Restrict to the instance with this key.
        default_value : Any
            Returned when no value is found.

        Returns
        -------
        value : Any
            The raw value, a list for compound properties, or None when there
            is no value and no default.
        """
        entity = check_entity_and_property_name(entity, name)
        name = self.canonicalize(name)

        ontology_property = self.schema.properties_by_title.get(name)
        dependent_iris = ontology_property.dependent_property_iris if ontology_property else []
        properties = self._ordered_matches(entity, dependent_iris or [name])

        if dependent_iris:
            if _dependent:
                raise CompoundNestingError(
                    f"Compound property {name} depends on compound properties which is not allowed"
                )
            if key is None and properties:
                key = properties[0].key
            return [
                self.resolve_raw(
                    entity, iri, key, default_value=default_value, _dependent=True
                )
                for iri in dependent_iris
            ]

        found = properties[0] if properties else None
        if key is not None:
            found = next((p for p in properties if p.key == key), None)

        if found is not None and found.value is not None:
            return found.value

        if default_value is not None:
            return default_value
        if name != self.title_iri:
            return None

        display_name = (ontology_property.display_name if ontology_property else "").lower()
        return i18n("vertex.property.not_available", display_name or name)

    def resolve(
        self,
        entity: Any,
        name: str,
        key: str | None = None,
        *,
        default_value: Any = None,
        ignore_display_formula: bool = False,
        transforms: dict[str, bool] | None = None,
    ) -> Any:
        """
        The display value of a property.

        Compound properties are displayed with their display formula, or by
        joining the display values of their dependents with a space. Simple
        properties use their display formula unless `ignore_display_formula`
        is set, and are otherwise formatted by data and display type. Names
        unknown to the ontology return the raw value.
        """
        entity = check_entity_and_property_name(entity, name)
        name = self.canonicalize(name)

        value = self.resolve_raw(entity, name, key, default_value=default_value)
        ontology_property = self.schema.properties_by_title.get(name)

        if ontology_property is None:
            return value

        if isinstance(value, list):
            if key is None:
                first_match = next(
                    (
                        p
                        for p in entity.properties
                        if p.name in ontology_property.dependent_property_iris
                    ),
                    None,
                )
                key = first_match.key if first_match else None
            if ontology_property.display_formula:
                return self.evaluator.evaluate(
                    ontology_property.display_formula, entity, self.capabilities(), key
                )
            parts = [
                self.resolve(
                    entity,
                    iri,
                    key,
                    default_value=default_value,
                    ignore_display_formula=ignore_display_formula,
                    transforms=transforms,
                )
                for iri in ontology_property.dependent_property_iris
            ]
            return " ".join("" if part is None else str(part) for part in parts)

        if not ignore_display_formula and ontology_property.display_formula:
            return self.evaluator.evaluate(
                ontology_property.display_formula, entity, self.capabilities(), key
            )

        return self.display(name, value, transforms)

    def display(
        self, name: str, value: Any, transforms: dict[str, bool] | None = None
    ) -> Any:
        "Format a raw value of the named property for display."
        ontology_property = self.ontology_property(name)
        if ontology_property is None:
            return value
        return self.formatter.format(ontology_property, value, transforms)

    def longest_prop(self, entity: Any, name: str | None = None) -> str | None:
        "The longest display value among the user visible properties of `entity`."
        entity = check_entity(entity)
        values = []
        for p in entity.properties:
            ontology_property = self.schema.properties_by_title.get(p.name)
            if name and self.canonicalize(name) != p.name:
                continue
            if not ontology_property or not ontology_property.user_visible:
                continue
            parent = self.schema.properties_by_dependent_to_compound.get(p.name)
            if parent and self.has_property(entity, parent):
                values.append(self.resolve(entity, parent, p.key))
            else:
                values.append(self.resolve(entity, p.name, p.key))

        values = sorted(
            (v for v in values if isinstance(v, str)), key=len, reverse=True
        )
        return values[0] if values else None

    def concept(self, entity: Any) -> OntologyConcept | None:
        "The concept of a vertex, falling back to the root concept."
        entity = check_entity(entity)
        concept_type = self.resolve_raw(entity, self.concept_type_iri)
        if not concept_type or concept_type == "Unknown":
            concept_type = THING_CONCEPT

        concept = self.schema.concepts_by_id.get(concept_type)
        if concept is None and concept_type != "relationship":
            logger.warning(f"Concept: {concept_type} is not in ontology")
            concept = self.schema.concepts_by_id.get(THING_CONCEPT)
        return concept

    def concept_properties(self, entity: Any) -> list[str]:
        "Every property IRI declared on the concept of `entity` or its ancestors."
        concept = self.concept(entity)
        properties: list[str] = []
        for c in self.schema.iter_concept_chain(concept.id if concept else None):
            properties.extend(c.properties)
        return properties

    def has_property(self, entity: Any, name: str) -> bool:
        return name in self.concept_properties(entity)

    def is_kind_of_concept(self, entity: Any, concept_id: str) -> bool:
        "Whether the concept of `entity` is `concept_id` or one of its descendants."
        entity = check_entity(entity)
        concept_type = self.resolve_raw(entity, self.concept_type_iri)
        return any(
            c.id == concept_id for c in self.schema.iter_concept_chain(concept_type)
        )

    def sandbox_status(
        self, element: Any, name: str | None = None, key: Any = UNSET
    ) -> str | None:
        """
        The unpublished message when a property (or, given `name`, every
        matching property of an entity) is private or has unpublished changes.
        Otherwise None.
        """
        if name is not None:
            properties = self.resolve_all(element, name, key)
            if not properties:
                return None
            if any(self.sandbox_status(p) is None for p in properties):
                return None
            return i18n("vertex.status.unpublished")

        status = element.sandbox_status if isinstance(element, Property) else None
        if isinstance(element, Mapping):
            status = element.get("sandboxStatus")
        if isinstance(status, SandboxStatus):
            status = status.value
        if status and _UNPUBLISHED_PATTERN.match(status):
            return i18n("vertex.status.unpublished")
        return None

    def is_published(self, element: Any, name: str | None = None, key: Any = UNSET) -> bool:
        return self.sandbox_status(element, name, key) is None

    def rollup(self, name: str, values: list[Any]) -> dict[str, str]:
        "Aggregate raw values of a date or numeric property for display."
        ontology_property = self.ontology_property(name)
        if ontology_property is None or not values:
            return {}

        match ontology_property.data_type:
            case "date":
                return {
                    "span": formats.relative_to_date(min(values), max(values)),
                    "average": formats.date_string(sum(values) / len(values)),
                }
            case "double" | "integer" | "currency" | "number":
                total = sum(values)
                return {
                    "sum": formats.number_pretty(total),
                    "average": formats.number_pretty(total / len(values)),
                }
        return {}

    def display_type(self, entity: Any) -> str:
        "edge, entity, or for artifacts: video, audio, image or document."
        raw_iri = self.schema.iri("raw")
        entity = check_entity(entity)
        names = [p.name for p in entity.properties]
        if raw_iri not in names:
            return "edge" if entity.is_edge else "entity"

        if any(n.startswith(self.schema.iri("video-")) for n in names):
            return "video"
        if any(n.startswith(self.schema.iri("audio-")) for n in names):
            return "audio"

        raw = self.find_matches(entity, raw_iri)
        mime_type = raw[0].metadata.get(self.schema.iri("mimeType")) if raw else None
        if isinstance(mime_type, str) and mime_type.startswith("image/"):
            return "image"
        return "document"

    def title(self, entity: Any, accessed: list[str] | None = None) -> Any:
        """
        The title of a vertex or edge, computed with the closest title formula
        and falling back to the title property.

        When `accessed` is given, the canonical names of the properties the
        formula read are appended to it.
        """
        title = self._formula_result(entity, "title_formula", None, accessed)
        if not title:
            title = self.resolve(entity, self.title_iri)
        return title

    def subtitle(self, entity: Any, accessed: list[str] | None = None) -> Any:
        return self._formula_result(entity, "subtitle_formula", "", accessed)

    def time(self, entity: Any, accessed: list[str] | None = None) -> Any:
        return self._formula_result(entity, "time_formula", "", accessed)

    def _formula_result(
        self,
        element: Any,
        formula_key: str,
        default_value: Any,
        accessed: list[str] | None,
    ) -> Any:
        if isinstance(element, (Entity, Mapping)):
            element = check_entity(element)
        if not isinstance(element, Entity) or element.type is None:
            if formula_key == "title_formula":
                return i18n("element.unauthorized").upper()
            return ""

        additional_scope: dict[str, Any] = {}
        if element.is_edge:
            relationship = self.schema.relationships_by_title.get(element.label or "")
            if relationship is None:
                logger.warning(f"Relationship: {element.label} is not in ontology")
                return default_value
            additional_scope["label"] = relationship.display_name
            formula = getattr(relationship, formula_key)
        else:
            concept = self.concept(element)
            formula = self.schema.lookup_concept_formula(
                concept.id if concept else None, formula_key
            )

        if not formula:
            return default_value

        capabilities = self.capabilities()
        if accessed is not None:
            capabilities = capabilities.recording(accessed, self.canonicalize)
        return self.evaluator.evaluate(
            formula, element, capabilities, None, additional_scope
        )
