import logging
from typing import Any

from .data_model import Entity, Property
from .errors import InvalidArgumentError
from .resolver import PropertyResolver, check_entity_and_property_name

logger = logging.getLogger(__name__)


def single_valid(
    resolver: PropertyResolver, value: Any, name: str, key: str | None = None
) -> bool:
    """
    Validate one candidate value of a property.

    The value is placed on a synthetic entity and checked with the property's
    validation formula. Properties without a validation formula, or unknown to
    the ontology, are always valid.
    """
    ontology_property = resolver.ontology_property(name)
    if ontology_property is None or not ontology_property.validation_formula:
        return True

    entity = Entity(
        id="singlePropValid",
        properties=[
            Property(name=ontology_property.title, key=key or "", value=value)
        ],
    )
    result = resolver.evaluator.evaluate(
        ontology_property.validation_formula, entity, resolver.capabilities(), key
    )
    return bool(result)


def group_valid(
    resolver: PropertyResolver,
    entity: Any,
    values: list[Any],
    name: str,
    key: str | None = None,
) -> bool:
    """
    Validate candidate values for a property, including compound properties.

    For a compound property `values[i]` is the candidate for the i-th
    dependent; a single element list stands for its element. Each candidate
    is merged onto the entity's existing property with the same name and key.
    Every resulting property must pass `single_valid`, and the property's own
    validation formula, if any, must pass against the merged entity.

    Raises
    ------
    InvalidArgumentError
        If the entity or name is invalid, or `values` is not a list.
    """
    entity = check_entity_and_property_name(entity, name)
    if not isinstance(values, (list, tuple)):
        raise InvalidArgumentError("Unable to validate without values array")

    ontology_property = resolver.ontology_property(name)
    if ontology_property is None:
        logger.warning(f"Property {name} is not in ontology, nothing to validate")
        return True

    if values:
        iris = ontology_property.dependent_property_iris or [ontology_property.title]
        properties = []
        for i, iri in enumerate(iris):
            candidate = values[i] if i < len(values) else None
            if isinstance(candidate, (list, tuple)) and len(candidate) == 1:
                candidate = candidate[0]

            existing = next(
                (p for p in entity.properties if p.name == iri and p.key == (key or "")),
                None,
            )
            if existing is not None:
                properties.append(existing.model_copy(update={"value": candidate}))
            else:
                properties.append(Property(name=iri, key=key or "", value=candidate))
        entity = entity.model_copy(update={"properties": properties})

    every_property_valid = all(
        single_valid(resolver, p.value, p.name, p.key) for p in entity.properties
    )
    if not every_property_valid:
        return False

    if ontology_property.validation_formula:
        result = resolver.evaluator.evaluate(
            ontology_property.validation_formula,
            entity,
            resolver.capabilities(),
            key,
        )
        return bool(result)
    return True
