import logging
from numbers import Number
from typing import Any, Literal

from .data_model import NUMERIC_DATA_TYPES, Entity
from .resolver import PropertyResolver, check_entity

logger = logging.getLogger(__name__)


def _comparable(value: Any) -> tuple[int, Any]:
    "Order numbers before strings before anything else, without comparing across types."
    if isinstance(value, Number) and not isinstance(value, bool):
        return (0, value)
    if isinstance(value, str):
        return (1, value)
    return (2, str(value))


def _has_value(resolver: PropertyResolver, entity: Entity, name: str) -> bool:
    if not resolver.resolve_all(entity, name):
        return False
    value = resolver.resolve(entity, name, default_value=" ")
    if isinstance(value, str):
        value = value.strip()
    return value is not None and value != ""


def _sort_key(resolver: PropertyResolver, entity: Entity, name: str) -> tuple[int, Any]:
    ontology_property = resolver.ontology_property(name)
    value = resolver.resolve_raw(entity, name, default_value=" ")
    if isinstance(value, str):
        value = value.strip()

    if ontology_property is not None:
        if ontology_property.is_compound:
            value = resolver.resolve(entity, name, default_value=" ")
        match ontology_property.data_type:
            case "string":
                if isinstance(value, str):
                    value = value.lower()
            case "boolean":
                value = 1 if value is True else -1
            case data_type if data_type in NUMERIC_DATA_TYPES and isinstance(value, str):
                try:
                    value = float(value)
                except ValueError:
                    logger.warning(f"Non numeric {data_type} value for {name}: {value!r}")
    return _comparable(value)


def sort_by_properties(
    resolver: PropertyResolver,
    entities: list[Any],
    name: str,
    order: Literal["ASC", "DESC"] = "ASC",
) -> list[Entity]:
    """
    Sort entities by the raw value of a property.

    Entities without a usable value (no matching property, no value, or a
    blank string) are sorted by title and always placed after the entities
    that have one. `order="DESC"` only reverses the entities with a value.

    Parameters
    ----------
    resolver : PropertyResolver
        The resolver used to read values and titles.
    entities : list[Entity | Mapping]
        The entities to sort.
    name : str
        The property title or IRI to sort by.
    order : Literal["ASC", "DESC"]
        The order of the entities that have a value.

    Returns
    -------
    sorted_entities : list[Entity]
    """
    entities = [check_entity(e) for e in entities]

    with_value = []
    without_value = []
    for entity in entities:
        if _has_value(resolver, entity, name):
            with_value.append(entity)
        else:
            without_value.append(entity)

    sorted_without_value = sorted(
        without_value, key=lambda e: _comparable(resolver.title(e))
    )
    sorted_with_value = sorted(
        with_value, key=lambda e: _sort_key(resolver, e, name)
    )
    if order == "DESC":
        sorted_with_value.reverse()

    logger.debug(
        f"Sorted {len(sorted_with_value)} entities with a {name} value and {len(sorted_without_value)} without"
    )
    return sorted_with_value + sorted_without_value
