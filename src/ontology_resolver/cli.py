import json
import logging
from typing import Any

from .data_model import OntologySchema
from .errors import ResolverError
from .resolver import PropertyResolver
from .sorter import sort_by_properties
from .utils import load_entities
from .validation import group_valid

logger = logging.getLogger(__name__)

COMMANDS = ["resolve", "raw", "title", "sort", "validate"]


def _to_json(value: Any) -> str:
    return json.dumps(value, default=str)


def run(
    command: str,
    ontology_path: str,
    entities_path: str,
    property_name: str | None = None,
    key: str | None = None,
    values: list[Any] | None = None,
    namespace: str | None = None,
    order: str = "ASC",
) -> list[str]:
    """
    Run a command over every entity of the entities document.

    Returns
    -------
    lines : list[str]
        One JSON encoded result per entity.
    """
    schema = OntologySchema.from_json_file(ontology_path)
    if namespace is not None:
        schema = schema.model_copy(update={"namespace": namespace})
    resolver = PropertyResolver(schema)
    entities = load_entities(entities_path)
    logger.info(f"Loaded {len(entities)} entities and {len(schema.properties)} ontology properties")

    if command != "title" and not property_name:
        raise ValueError(f"The {command} command requires --property")

    lines = []
    if command == "sort":
        for entity in sort_by_properties(resolver, entities, property_name, order):
            lines.append(_to_json({"id": entity.id, "title": resolver.title(entity)}))
        return lines

    for entity in entities:
        try:
            if command == "resolve":
                result = resolver.resolve(entity, property_name, key)
            elif command == "raw":
                result = resolver.resolve_raw(entity, property_name, key)
            elif command == "title":
                accessed: list[str] = []
                result = {"title": resolver.title(entity, accessed), "accessed": accessed}
            else:
                result = group_valid(resolver, entity, values or [], property_name, key)
        except ResolverError as e:
            logger.error(f"Unable to {command} entity: {e}")
            raise
        lines.append(_to_json({"id": entity.get("id"), "result": result}))
    return lines
