import argparse
import json
import logging

from . import cli
from .data_model import (
    Entity,
    OntologyConcept,
    OntologyProperty,
    OntologyRelationship,
    OntologySchema,
    Property,
    SandboxStatus,
)
from .display import DisplayFormatter
from .errors import (
    CompoundNestingError,
    FormulaError,
    InvalidArgumentError,
    ResolverError,
)
from .formula import Capabilities, ExpressionEvaluator, FormulaEvaluator
from .resolver import PropertyResolver
from .sorter import sort_by_properties
from .utils import process_config
from .validation import group_valid, single_valid


def main():
    """Main entry point for the package."""
    parser = argparse.ArgumentParser(
        description="Resolve, sort and validate ontology properties of graph entities"
    )
    parser.add_argument("command", choices=cli.COMMANDS, help="What to compute")
    parser.add_argument("--ontology", default=None, help="Ontology JSON path")
    parser.add_argument("--entities", default=None, help="Entities JSON path")
    parser.add_argument("--property", default=None, help="Property title or IRI")
    parser.add_argument("--key", default=None, help="Property key")
    parser.add_argument(
        "--values",
        default=None,
        help="JSON list of candidate values for the validate command",
    )
    parser.add_argument(
        "--namespace", default=None, help="IRI namespace for bare property names"
    )
    parser.add_argument("--order", default=None, help="Sort order (ASC, DESC)")
    parser.add_argument("--log-level", default=None, help="Log level (default: WARNING)")

    args = parser.parse_args()

    config = process_config(args)
    logging.basicConfig(level=config["log_level"])

    lines = cli.run(
        args.command,
        config["ontology_path"],
        config["entities_path"],
        property_name=args.property,
        key=args.key,
        values=json.loads(args.values) if args.values else None,
        namespace=config["namespace"],
        order=config["order"],
    )
    for line in lines:
        print(line)


__all__ = [
    "main",
    "Capabilities",
    "CompoundNestingError",
    "DisplayFormatter",
    "Entity",
    "ExpressionEvaluator",
    "FormulaError",
    "FormulaEvaluator",
    "InvalidArgumentError",
    "OntologyConcept",
    "OntologyProperty",
    "OntologyRelationship",
    "OntologySchema",
    "Property",
    "PropertyResolver",
    "ResolverError",
    "SandboxStatus",
    "group_valid",
    "single_valid",
    "sort_by_properties",
]
