import argparse
import json
import logging
import os
from pathlib import Path
from typing import Any, Literal, Union

logger = logging.getLogger(__name__)

ALLOWED_ORDERS = ["ASC", "DESC"]
ALLOWED_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _parse_required_path(
    args: argparse.Namespace, arg_name: str, env_var: str
) -> str:
    value = getattr(args, arg_name)
    if value is None:
        value = os.getenv(env_var)
    if value is None:
        logger.error(f"Error: No {arg_name} path provided. Use --{arg_name} or {env_var}.")
        raise ValueError(f"No {arg_name} path provided. Use --{arg_name} or {env_var}.")
    if not Path(value).is_file():
        logger.error(f"Error: {arg_name} file does not exist: {value}")
        raise ValueError(f"{arg_name} file does not exist: {value}")
    return value


def parse_ontology_path(args: argparse.Namespace) -> str:
    """
    Parse the ontology JSON path from the command line arguments or environment variables.

    Parameters
    ----------
    args : argparse.Namespace
        The command line arguments.

    Returns
    -------
    ontology_path : str
        The path of the ontology JSON document.

    Raises
    ------
    ValueError: If no path is provided or the file does not exist.
    """
    return _parse_required_path(args, "ontology", "ONTOLOGY_RESOLVER_ONTOLOGY")


def parse_entities_path(args: argparse.Namespace) -> str:
    """
    Parse the entities JSON path from the command line arguments or environment variables.

    Raises
    ------
    ValueError: If no path is provided or the file does not exist.
    """
    return _parse_required_path(args, "entities", "ONTOLOGY_RESOLVER_ENTITIES")


def parse_namespace(args: argparse.Namespace) -> str | None:
    """
    Parse the IRI namespace used to expand bare property names.
    None means the namespace declared by the ontology is used.
    """
    if args.namespace is not None:
        logger.info(f"Info: Namespace provided: {args.namespace}")
        return args.namespace
    if os.getenv("ONTOLOGY_RESOLVER_NAMESPACE") is not None:
        logger.info(
            f"Info: Namespace provided: {os.getenv('ONTOLOGY_RESOLVER_NAMESPACE')}"
        )
        return os.getenv("ONTOLOGY_RESOLVER_NAMESPACE")
    logger.info("Info: No namespace provided. Using the ontology namespace.")
    return None


def parse_order(args: argparse.Namespace) -> Literal["ASC", "DESC"]:
    """
    Parse the sort order from the command line arguments or environment variables.

    Raises
    ------
    ValueError: If the order is invalid.
    """
    order = args.order
    if order is None:
        order = os.getenv("ONTOLOGY_RESOLVER_SORT_ORDER")
    if order is None:
        logger.info("Info: No sort order provided. Using default: ASC")
        return "ASC"
    order = order.upper()
    if order not in ALLOWED_ORDERS:
        logger.error(f"Invalid sort order: {order}. Allowed orders are: {ALLOWED_ORDERS}")
        raise ValueError(
            f"Invalid sort order: {order}. Allowed orders are: {ALLOWED_ORDERS}"
        )
    return order


def parse_log_level(args: argparse.Namespace) -> str:
    """
    Parse the log level from the command line arguments or environment variables.

    Raises
    ------
    ValueError: If the log level is invalid.
    """
    level = args.log_level
    if level is None:
        level = os.getenv("ONTOLOGY_RESOLVER_LOG_LEVEL")
    if level is None:
        return "WARNING"
    level = level.upper()
    if level not in ALLOWED_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level: {level}. Allowed log levels are: {ALLOWED_LOG_LEVELS}"
        )
    return level


def process_config(args: argparse.Namespace) -> dict[str, Union[str, None]]:
    """
    Process the command line arguments and environment variables to create a config dictionary.
    If any optional value is not provided, then an info message is logged and a default value is used.

    Parameters
    ----------
    args : argparse.Namespace
        The command line arguments.

    Returns
    -------
    config : dict[str, str | None]
        The configuration dictionary.
    """
    config = dict()

    config["log_level"] = parse_log_level(args)
    config["ontology_path"] = parse_ontology_path(args)
    config["entities_path"] = parse_entities_path(args)
    config["namespace"] = parse_namespace(args)
    config["order"] = parse_order(args)

    return config


def load_entities(path: str | Path) -> list[dict[str, Any]]:
    "Load a JSON document holding a list of entities, or an object with an `elements` list."
    with open(path, encoding="utf-8") as f:
        document = json.load(f)
    if isinstance(document, dict):
        document = document.get("elements", [])
    if not isinstance(document, list):
        raise ValueError(f"Entities document must be a list: {path}")
    return document
