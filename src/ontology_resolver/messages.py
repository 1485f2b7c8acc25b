import logging

logger = logging.getLogger(__name__)

MESSAGES: dict[str, str] = {
    "vertex.property.not_available": "No {0} available",
    "vertex.status.unpublished": "Unpublished",
    "element.unauthorized": "Unauthorized",
    "user.unknown.displayName": "Unknown User",
    "boolean.true": "True",
    "boolean.false": "False",
    "bytes.suffix": "bytes",
    "bytes.kilo": "KB",
    "bytes.mega": "MB",
    "bytes.giga": "GB",
    "bytes.tera": "TB",
    "numbers.thousand_suffix": "K",
    "numbers.million_suffix": "M",
    "numbers.billion_suffix": "B",
    "numbers.trillion_suffix": "T",
    "field.heading.north": "North",
    "field.heading.northeast": "Northeast",
    "field.heading.east": "East",
    "field.heading.southeast": "Southeast",
    "field.heading.south": "South",
    "field.heading.southwest": "Southwest",
    "field.heading.west": "West",
    "field.heading.northwest": "Northwest",
    "field.directory.group": "Group",
    "field.directory.person": "Person",
    "time.ago": "ago",
    "time.moments": "moments",
    "time.minute": "1 minute",
    "time.minutes": "minutes",
    "time.hour": "1 hour",
    "time.hours": "hours",
    "time.day": "1 day",
    "time.days": "days",
    "time.month": "1 month",
    "time.months": "months",
    "time.year": "1 year",
    "time.years": "years",
}


def i18n(key: str, *args: object) -> str:
    """
    Look up a display message and fill its positional placeholders.

    Parameters
    ----------
    key : str
        The message key.
    *args : object
        Values substituted for `{0}`, `{1}`, ... in the message.

    Returns
    -------
    message : str
        The formatted message, or the key itself when no message is defined.
    """
    message = MESSAGES.get(key)
    if message is None:
        logger.warning(f"Missing message for key: {key}")
        return key
    for index, arg in enumerate(args):
        message = message.replace("{" + str(index) + "}", str(arg))
    return message
