"""
The two asynchronous display lookups.

Both delegate to an external data request collaborator and return a
coroutine the caller must await before using the text. There is no
cancellation and no staleness check: if the owning entity changes before the
lookup completes, the caller is responsible for discarding the result.
"""

import logging
from typing import Any, Protocol

from .formats import directory_entity_pretty
from .messages import i18n

logger = logging.getLogger(__name__)


class DataRequest(Protocol):
    async def request(self, domain: str, method: str, *args: Any) -> Any: ...


async def request_directory_entity_pretty(
    data_request: DataRequest, directory_entity_id: str | None
) -> str | None:
    """
    Look up a directory entity (a person or group) and format it for display.

    Parameters
    ----------
    data_request : DataRequest
        The data request collaborator.
    directory_entity_id : str | None
        The id of the directory entity.

    Returns
    -------
    display_value : str | None
        `displayName (Person)` / `displayName (Group)`, an empty string when
        the entity is unknown, or None when no id is given.
    """
    if not directory_entity_id:
        return None
    directory_entity = await data_request.request(
        "directory", "getById", directory_entity_id
    )
    return directory_entity_pretty(directory_entity)


async def request_user_display_name(data_request: DataRequest, user_id: str) -> str:
    "The display name of a user, or the unknown user message."
    users = await data_request.request("user", "getUserNames", [user_id])
    if users and users[0]:
        return users[0]
    logger.info(f"No display name found for user {user_id}")
    return i18n("user.unknown.displayName")
