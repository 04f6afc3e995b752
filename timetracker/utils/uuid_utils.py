from uuid import UUID
from typing import Union, Optional


def parse_uuid(value: Union[str, UUID, None]) -> Optional[UUID]:
    """Convert a UUID-like value to ``UUID``, or ``None`` if it is not one.

    Path parameters reach the services as plain strings; anything that is not
    a well-formed UUID cannot name an existing row.
    """
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value).strip())
    except ValueError:
        return None
