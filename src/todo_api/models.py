from __future__ import annotations

from datetime import datetime
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A lightweight domain model representing a stored Todo item.

    Fields:
    - id: Unique integer identifier assigned by storage
    - title: Short title (1..100 chars, validated by schemas)
    - description: Optional detailed description (up to 500 chars)
    - creation_time: Timestamp set once when the entry is added
    - modification_time: Timestamp refreshed on every update
    """

    id: int
    title: str
    description: Optional[str]
    creation_time: datetime
    modification_time: datetime
