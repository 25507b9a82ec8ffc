from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from threading import RLock
from typing import Dict, List, Optional

from .clock import DateTimeService
from .errors import TodoNotFoundError
from .models import TodoEntity
from .schemas import TodoIn
from .settings import get_settings

logger = logging.getLogger(__name__)

# Columns a search may be ordered by.
SORTABLE_FIELDS = ("id", "title", "description", "creation_time", "modification_time")


@dataclass(frozen=True)
class PageSpec:
    """
    Paging and sorting parameters for search queries.

    page_number is zero based. sort_field is a column from SORTABLE_FIELDS or
    None to keep the natural storage order.
    """
    page_number: int = 0
    page_size: int = 10
    sort_field: Optional[str] = None
    sort_direction: str = "ASC"  # ASC or DESC

    @property
    def offset(self) -> int:
        return max(self.page_number, 0) * max(self.page_size, 0)

    @property
    def descending(self) -> bool:
        return self.sort_direction.upper() == "DESC"


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract repository contract for todo storage backends."""

    @abstractmethod
    def add(self, data: TodoIn) -> TodoEntity:
        """Stamp, store and return a new TodoEntity including its generated id."""

    @abstractmethod
    def find_by_id(self, todo_id: int) -> TodoEntity:
        """Return a TodoEntity by id. Raises TodoNotFoundError if absent."""

    @abstractmethod
    def find_all(self) -> List[TodoEntity]:
        """Return every stored TodoEntity in natural storage order."""

    @abstractmethod
    def find_by_search_term(self, search_term: str, page: PageSpec) -> List[TodoEntity]:
        """
        Return one page of TodoEntities whose title or description contains
        search_term (case-insensitive), ordered as requested by page.
        """

    @abstractmethod
    def update(self, todo_id: int, data: TodoIn) -> TodoEntity:
        """
        Replace title and description of an existing entry and refresh its
        modification time. Raises TodoNotFoundError if absent.
        """

    @abstractmethod
    def delete(self, todo_id: int) -> TodoEntity:
        """Delete an entry and return it as it was. Raises TodoNotFoundError if absent."""


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and local development.
    """

    def __init__(self, clock: Optional[DateTimeService] = None) -> None:
        self._clock = clock or DateTimeService()
        self._lock = RLock()
        self._items: Dict[int, TodoEntity] = {}
        self._next_id = 1

    def add(self, data: TodoIn) -> TodoEntity:
        logger.info("Adding new todo entry with title: %s", data.title)
        now = self._clock.now()
        logger.debug("The current time is: %s", now)
        with self._lock:
            entity: TodoEntity = {
                "id": self._next_id,
                "title": data.title,
                "description": data.description,
                "creation_time": now,
                "modification_time": now,
            }
            self._next_id += 1
            self._items[entity["id"]] = entity
            logger.info("Added todo entry with id: %s", entity["id"])
            return entity.copy()

    def find_by_id(self, todo_id: int) -> TodoEntity:
        logger.info("Finding todo entry by id: %s", todo_id)
        with self._lock:
            item = self._items.get(todo_id)
            if item is None:
                raise TodoNotFoundError(todo_id)
            return item.copy()

    def find_all(self) -> List[TodoEntity]:
        with self._lock:
            items = [t.copy() for t in self._items.values()]
        logger.info("Found %d todo entries", len(items))
        return items

    def find_by_search_term(self, search_term: str, page: PageSpec) -> List[TodoEntity]:
        logger.info(
            "Finding %d todo entries for page %d by using search term: %s",
            page.page_size,
            page.page_number,
            search_term,
        )
        if page.sort_field is not None and page.sort_field not in SORTABLE_FIELDS:
            raise ValueError(f"Unsupported sort field: {page.sort_field}")
        s = search_term.casefold()

        def matches(t: TodoEntity) -> bool:
            title_ok = s in t["title"].casefold()
            desc_ok = s in t["description"].casefold() if t["description"] else False
            return title_ok or desc_ok

        with self._lock:
            items = [t.copy() for t in self._items.values() if matches(t)]

        if page.sort_field is not None:
            field = page.sort_field
            # None sorts first, as NULLs do in SQLite ascending order
            items.sort(
                key=lambda t: (t[field] is not None, t[field]),  # type: ignore[literal-required]
                reverse=page.descending,
            )

        start = page.offset
        result = items[start:start + max(page.page_size, 0)]
        logger.info("Found %d todo entries", len(result))
        return result

    def update(self, todo_id: int, data: TodoIn) -> TodoEntity:
        logger.info("Updating todo entry with id: %s", todo_id)
        with self._lock:
            existing = self._items.get(todo_id)
            if existing is None:
                raise TodoNotFoundError(todo_id)

            now = self._clock.now()
            logger.debug("The current time is: %s", now)
            updated = existing.copy()
            updated["title"] = data.title
            updated["description"] = data.description
            updated["modification_time"] = now
            self._items[todo_id] = updated
            return updated.copy()

    def delete(self, todo_id: int) -> TodoEntity:
        logger.info("Deleting todo entry by id: %s", todo_id)
        with self._lock:
            deleted = self._items.pop(todo_id, None)
        if deleted is None:
            raise TodoNotFoundError(todo_id)
        logger.info("Returning deleted todo entry with id: %s", todo_id)
        return deleted


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_repository() -> Repository:
    """
    Return the process-wide repository for the configured backend.
    - sqlite: SQLiteRepository at SQLITE_DB_PATH
    - memory: InMemoryRepository
    """
    settings = get_settings()
    if settings.persistence_backend == "memory":
        return InMemoryRepository()

    from .db import SQLiteRepository

    return SQLiteRepository(settings.sqlite_db_path)
