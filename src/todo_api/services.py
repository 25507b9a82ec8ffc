from __future__ import annotations

import logging
from typing import List

from fastapi import Depends

from .models import TodoEntity
from .repositories import PageSpec, Repository, get_repository
from .schemas import TodoIn

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class TodoService:
    """
    Domain service sitting between the API router and the repository.

    Input is trusted once it reaches this layer; request validation happens in
    the API schemas. TodoNotFoundError raised by the repository is the domain
    not-found error and propagates unchanged.
    """

    def __init__(self, repository: Repository) -> None:
        self._repository = repository

    def add(self, data: TodoIn) -> TodoEntity:
        logger.info("Adding a new todo entry with title: %s", data.title)
        return self._repository.add(data)

    def find_all(self) -> List[TodoEntity]:
        logger.info("Finding all todo entries.")
        return self._repository.find_all()

    def find_by_id(self, todo_id: int) -> TodoEntity:
        logger.info("Finding todo entry with id: %s", todo_id)
        return self._repository.find_by_id(todo_id)

    def find_by_search_term(self, search_term: str, page: PageSpec) -> List[TodoEntity]:
        logger.info("Finding todo entries by search term: %s and page: %s", search_term, page)
        return self._repository.find_by_search_term(search_term, page)

    def update(self, todo_id: int, data: TodoIn) -> TodoEntity:
        logger.info("Updating todo entry with id: %s", todo_id)
        return self._repository.update(todo_id, data)

    def delete(self, todo_id: int) -> TodoEntity:
        logger.info("Deleting todo entry with id: %s", todo_id)
        return self._repository.delete(todo_id)


# PUBLIC_INTERFACE
def get_todo_service(repo: Repository = Depends(get_repository)) -> TodoService:
    """FastAPI dependency returning a TodoService bound to the configured repository."""
    return TodoService(repo)
