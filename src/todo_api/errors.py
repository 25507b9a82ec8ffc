from __future__ import annotations


class TodoApiError(Exception):
    """Base class for errors raised by the todo service."""


# PUBLIC_INTERFACE
class TodoNotFoundError(TodoApiError):
    """Raised when no todo entry exists for the requested id."""

    def __init__(self, todo_id: int) -> None:
        super().__init__(f"No todo entry found with id: {todo_id}")
        self.todo_id = todo_id


# PUBLIC_INTERFACE
class StorageError(TodoApiError):
    """Raised when the storage backend fails to execute an operation."""

    def __init__(self, message: str, operation: str) -> None:
        super().__init__(message)
        self.operation = operation
