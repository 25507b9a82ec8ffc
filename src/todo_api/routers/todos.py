from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.exceptions import RequestValidationError
from pydantic.alias_generators import to_snake

from ..repositories import SORTABLE_FIELDS, PageSpec
from ..schemas import ErrorDocument, TodoIn, TodoOut
from ..services import TodoService, get_todo_service

router = APIRouter(
    prefix="/api/todo",
    tags=["todos"],
)

_NOT_FOUND = {404: {"model": ErrorDocument, "description": "Todo not found"}}
_BAD_REQUEST = {400: {"model": ErrorDocument, "description": "Validation error"}}


def _to_page_spec(
    page_number: int,
    page_size: int,
    sort_field: Optional[str],
    sort_order: str,
) -> PageSpec:
    """
    Translate search query parameters into a PageSpec.

    sortField accepts the JSON name (creationTime) or the column name
    (creation_time). Unknown fields and orders are reported as validation errors.
    """
    errors = []

    direction = sort_order.strip().upper()
    if direction not in {"ASC", "DESC"}:
        errors.append(
            {
                "loc": ("query", "sortOrder"),
                "type": "sort_order",
                "msg": "sortOrder must be 'ASC' or 'DESC'",
                "input": sort_order,
            }
        )

    column = None
    if sort_field:
        column = to_snake(sort_field.strip())
        if column not in SORTABLE_FIELDS:
            errors.append(
                {
                    "loc": ("query", "sortField"),
                    "type": "sort_field",
                    "msg": "sortField must be one of: id, title, description, creationTime, modificationTime",
                    "input": sort_field,
                }
            )

    if errors:
        raise RequestValidationError(errors)

    return PageSpec(
        page_number=page_number,
        page_size=page_size,
        sort_field=column,
        sort_direction=direction,
    )


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TodoOut,
    status_code=status.HTTP_201_CREATED,
    summary="Add Todo",
    description="Add a new Todo item and return the stored resource.",
    responses=_BAD_REQUEST,
)
def add_todo(payload: TodoIn, service: TodoService = Depends(get_todo_service)) -> TodoOut:
    """
    Add a new Todo.
    """
    return TodoOut(**service.add(payload))


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[TodoOut],
    summary="List Todos",
    description="Return every Todo item. An empty array is returned when there are none.",
)
def find_all_todos(service: TodoService = Depends(get_todo_service)) -> List[TodoOut]:
    return [TodoOut(**it) for it in service.find_all()]


# PUBLIC_INTERFACE
@router.get(
    "/search",
    response_model=List[TodoOut],
    summary="Search Todos",
    description=(
        "Return one page of todos whose title or description contains the search term "
        "(case-insensitive).\n\n"
        "Query parameters:\n"
        "- searchTerm: text to look for\n"
        "- pageNumber: zero-based page index\n"
        "- pageSize: number of items per page (1..1000)\n"
        "- sortField: id, title, description, creationTime or modificationTime\n"
        "- sortOrder: ASC or DESC\n\n"
        "No total count is returned."
    ),
    responses=_BAD_REQUEST,
)
def find_by_search_term(
    search_term: str = Query(..., alias="searchTerm", description="Text to search for"),
    page_number: int = Query(0, alias="pageNumber", ge=0, description="Zero-based page index"),
    page_size: int = Query(10, alias="pageSize", ge=1, le=1000, description="Items per page"),
    sort_field: Optional[str] = Query(None, alias="sortField", description="Field to sort by"),
    sort_order: str = Query("ASC", alias="sortOrder", description="'ASC' or 'DESC'"),
    service: TodoService = Depends(get_todo_service),
) -> List[TodoOut]:
    """
    Search todos by title and description with paging and sorting.
    """
    page = _to_page_spec(page_number, page_size, sort_field, sort_order)
    return [TodoOut(**it) for it in service.find_by_search_term(search_term, page)]


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Get Todo",
    description="Get a single Todo item by ID.",
    responses=_NOT_FOUND,
)
def find_by_id(todo_id: int, service: TodoService = Depends(get_todo_service)) -> TodoOut:
    """
    Retrieve a single Todo item by its ID.
    """
    return TodoOut(**service.find_by_id(todo_id))


# PUBLIC_INTERFACE
@router.put(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Update Todo",
    description=(
        "Replace title and description of an existing Todo item. "
        "An omitted description is stored as null."
    ),
    responses={**_BAD_REQUEST, **_NOT_FOUND},
)
def update_todo(
    todo_id: int, payload: TodoIn, service: TodoService = Depends(get_todo_service)
) -> TodoOut:
    return TodoOut(**service.update(todo_id, payload))


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=TodoOut,
    summary="Delete Todo",
    description="Delete a Todo item by ID and return it as it was before deletion.",
    responses=_NOT_FOUND,
)
def delete_todo(todo_id: int, service: TodoService = Depends(get_todo_service)) -> TodoOut:
    """
    Delete a Todo. Returns the deleted item, 404 if not found.
    """
    return TodoOut(**service.delete(todo_id))
