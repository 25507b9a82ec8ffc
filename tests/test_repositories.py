import sqlite3
from contextlib import closing
from datetime import timedelta

import pytest

from todo_api.db import SQLiteRepository
from todo_api.errors import StorageError, TodoNotFoundError
from todo_api.repositories import InMemoryRepository, PageSpec
from todo_api.schemas import TodoIn


def seed(repository, *pairs):
    return [repository.add(TodoIn(title=t, description=d)) for t, d in pairs]


class TestAdd:
    def test_add_assigns_id_and_timestamps(self, repository, clock):
        added = repository.add(TodoIn(title="title", description="description"))
        assert added["id"] is not None
        assert added["title"] == "title"
        assert added["description"] == "description"
        assert added["creation_time"] == clock.current
        assert added["modification_time"] == clock.current

    def test_add_then_find_by_id_returns_same_record(self, repository):
        added = repository.add(TodoIn(title="Read book", description=None))
        assert repository.find_by_id(added["id"]) == added

    def test_ids_are_unique(self, repository):
        first, second = seed(repository, ("a", None), ("b", None))
        assert first["id"] != second["id"]


class TestFind:
    def test_find_by_id_not_found(self, repository):
        with pytest.raises(TodoNotFoundError) as exc_info:
            repository.find_by_id(999)
        assert exc_info.value.todo_id == 999

    def test_find_all_empty(self, repository):
        assert repository.find_all() == []

    def test_find_all_returns_every_entry(self, repository):
        added = seed(repository, ("a", "x"), ("b", None), ("c", "z"))
        found = sorted(repository.find_all(), key=lambda t: t["id"])
        assert found == added


class TestSearch:
    def test_matches_title_or_description_case_insensitive(self, repository):
        seed(
            repository,
            ("Write IT report", None),
            ("Groceries", "buy milk for the kitchen"),
            ("Nothing here", "at all"),
        )
        found = repository.find_by_search_term("it", PageSpec(page_size=10, sort_field="id"))
        assert [t["title"] for t in found] == ["Write IT report", "Groceries"]

    def test_non_ascii_letters_match_case_insensitive(self, repository):
        seed(repository, ("École trip", "Überweisung"), ("Ecole", None))
        assert [t["title"] for t in repository.find_by_search_term("école", PageSpec())] == ["École trip"]
        assert [t["title"] for t in repository.find_by_search_term("ÜBER", PageSpec())] == ["École trip"]

    def test_unknown_sort_field_rejected(self, repository):
        with pytest.raises(ValueError):
            repository.find_by_search_term("x", PageSpec(sort_field="title; DROP TABLE todos"))

    def test_no_match_returns_empty_list(self, repository):
        seed(repository, ("alpha", "beta"))
        assert repository.find_by_search_term("gamma", PageSpec()) == []

    def test_like_wildcards_match_literally(self, repository):
        seed(repository, ("100% done", None), ("1000 done", None))
        found = repository.find_by_search_term("0%", PageSpec())
        assert [t["title"] for t in found] == ["100% done"]

    def test_paging_applies_offset_and_limit(self, repository):
        seed(repository, *[(f"Task {i}", None) for i in range(5)])
        page = PageSpec(page_number=1, page_size=2, sort_field="id")
        found = repository.find_by_search_term("task", page)
        assert [t["title"] for t in found] == ["Task 2", "Task 3"]

    def test_page_past_end_is_empty(self, repository):
        seed(repository, ("Task", None))
        assert repository.find_by_search_term("task", PageSpec(page_number=3, page_size=10)) == []

    def test_sort_descending(self, repository):
        seed(repository, ("b task", None), ("a task", None), ("c task", None))
        page = PageSpec(sort_field="title", sort_direction="DESC")
        found = repository.find_by_search_term("task", page)
        assert [t["title"] for t in found] == ["c task", "b task", "a task"]

    def test_sort_by_modification_time(self, repository, clock):
        first, second = seed(repository, ("first", None), ("second", None))
        clock.advance(minutes=5)
        repository.update(first["id"], TodoIn(title="first", description="touched"))
        page = PageSpec(sort_field="modification_time", sort_direction="ASC")
        found = repository.find_by_search_term("", page)
        assert [t["id"] for t in found] == [second["id"], first["id"]]


class TestUpdate:
    def test_update_replaces_fields_and_refreshes_modification_time(self, repository, clock):
        added = repository.add(TodoIn(title="title", description="description"))
        later = clock.advance(seconds=30)

        updated = repository.update(added["id"], TodoIn(title="t2"))

        assert updated["id"] == added["id"]
        assert updated["title"] == "t2"
        assert updated["description"] is None
        assert updated["creation_time"] == added["creation_time"]
        assert updated["modification_time"] == later
        assert updated["modification_time"] > added["modification_time"]
        assert repository.find_by_id(added["id"]) == updated

    def test_update_not_found(self, repository):
        with pytest.raises(TodoNotFoundError):
            repository.update(42, TodoIn(title="nope"))
        assert repository.find_all() == []


class TestDelete:
    def test_delete_returns_record_and_removes_it(self, repository):
        added = repository.add(TodoIn(title="ToDelete", description="d"))
        deleted = repository.delete(added["id"])
        assert deleted == added
        with pytest.raises(TodoNotFoundError):
            repository.find_by_id(added["id"])

    def test_delete_not_found(self, repository):
        with pytest.raises(TodoNotFoundError):
            repository.delete(7)


class TestSQLiteSpecifics:
    def test_data_survives_new_repository_instance(self, tmp_path, clock):
        path = str(tmp_path / "nested" / "todos.db")
        added = SQLiteRepository(path, clock=clock).add(TodoIn(title="persisted"))
        assert SQLiteRepository(path, clock=clock).find_by_id(added["id"]) == added

    def test_failed_update_rolls_back(self, tmp_path, clock):
        repo = SQLiteRepository(str(tmp_path / "todos.db"), clock=clock)
        added = repo.add(TodoIn(title="kept"))
        with closing(sqlite3.connect(str(tmp_path / "todos.db"))) as conn:
            conn.execute(
                "CREATE TRIGGER fail_update BEFORE UPDATE ON todos "
                "BEGIN SELECT RAISE(ABORT, 'boom'); END"
            )
        with pytest.raises(StorageError):
            repo.update(added["id"], TodoIn(title="changed"))
        assert repo.find_by_id(added["id"])["title"] == "kept"

    def test_system_clock_stamps_round_trip_as_utc(self, tmp_path):
        repo = SQLiteRepository(str(tmp_path / "todos.db"))
        added = repo.add(TodoIn(title="stamped"))
        assert added["creation_time"].tzinfo is not None
        assert added["creation_time"].utcoffset() == timedelta(0)
        assert repo.find_by_id(added["id"]) == added


def test_in_memory_returns_copies(clock):
    repo = InMemoryRepository(clock=clock)
    added = repo.add(TodoIn(title="original"))
    added["title"] = "mutated"
    assert repo.find_by_id(added["id"])["title"] == "original"
