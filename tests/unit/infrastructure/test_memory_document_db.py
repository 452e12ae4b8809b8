"""Unit tests for the in-memory document database."""

from datetime import UTC, datetime, timedelta
from enum import Enum

import pytest

from src.commons.infrastructure.documentdb import DuplicateDocumentError
from src.commons.infrastructure.documentdb.memory_provider import (
    InMemoryDocumentDB,
    matches,
)


class Color(str, Enum):
    RED = "red"
    BLUE = "blue"


@pytest.fixture
def db():
    return InMemoryDocumentDB()


class TestMatches:
    """Tests for the filter evaluator."""

    def test_equality_and_nested_paths(self):
        doc = {"status": "pending", "meta": {"owner": "u1"}}
        assert matches(doc, {"status": "pending", "meta.owner": "u1"})
        assert not matches(doc, {"meta.owner": "u2"})

    def test_comparison_operators(self):
        doc = {"attempts": 2}
        assert matches(doc, {"attempts": {"$gte": 2, "$lt": 3}})
        assert not matches(doc, {"attempts": {"$gt": 2}})
        assert matches(doc, {"attempts": {"$in": [1, 2]}})
        assert matches(doc, {"attempts": {"$nin": [5]}})

    def test_missing_field_never_compares(self):
        assert not matches({}, {"available_at": {"$lte": 10}})
        assert matches({}, {"available_at": {"$ne": 10}})

    def test_or_clause(self):
        doc = {"status": "in_flight", "lease": 5}
        assert matches(doc, {"$or": [{"status": "pending"}, {"lease": {"$lt": 10}}]})
        assert not matches(doc, {"$or": [{"status": "pending"}, {"lease": {"$gt": 10}}]})

    def test_unknown_operator(self):
        with pytest.raises(ValueError):
            matches({"a": 1}, {"a": {"$regex": "x"}})


class TestCrud:
    """Tests for basic document operations."""

    async def test_insert_and_find_by_id(self, db):
        doc_id = await db.insert("videos", {"id": "v1", "title": "A", "color": Color.RED})

        found = await db.find_by_id("videos", doc_id)

        assert found == {"id": "v1", "title": "A", "color": "red"}

    async def test_insert_generates_id(self, db):
        doc_id = await db.insert("videos", {"title": "A"})
        assert len(doc_id) == 32

    async def test_duplicate_id(self, db):
        await db.insert("videos", {"id": "v1"})
        with pytest.raises(DuplicateDocumentError):
            await db.insert("videos", {"id": "v1"})

    async def test_returned_documents_are_copies(self, db):
        await db.insert("videos", {"id": "v1", "tags": ["a"]})
        found = await db.find_by_id("videos", "v1")
        found["tags"].append("b")
        assert (await db.find_by_id("videos", "v1"))["tags"] == ["a"]

    async def test_find_sort_skip_limit(self, db):
        for i, title in enumerate(["c", "a", "b"]):
            await db.insert("videos", {"id": f"v{i}", "title": title, "owner": "u"})

        found = await db.find("videos", {"owner": "u"}, skip=1, limit=1, sort=[("title", 1)])

        assert [doc["title"] for doc in found] == ["b"]

    async def test_sort_puts_missing_values_last(self, db):
        await db.insert("jobs", {"id": "a"})
        await db.insert("jobs", {"id": "b", "available_at": 5})
        await db.insert("jobs", {"id": "c"})

        found = await db.find("jobs", {}, sort=[("available_at", 1)])

        assert found[0]["id"] == "b"

    async def test_update_sets_dotted_paths(self, db):
        await db.insert("videos", {"id": "v1", "meta": {"a": 1}})

        assert await db.update("videos", "v1", {"meta.b": 2, "status": Color.BLUE})

        assert await db.find_by_id("videos", "v1") == {
            "id": "v1",
            "meta": {"a": 1, "b": 2},
            "status": "blue",
        }

    async def test_update_missing(self, db):
        assert await db.update("videos", "nope", {"a": 1}) is False

    async def test_update_many_and_count(self, db):
        await db.insert("jobs", {"id": "a", "status": "pending"})
        await db.insert("jobs", {"id": "b", "status": "pending"})
        await db.insert("jobs", {"id": "c", "status": "done"})

        changed = await db.update_many("jobs", {"status": "pending"}, {"status": "dead"})

        assert changed == 2
        assert await db.count("jobs", {"status": "dead"}) == 2
        assert await db.count("jobs") == 3

    async def test_delete(self, db):
        await db.insert("videos", {"id": "v1"})
        assert await db.delete("videos", "v1") is True
        assert await db.delete("videos", "v1") is False

    async def test_find_one(self, db):
        await db.insert("videos", {"id": "v1", "owner": "u"})
        assert (await db.find_one("videos", {"owner": "u"}))["id"] == "v1"
        assert await db.find_one("videos", {"owner": "x"}) is None


class TestFindOneAndUpdate:
    """Tests for the compare-and-set primitive."""

    async def test_updates_only_when_filter_matches(self, db):
        await db.insert("videos", {"id": "v1", "stage": "transcription"})

        first = await db.find_one_and_update(
            "videos", {"id": "v1", "stage": "transcription"}, {"stage": "summarization"}
        )
        second = await db.find_one_and_update(
            "videos", {"id": "v1", "stage": "transcription"}, {"stage": "summarization"}
        )

        assert first["stage"] == "summarization"
        assert second is None

    async def test_sort_picks_the_winner(self, db):
        now = datetime.now(UTC)
        await db.insert("jobs", {"id": "late", "status": "pending", "available_at": now})
        await db.insert(
            "jobs",
            {"id": "early", "status": "pending", "available_at": now - timedelta(seconds=5)},
        )

        claimed = await db.find_one_and_update(
            "jobs",
            {"status": "pending", "available_at": {"$lte": now}},
            {"status": "in_flight"},
            increments={"attempts": 1},
            sort=[("available_at", 1)],
        )

        assert claimed["id"] == "early"
        assert claimed["attempts"] == 1

    async def test_upsert_builds_from_equality_filters(self, db):
        doc = await db.find_one_and_update(
            "users",
            {"user_id": "u1", "count": {"$lt": 10}},
            increments={"count": 1},
            upsert=True,
        )

        assert doc["user_id"] == "u1"
        assert doc["count"] == 1
        assert "id" in doc

    async def test_increments_inside_list_items(self, db):
        await db.insert(
            "videos",
            {"id": "v1", "questions": [{"q": "a"}, {"q": "b", "stats": {"total": 2}}]},
        )

        doc = await db.find_one_and_update(
            "videos",
            {"id": "v1", "questions.1": {"$exists": True}},
            increments={"questions.1.stats.total": 1, "questions.0.stats.total": 1},
        )

        assert doc["questions"][1]["stats"]["total"] == 3
        assert doc["questions"][0]["stats"]["total"] == 1

    async def test_list_index_out_of_range_does_not_match(self, db):
        await db.insert("videos", {"id": "v1", "questions": [{"q": "a"}]})

        doc = await db.find_one_and_update(
            "videos",
            {"id": "v1", "questions.3": {"$exists": True}},
            increments={"questions.3.stats.total": 1},
        )

        assert doc is None

    async def test_requires_a_change(self, db):
        with pytest.raises(ValueError):
            await db.find_one_and_update("videos", {"id": "v1"})


class TestIndexes:
    """Tests for unique and partial unique indexes."""

    async def test_unique_index(self, db):
        await db.create_index("users", [("user_id", 1)], unique=True)
        await db.insert("users", {"user_id": "u1"})

        with pytest.raises(DuplicateDocumentError):
            await db.insert("users", {"user_id": "u1"})

    async def test_partial_unique_index(self, db):
        name = await db.create_index(
            "jobs",
            [("video_id", 1)],
            unique=True,
            name="one_active_job",
            partial_filter={"active": True},
        )
        await db.insert("jobs", {"id": "a", "video_id": "v1", "active": True})
        await db.insert("jobs", {"id": "b", "video_id": "v1", "active": False})

        assert name == "one_active_job"
        with pytest.raises(DuplicateDocumentError):
            await db.insert("jobs", {"id": "c", "video_id": "v1", "active": True})
        with pytest.raises(DuplicateDocumentError):
            await db.update("jobs", "b", {"active": True})

        await db.update("jobs", "a", {"active": False})
        await db.insert("jobs", {"id": "c", "video_id": "v1", "active": True})

    async def test_health_check(self, db):
        status = await db.health_check()
        assert status.healthy is True
