from datetime import datetime, timedelta, timezone

import pytest

from application.services.memory import MemoryService, extract_topics, summarize_exchange
from domain.entities import MemoryRecord
from infrastructure.persistence.memory_repo import SQLiteMemoryRepository
from infrastructure.persistence.preference_repo import SQLitePreferenceRepository

from fakes import FakeEmbeddings, UnavailableEmbeddings


def _service(connection, embeddings):
    return MemoryService(
        memory_repo=SQLiteMemoryRepository(connection),
        preference_repo=SQLitePreferenceRepository(connection),
        embeddings=embeddings,
    )


@pytest.fixture
def embeddings():
    return FakeEmbeddings({
        "loved the Lyon food tour": [1.0, 0.0, 0.0],
        "asked about hotels in Lyon": [0.8, 0.6, 0.0],
        "wanted beaches in Nice": [0.6, 0.8, 0.0],
        "talked about trains": [0.0, 1.0, 0.0],
        "Lyon again?": [1.0, 0.0, 0.0],
    })


@pytest.fixture
async def seeded(connection, embeddings):
    service = _service(connection, embeddings)
    for summary in (
        "loved the Lyon food tour",
        "asked about hotels in Lyon",
        "wanted beaches in Nice",
        "talked about trains",
    ):
        await service.store_conversation("alice", None, summary, {"page": "home"})
    return service


async def test_retrieval_respects_threshold_and_order(seeded):
    memories = await seeded.retrieve_relevant("alice", "Lyon again?", limit=5, min_similarity=0.7)

    assert [m.content for m in memories] == [
        "loved the Lyon food tour",
        "asked about hotels in Lyon",
    ]
    assert all(m.similarity >= 0.7 for m in memories)
    assert memories[0].similarity == pytest.approx(1.0)
    assert memories[1].similarity == pytest.approx(0.8)
    assert memories[0].metadata == {"page": "home"}


async def test_returned_similarity_never_falls_below_a_fine_threshold(connection):
    close = 0.70045
    service = _service(connection, FakeEmbeddings({
        "almost Lyon": [close, (1 - close ** 2) ** 0.5, 0.0],
        "Lyon again?": [1.0, 0.0, 0.0],
    }))
    await service.store_conversation("alice", None, "almost Lyon", {})

    memories = await service.retrieve_relevant(
        "alice", "Lyon again?", limit=5, min_similarity=0.7004,
    )

    assert [m.content for m in memories] == ["almost Lyon"]
    assert memories[0].similarity >= 0.7004


async def test_retrieval_caps_at_limit(seeded):
    memories = await seeded.retrieve_relevant("alice", "Lyon again?", limit=2, min_similarity=0.0)

    assert len(memories) == 2
    similarities = [m.similarity for m in memories]
    assert similarities == sorted(similarities, reverse=True)


async def test_retrieval_is_scoped_to_user(seeded):
    assert await seeded.retrieve_relevant("bob", "Lyon again?") == []


async def test_retrieval_for_anonymous_user_is_empty(seeded):
    assert await seeded.retrieve_relevant(None, "Lyon again?") == []


async def test_unavailable_embeddings_degrade_softly(connection):
    service = _service(connection, UnavailableEmbeddings())

    assert await service.store_conversation("alice", None, "anything", {}) is None
    assert await service.retrieve_relevant("alice", "anything") == []


async def test_missing_embeddings_make_store_a_no_op(connection):
    service = _service(connection, None)

    assert await service.store_conversation("alice", 1, "anything") is None
    assert await service.get_recent("alice") == []


async def test_preference_merge_disjoint_fields_and_last_write_wins(connection):
    service = _service(connection, None)

    await service.update_preference("alice", "accommodation", {"type": "boutique", "stars": 4})
    await service.update_preference("alice", "accommodation", {"type": "budget", "area": "old town"})
    prefs = await service.get_preferences("alice")

    accommodation = prefs["accommodation"]
    assert accommodation["type"] == "budget"
    assert accommodation["stars"] == 4
    assert accommodation["area"] == "old town"
    assert "lastUpdated" in accommodation


async def test_preference_categories_are_independent(connection):
    service = _service(connection, None)

    await service.update_preference("alice", "cuisine", {"preference": "italian"})
    prefs = await service.update_preference("alice", "activities", {"type": "cultural"})

    assert set(prefs) == {"cuisine", "activities"}
    assert await service.get_preferences("alice") == prefs


async def test_preferences_default_to_empty(connection):
    service = _service(connection, None)

    assert await service.get_preferences("nobody") == {}
    assert await service.get_preferences(None) == {}


async def test_purge_removes_only_old_memories(connection, embeddings):
    repo = SQLiteMemoryRepository(connection)
    old = (datetime.now(timezone.utc) - timedelta(days=120)).isoformat()
    await repo.save(MemoryRecord(user_id="alice", content="old trip", embedding=[1.0], created_at=old))
    await repo.save(MemoryRecord(user_id="alice", content="new trip", embedding=[1.0]))
    service = _service(connection, embeddings)

    removed = await service.purge_older_than(90)

    assert removed == 1
    assert [m.content for m in await service.get_recent("alice")] == ["new trip"]


async def test_remember_exchange_stores_summary_and_preferences(connection):
    embeddings = FakeEmbeddings()
    service = _service(connection, embeddings)

    memory_id = await service.remember_exchange(
        "alice", 7,
        "Can you find a budget hotel near the museum?",
        "Here are three budget hotels close to the Musée des Beaux-Arts.",
        {"page": "itinerary"},
    )

    assert memory_id is not None
    stored = await service.get_recent("alice")
    assert stored[0].message_id == 7
    assert stored[0].content.startswith('User asked: "Can you find a budget hotel')
    prefs = await service.get_preferences("alice")
    assert prefs["accommodation"]["type"] == "budget"
    assert prefs["activities"]["type"] == "cultural"


def test_summary_truncates_long_text():
    long_message = "x" * 150
    summary = summarize_exchange(long_message, "line one\nline two")

    assert summary == f'User asked: "{"x" * 100}...". Agent responded about: line one line two'
    assert extract_topics("y" * 101) == "y" * 100 + "..."
