"""Tests for query history."""
import pytest

from docuquery.exceptions import InvalidRatingError, QueryRecordNotFoundError
from docuquery.models.document import DocumentSource
from docuquery.services.history_service import QueryHistoryService


@pytest.fixture
def sources():
    return [
        DocumentSource(id="d1", title="guide.txt", content="Deploy.", relevance_score=0.9),
        DocumentSource(id="d2", title="faq.md", content="Restart.", relevance_score=0.4),
    ]


class TestQueryHistoryService:
    """Tests for QueryHistoryService."""

    @pytest.mark.asyncio
    async def test_record(self, history_service, sources):
        record = await history_service.record("How do I deploy?", "Use Docker.", sources)

        assert record.query == "How do I deploy?"
        assert record.answer == "Use Docker."
        assert record.source_documents == "guide.txt, faq.md"
        assert record.feedback_rating == 0
        assert record.timestamp.tzinfo is not None

    @pytest.mark.asyncio
    async def test_record_without_sources(self, history_service):
        record = await history_service.record("q", "a", [])
        assert record.source_documents == ""

    @pytest.mark.asyncio
    async def test_newest_first(self, history_service, sources):
        first = await history_service.record("first", "a", sources)
        second = await history_service.record("second", "a", sources)

        assert [r.id for r in history_service.list_records()] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_rate(self, history_service, sources):
        record = await history_service.record("q", "a", sources)

        rated = await history_service.rate(record.id, 4)
        assert rated.feedback_rating == 4

        cleared = await history_service.rate(record.id, 0)
        assert cleared.feedback_rating == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rating", [-1, 6, True])
    async def test_rate_rejects_out_of_range(self, history_service, sources, rating):
        record = await history_service.record("q", "a", sources)

        with pytest.raises(InvalidRatingError):
            await history_service.rate(record.id, rating)
        assert history_service.get(record.id).feedback_rating == 0

    @pytest.mark.asyncio
    async def test_rate_unknown_record(self, history_service):
        with pytest.raises(QueryRecordNotFoundError):
            await history_service.rate("missing", 3)

    @pytest.mark.asyncio
    async def test_delete(self, history_service, sources):
        record = await history_service.record("q", "a", sources)

        await history_service.delete(record.id)

        assert history_service.list_records() == []
        with pytest.raises(QueryRecordNotFoundError):
            await history_service.delete(record.id)

    @pytest.mark.asyncio
    async def test_load_round_trip(self, history_service, memory_store, sources):
        record = await history_service.record("q", "a", sources)
        await history_service.rate(record.id, 5)

        restored = QueryHistoryService(memory_store)
        await restored.load()

        assert restored.list_records() == [history_service.get(record.id)]
