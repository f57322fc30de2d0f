"""Query history with feedback ratings."""
import json
import uuid
from typing import Dict, List

from docuquery.exceptions import InvalidRatingError, QueryRecordNotFoundError
from docuquery.models.document import DocumentSource, QueryRecord, utc_now
from docuquery.services.persistence import KeyValueStore
from docuquery.utils.logger import logger

HISTORY_STORAGE_KEY = "docu-query-history"

MAX_RATING = 5


class QueryHistoryService:
    """Keeps every answered question until the user deletes it."""

    def __init__(self, persistence: KeyValueStore, storage_key: str = HISTORY_STORAGE_KEY):
        self.persistence = persistence
        self.storage_key = storage_key
        self._records: Dict[str, QueryRecord] = {}

    async def load(self) -> None:
        blob = await self.persistence.load(self.storage_key)
        if blob:
            self._records = {data["id"]: QueryRecord.from_dict(data) for data in json.loads(blob)}
        logger.info(f"Loaded {len(self._records)} query history records")

    async def _save(self) -> None:
        blob = json.dumps([record.to_dict() for record in self._records.values()])
        await self.persistence.save(self.storage_key, blob)

    async def record(self, query: str, answer: str, sources: List[DocumentSource]) -> QueryRecord:
        """
        Store a completed query.

        Args:
            query: The question as asked
            answer: The answer returned
            sources: Sources the answer was grounded on

        Returns:
            The new, unrated record
        """
        record = QueryRecord(
            id=str(uuid.uuid4()),
            query=query,
            answer=answer,
            timestamp=utc_now(),
            source_documents=", ".join(source.title for source in sources),
        )
        self._records[record.id] = record
        await self._save()
        return record

    def list_records(self) -> List[QueryRecord]:
        """All records, newest first."""
        # Equal timestamps: later insertions first
        return sorted(reversed(list(self._records.values())), key=lambda r: r.timestamp, reverse=True)

    def get(self, record_id: str) -> QueryRecord:
        record = self._records.get(record_id)
        if record is None:
            raise QueryRecordNotFoundError(record_id)
        return record

    async def rate(self, record_id: str, rating: int) -> QueryRecord:
        """
        Set the feedback rating of a record.

        Raises:
            InvalidRatingError: If rating is not an integer from 0 (unrated) to 5
            QueryRecordNotFoundError: If the record does not exist
        """
        if isinstance(rating, bool) or not isinstance(rating, int) or not 0 <= rating <= MAX_RATING:
            raise InvalidRatingError(f"Rating must be an integer between 0 and {MAX_RATING}")

        record = self.get(record_id)
        record.feedback_rating = rating
        await self._save()
        return record

    async def delete(self, record_id: str) -> None:
        if record_id not in self._records:
            raise QueryRecordNotFoundError(record_id)
        del self._records[record_id]
        await self._save()
