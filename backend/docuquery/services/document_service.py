"""Document lifecycle: upload, indexing status, updates and deletion."""
import json
import uuid
from collections import Counter
from typing import Any, Callable, Dict, List, Optional

from docuquery.exceptions import (
    DocumentBusyError,
    DocumentNotFoundError,
    DocumentProcessingError,
    IndexingSupersededError,
    ValidationError,
)
from docuquery.models.document import Document, DocumentStatus, utc_now
from docuquery.services.content_extractor import ContentExtractor
from docuquery.services.indexing_service import IndexingService
from docuquery.services.persistence import KeyValueStore
from docuquery.utils.logger import logger
from docuquery.utils.metrics import DOCUMENTS_INDEXED
from docuquery.validators import DocumentValidator

DOCUMENTS_STORAGE_KEY = "docu-query-documents"

DocumentListener = Callable[[List[Document]], None]


class DocumentService:
    """
    Owns the document set and drives each document through its indexing states.

    ``pending -> processing -> indexed | error``; an update re-enters ``processing``
    from ``indexed`` or ``error``. A document that is deleted, cleared or
    re-uploaded while it is being indexed is superseded: its pass stops and
    never commits a final state.

    After every transition the document set is persisted and then every
    subscriber is called, in subscription order, with the full list of
    documents, most recently updated first.
    """

    def __init__(
        self,
        indexing_service: IndexingService,
        persistence: KeyValueStore,
        extractor: Optional[ContentExtractor] = None,
        validator: Optional[DocumentValidator] = None,
        storage_key: str = DOCUMENTS_STORAGE_KEY,
    ):
        self.indexing_service = indexing_service
        self.persistence = persistence
        self.extractor = extractor or ContentExtractor()
        self.validator = validator or DocumentValidator()
        self.storage_key = storage_key
        self._documents: Dict[str, Document] = {}
        self._listeners: List[DocumentListener] = []

    # Persistence and notification

    async def load(self) -> None:
        """Restore the document set from persistence."""
        blob = await self.persistence.load(self.storage_key)
        if blob:
            self._documents = {data["id"]: Document.from_dict(data) for data in json.loads(blob)}
        logger.info(f"Loaded {len(self._documents)} documents")

    async def _persist(self) -> None:
        blob = json.dumps([document.to_dict() for document in self._documents.values()])
        await self.persistence.save(self.storage_key, blob)

    def _notify(self) -> None:
        documents = self.get_all_documents()
        for listener in list(self._listeners):
            try:
                listener(documents)
            except Exception as e:
                # One broken subscriber must not hide updates from the others
                logger.warning(f"Document listener failed: {str(e)}", exc_info=True)

    async def _commit(self) -> None:
        await self._persist()
        self._notify()

    def subscribe(self, listener: DocumentListener) -> Callable[[], None]:
        """
        Register a listener for document updates.

        Returns:
            Callable that removes the listener again
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # State transitions

    def _is_current(self, document: Document) -> bool:
        return self._documents.get(document.id) is document

    def _superseded(self, document: Document) -> Document:
        logger.info(
            f"Indexing superseded for document {document.id}",
            extra={"document_id": document.id, "status": document.status.value},
        )
        return document

    async def _set_status(self, document: Document, status: DocumentStatus) -> None:
        document.status = status
        document.last_updated = utc_now()
        await self._commit()

    async def _fail(self, document: Document, error: Exception) -> Document:
        if not self._is_current(document):
            return self._superseded(document)

        document.error = str(error)
        DOCUMENTS_INDEXED.labels(outcome="error").inc()
        logger.error(
            f"Indexing failed for document {document.id}: {str(error)}",
            extra={"document_id": document.id, "status": DocumentStatus.ERROR.value},
        )
        await self._set_status(document, DocumentStatus.ERROR)
        return document

    async def _index(self, document: Document) -> Document:
        if not self._is_current(document):
            return self._superseded(document)

        try:
            chunk_count = await self.indexing_service.index_document(
                document, is_current=lambda: self._is_current(document)
            )
        except IndexingSupersededError:
            return self._superseded(document)
        except DocumentProcessingError as e:
            return await self._fail(document, e)

        # Deleted or replaced while the store was being saved
        if not self._is_current(document):
            return self._superseded(document)

        document.chunk_count = chunk_count
        document.error = None
        DOCUMENTS_INDEXED.labels(outcome="indexed").inc()
        await self._set_status(document, DocumentStatus.INDEXED)
        logger.info(
            f"Document indexed: {document.id}",
            extra={
                "document_id": document.id,
                "chunk_count": document.chunk_count,
                "status": document.status.value,
            },
        )
        return document

    async def _register(
        self,
        title: str,
        content: str,
        file_type: str,
        file_size: int,
        document_id: Optional[str],
    ) -> Document:
        now = utc_now()
        existing = self._documents.get(document_id) if document_id else None
        document = Document(
            id=document_id or str(uuid.uuid4()),
            title=title,
            content=content,
            file_type=file_type,
            file_size=file_size,
            uploaded_at=existing.uploaded_at if existing else now,
            last_updated=now,
            status=DocumentStatus.PENDING,
        )
        self._documents[document.id] = document
        await self._commit()
        return document

    # Operations

    async def upload_file(self, filename: str, data: bytes, document_id: Optional[str] = None) -> Document:
        """
        Upload and index a file.

        Args:
            filename: Original filename, used as the document title
            data: Raw file content
            document_id: Optional identifier; an existing id is re-indexed in place

        Returns:
            The document in ``indexed`` or ``error`` state

        Raises:
            ValidationError: If the file type or size is rejected (nothing is stored)
        """
        file_type = self.validator.validate_upload(filename, len(data))
        document = await self._register(filename, "", file_type, len(data), document_id)

        await self._set_status(document, DocumentStatus.PROCESSING)
        try:
            document.content = self.extractor.extract(filename, data)
        except DocumentProcessingError as e:
            return await self._fail(document, e)

        return await self._index(document)

    async def create_document(
        self,
        title: str,
        content: str,
        file_type: str = "txt",
        document_id: Optional[str] = None,
    ) -> Document:
        """
        Create and index a document from text that is already extracted.

        Args:
            title: Document title
            content: Document text
            file_type: Declared file type tag
            document_id: Optional identifier; an existing id is re-indexed in place

        Returns:
            The document in ``indexed`` or ``error`` state
        """
        if not title or not title.strip():
            raise ValidationError("Document title required")
        file_type = self.validator.validate_type_tag(file_type)
        file_size = len(content.encode("utf-8"))
        self.validator.validate_file_size(file_size)

        document = await self._register(title, content, file_type, file_size, document_id)
        await self._set_status(document, DocumentStatus.PROCESSING)
        return await self._index(document)

    async def update_document(self, document_id: Optional[str], content: str) -> Document:
        """
        Replace a document's content and re-index it.

        Raises:
            ValidationError: If no id is given
            DocumentNotFoundError: If the id is unknown
            DocumentBusyError: If the document is still pending or processing
        """
        self.validator.validate_document_id(document_id)
        document = self._documents.get(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        if document.status not in (DocumentStatus.INDEXED, DocumentStatus.ERROR):
            raise DocumentBusyError(document_id, document.status.value)

        document.content = content
        document.file_size = len(content.encode("utf-8"))
        await self._set_status(document, DocumentStatus.PROCESSING)
        return await self._index(document)

    async def delete_document(self, document_id: Optional[str]) -> None:
        """
        Delete a document and all of its chunks.

        Raises:
            ValidationError: If no id is given
            DocumentNotFoundError: If the id is unknown
        """
        self.validator.validate_document_id(document_id)
        if document_id not in self._documents:
            raise DocumentNotFoundError(document_id)

        await self.indexing_service.remove_document(document_id)
        del self._documents[document_id]
        await self._commit()
        logger.info(f"Document deleted: {document_id}", extra={"document_id": document_id})

    async def clear_all(self) -> None:
        """Remove every document and the whole vector store, with a single notification."""
        await self.indexing_service.clear_index()
        self._documents.clear()
        await self._commit()
        logger.info("All documents cleared")

    # Queries

    def get_all_documents(self) -> List[Document]:
        """All documents, most recently updated first."""
        # Equal timestamps: later insertions first
        return sorted(reversed(list(self._documents.values())), key=lambda d: d.last_updated, reverse=True)

    def get_document(self, document_id: str) -> Optional[Document]:
        return self._documents.get(document_id)

    def get_stats(self) -> Dict[str, Any]:
        documents = self.get_all_documents()
        return {
            "total_documents": len(documents),
            "indexed_documents": sum(1 for d in documents if d.status == DocumentStatus.INDEXED),
            "total_size": sum(d.file_size for d in documents),
            "file_types": dict(Counter(d.file_type for d in documents)),
        }

    def search_by_title(self, query: str) -> List[Document]:
        lower_query = query.lower()
        return [d for d in self.get_all_documents() if lower_query in d.title.lower()]
