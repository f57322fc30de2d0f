"""Custom exception classes for document indexing and retrieval."""


class DocumentProcessingError(Exception):
    """Base exception for document processing errors."""
    pass


class ValidationError(DocumentProcessingError):
    """Raised when input is rejected before any state is mutated."""
    pass


class FileTypeNotSupportedError(ValidationError):
    """Raised when an unsupported file type is encountered."""
    pass


class FileSizeExceededError(ValidationError):
    """Raised when file size exceeds the maximum allowed."""
    pass


class InvalidQueryError(ValidationError):
    """Raised when a question is empty or malformed."""
    pass


class InvalidRatingError(ValidationError):
    """Raised when a feedback rating is outside 0-5."""
    pass


class DocumentBusyError(ValidationError):
    """Raised when a document is updated while it is still being indexed."""

    def __init__(self, document_id: str, status: str):
        super().__init__(f"Document {document_id} is {status} and cannot be updated yet")
        self.document_id = document_id
        self.status = status


class ProcessingError(DocumentProcessingError):
    """Raised when document processing fails."""
    pass


class ExtractionError(ProcessingError):
    """Raised when text extraction from document fails."""
    pass


class EmbeddingError(DocumentProcessingError):
    """Raised when embedding generation fails."""
    pass


class IndexingSupersededError(DocumentProcessingError):
    """Raised when an indexing pass finds its document deleted or replaced."""

    def __init__(self, document_id: str):
        super().__init__(f"Indexing of document {document_id} was superseded")
        self.document_id = document_id


class ProviderUnavailableError(DocumentProcessingError):
    """Raised when a remote embedding or generation provider cannot be used."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider} unavailable: {message}")
        self.provider = provider


class StorageError(DocumentProcessingError):
    """Raised when reading or writing persisted state fails."""
    pass


class NotFoundError(DocumentProcessingError):
    """Raised when an identifier does not address an existing record."""
    pass


class DocumentNotFoundError(NotFoundError):
    """Raised when a document id is unknown."""

    def __init__(self, document_id: str):
        super().__init__(f"Document not found: {document_id}")
        self.document_id = document_id


class QueryRecordNotFoundError(NotFoundError):
    """Raised when a query history id is unknown."""

    def __init__(self, record_id: str):
        super().__init__(f"Query record not found: {record_id}")
        self.record_id = record_id
