"""Upload validation, applied before any document state is created."""
from typing import Iterable, List, Optional

from docuquery.exceptions import FileSizeExceededError, FileTypeNotSupportedError, ValidationError

DEFAULT_ACCEPTED_TYPES = ("txt", "md", "pdf", "docx", "json", "csv")


def parse_file_types(value: str) -> List[str]:
    """Parse a comma-separated list of extensions (``"txt, .md"`` -> ``["txt", "md"]``)."""
    return [item.strip().lower().lstrip(".") for item in value.split(",") if item.strip()]


class DocumentValidator:
    """Checks uploads against the accepted file types and the size limit."""

    def __init__(self, accepted_types: Optional[Iterable[str]] = None, max_file_size_mb: float = 10):
        self.accepted_types = list(accepted_types or DEFAULT_ACCEPTED_TYPES)
        self.max_file_size_mb = max_file_size_mb

    @classmethod
    def from_settings(cls, settings) -> "DocumentValidator":
        return cls(
            accepted_types=parse_file_types(settings.accepted_file_types),
            max_file_size_mb=settings.max_file_size_mb,
        )

    def validate_file_type(self, filename: str) -> str:
        """Validate file type and return the clean extension."""
        if not filename:
            raise FileTypeNotSupportedError("File name is required.")

        extension = filename.lower().rsplit(".", 1)[-1] if "." in filename else ""
        return self.validate_type_tag(extension)

    def validate_type_tag(self, file_type: str) -> str:
        """Validate a bare file type such as ``md`` or ``.md``."""
        file_type = file_type.lower().lstrip(".")
        if file_type not in self.accepted_types:
            supported = ", ".join(f".{t}" for t in self.accepted_types)
            raise FileTypeNotSupportedError(
                f"File type .{file_type} is not supported. Supported formats: {supported}"
            )
        return file_type

    def validate_file_size(self, file_size_bytes: int) -> None:
        """Validate file size."""
        file_size_mb = file_size_bytes / (1024 * 1024)
        if file_size_mb > self.max_file_size_mb:
            raise FileSizeExceededError(
                f"File size ({file_size_mb:.2f} MB) exceeds maximum allowed size ({self.max_file_size_mb} MB)."
            )

    def validate_upload(self, filename: str, file_size_bytes: int) -> str:
        """
        Validate an uploaded file.

        Args:
            filename: Original filename
            file_size_bytes: Size of the upload in bytes

        Returns:
            The file type extension
        """
        file_type = self.validate_file_type(filename)
        self.validate_file_size(file_size_bytes)
        return file_type

    @staticmethod
    def validate_document_id(document_id: Optional[str]) -> str:
        if not document_id or not document_id.strip():
            raise ValidationError("Document ID required")
        return document_id
