"""Plain-text extraction from uploaded files."""
from pathlib import Path

from docuquery.exceptions import ExtractionError
from docuquery.utils.logger import logger

TEXT_FILE_TYPES = ("txt", "md", "json", "csv")
PLACEHOLDER_FILE_TYPES = ("pdf", "docx")


def get_file_type(filename: str) -> str:
    """Determine file type from the filename extension, ``unknown`` if there is none."""
    extension = Path(filename).suffix.lower().lstrip(".")
    return extension or "unknown"


def decode_text(data: bytes, filename: str) -> str:
    """
    Decode raw bytes as UTF-8 text.

    Raises:
        ExtractionError: If the bytes are not valid UTF-8
    """
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.error(f"Error decoding {filename}: {str(e)}")
        raise ExtractionError(f"Failed to read {filename} as text: {str(e)}")


def placeholder_text(filename: str, file_type: str, file_size: int) -> str:
    """Stand-in content for rich formats whose text is not extracted."""
    return (
        f"[{file_type.upper()} Content from {filename}]\n\n"
        f"This is a placeholder for {file_type.upper()} content extraction.\n\n"
        f"File size: {file_size / 1024:.2f} KB\n\n"
        "For now, please upload .txt or .md files for best results."
    )


class ContentExtractor:
    """Turns an uploaded file into the text that gets indexed."""

    def extract(self, filename: str, data: bytes) -> str:
        """
        Extract text from an uploaded file.

        Args:
            filename: Original filename, used to pick the format
            data: Raw file content

        Returns:
            Document text

        Raises:
            ExtractionError: If the content cannot be read as text
        """
        file_type = get_file_type(filename)

        if file_type in TEXT_FILE_TYPES:
            text = decode_text(data, filename)
        elif file_type in PLACEHOLDER_FILE_TYPES:
            text = placeholder_text(filename, file_type, len(data))
        else:
            # Unknown formats are indexed if they happen to be text
            try:
                text = data.decode("utf-8")
            except UnicodeDecodeError:
                raise ExtractionError(f"Unsupported file type: {file_type}")

        logger.info(f"Extracted {len(text):,} characters from {filename}")
        return text
