"""Sentence-based text chunking with word overlap."""
import re
from typing import List, Optional

from docuquery.utils.logger import logger

SENTENCE_BOUNDARY = re.compile(r"[.!?]+")


def split_sentences(text: str) -> List[str]:
    """
    Split text on runs of terminal punctuation.

    Fragments are returned unstripped; fragments that are blank are dropped.
    """
    return [fragment for fragment in SENTENCE_BOUNDARY.split(text) if fragment.strip()]


class TextChunker:
    """Splits document text into ordered, overlapping chunks of roughly ``chunk_size`` characters."""

    def __init__(self, chunk_size: int = 500, chunk_overlap: int = 50):
        """
        Initialize the chunker.

        Args:
            chunk_size: Target size for text chunks (in characters)
            chunk_overlap: Overlap hint; every 10 units carry one trailing word into the next chunk
        """
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    @staticmethod
    def overlap_words(overlap_hint: int) -> int:
        """Number of trailing words carried over for a given overlap hint."""
        return max(overlap_hint // 10, 0)

    def split(
        self,
        text: str,
        target_size: Optional[int] = None,
        overlap_hint: Optional[int] = None,
    ) -> List[str]:
        """
        Split text into chunks.

        Sentences are accumulated greedily. When appending the next sentence would
        push the buffer past ``target_size`` and the buffer is not empty, the buffer
        is closed and the next one is seeded with its trailing words.

        Args:
            text: Text to chunk
            target_size: Override for the configured chunk size
            overlap_hint: Override for the configured overlap

        Returns:
            Chunk strings; ``[text]`` if no sentence could be found, empty text included
        """
        size = target_size if target_size is not None else self.chunk_size
        keep = self.overlap_words(overlap_hint if overlap_hint is not None else self.chunk_overlap)

        chunks: List[str] = []
        current = ""

        for sentence in split_sentences(text):
            if len(current + sentence) > size and current:
                chunks.append(current.strip())
                tail = current.split(" ")[-keep:] if keep else []
                current = " ".join(tail) + " "
            current += sentence + ". "

        if current.strip():
            chunks.append(current.strip())

        if not chunks:
            logger.debug("No sentences found, keeping text as a single chunk")
            return [text]

        return chunks
