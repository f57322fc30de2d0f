"""Centralized prompt templates for documentation answers."""
from typing import List

from docuquery.models.document import DocumentSource


class AnswerPrompt:
    """Prompt template constraining generation to the retrieved documentation."""

    NOT_AVAILABLE = "This information is not available in the current documentation."
    NO_CONTEXT = "No relevant documentation found."

    @staticmethod
    def build_context(sources: List[DocumentSource]) -> str:
        """
        Join retrieved sources into a single context block.

        Args:
            sources: Retrieved documents, most relevant first

        Returns:
            Context string with one titled section per source
        """
        return "\n\n---\n\n".join(f"[{source.title}]:\n{source.content}" for source in sources)

    @classmethod
    def build_system_message(cls, sources: List[DocumentSource]) -> str:
        """
        Build the system instruction for answer generation.

        Args:
            sources: Retrieved documents, most relevant first

        Returns:
            System message including the documentation context
        """
        context = cls.build_context(sources) or cls.NO_CONTEXT

        return f"""You are Dynamic Documentation Helper, a real-time AI documentation assistant.

RULES:
- Answer ONLY based on the provided documentation context
- If information is not in the context, say "{cls.NOT_AVAILABLE}"
- Be precise, clear, and developer-friendly
- Use structured formatting with headings when helpful
- Never hallucinate or make assumptions
- Always cite which document the information comes from

CONTEXT FROM DOCUMENTATION:
{context}"""


class FallbackAnswer:
    """Deterministic answer used when no generation provider is available."""

    EXCERPT_LENGTH = 500

    @classmethod
    def build(cls, question: str, sources: List[DocumentSource]) -> str:
        """
        Build a templated answer from the retrieved sources.

        Args:
            question: User's question
            sources: Retrieved documents, most relevant first

        Returns:
            Answer text that only depends on the question and the sources
        """
        if not sources:
            return f"""Based on my analysis of the current documentation, I could not find specific information about "{question}".

This could mean:
1. The relevant documentation hasn't been uploaded yet
2. The topic might be covered under different terminology
3. This information is not available in the current documentation

**Suggestion:** Try uploading relevant documents or rephrase your question."""

        top_content = sources[0].content
        excerpt = top_content[: cls.EXCERPT_LENGTH]
        if len(top_content) > cls.EXCERPT_LENGTH:
            excerpt += "..."

        source_names = ", ".join(source.title for source in sources)
        references = "\n".join(
            f"{i}. {source.title} (Relevance: {source.relevance_score * 100:.1f}%)"
            for i, source in enumerate(sources, 1)
        )

        return f"""Based on the latest documentation analysis from **{source_names}**:

{excerpt}

Your query "{question}" has been matched against {len(sources)} relevant document(s).

**Sources Referenced:**
{references}

*This response is grounded in your live documentation.*"""
