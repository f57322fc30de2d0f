"""Agent module for document Q&A over the indexed documentation."""
from docuquery.agent.prompts import AnswerPrompt, FallbackAnswer

__all__ = [
    "AnswerPrompt",
    "FallbackAnswer",
]
