"""DocuQuery: document indexing and retrieval-augmented question answering."""

__version__ = "1.0.0"
