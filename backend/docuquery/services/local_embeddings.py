"""Local embedding provider using Sentence Transformers."""
import asyncio
import os
import threading
from typing import List, Optional

from sentence_transformers import SentenceTransformer

from docuquery.exceptions import ProviderUnavailableError
from docuquery.models.document import EmbeddingResult
from docuquery.services.embedding_service import EmbeddingProvider, approximate_token_count
from docuquery.utils.logger import logger


class SentenceTransformerEmbeddingProvider(EmbeddingProvider):
    """Embeds text with a locally loaded Sentence Transformers model."""

    name = "sentence-transformers"

    def __init__(self, model_name: str = "sentence-transformers/all-MiniLM-L6-v2", device: str = "cpu"):
        """
        Initialize the provider (model loaded lazily on first use).

        Args:
            model_name: Name or local path of the sentence transformer model
            device: Torch device to run the model on
        """
        self.model_name = model_name
        self.device = device
        self._model: Optional[SentenceTransformer] = None
        self._lock = threading.Lock()
        logger.info(f"SentenceTransformerEmbeddingProvider initialized (model {model_name} loads on first use)")

    def _load_model(self) -> SentenceTransformer:
        """Load the model (thread-safe lazy loading)."""
        if self._model is None:
            with self._lock:
                if self._model is None:
                    # A pre-downloaded model wins over a hub download
                    local_model_path = os.getenv("EMBEDDING_MODEL_PATH")
                    if local_model_path and os.path.isdir(local_model_path):
                        logger.info(f"Loading embedding model from local path: {local_model_path}")
                        self._model = SentenceTransformer(local_model_path, device=self.device)
                    else:
                        logger.info(f"Loading embedding model: {self.model_name}")
                        self._model = SentenceTransformer(self.model_name, device=self.device)
        return self._model

    def generate_embedding(self, text: str) -> List[float]:
        embedding = self._load_model().encode(
            [text],
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=False,
        )
        return [float(x) for x in embedding[0]]

    async def embed(self, text: str) -> EmbeddingResult:
        try:
            embedding = await asyncio.to_thread(self.generate_embedding, text)
        except Exception as e:
            raise ProviderUnavailableError(self.name, str(e)) from e
        return EmbeddingResult(embedding=embedding, token_count=approximate_token_count(text))
