import hashlib
from typing import List, Optional, Protocol

from openai import OpenAI, OpenAIError

from castmind.config import Settings
from castmind.errors import ConfigurationError
from castmind.logging import logger

EMBEDDING_MODEL = "text-embedding-3-small"

def compute_text_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class Embedder(Protocol):
    """Anything that turns a batch of texts into vectors, in input order."""
    model: str

    def embed(self, texts: List[str]) -> List[List[float]]:
        ...


class OpenAIEmbedder:
    def __init__(self, api_key: Optional[str] = None, model: str = EMBEDDING_MODEL, client: Optional[OpenAI] = None):
        self.model = model
        self._client = client or OpenAI(api_key=api_key)

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenAIEmbedder":
        api_key = settings.OPENAI_API_KEY.get_secret_value() if settings.OPENAI_API_KEY else None
        if not api_key:
            raise ConfigurationError("OPENAI_API_KEY not found in environment variables")
        return cls(api_key=api_key, model=settings.OPENAI_EMBEDDING_MODEL)

    def embed(self, texts: List[str]) -> List[List[float]]:
        """Batch call to OpenAI Embeddings API."""
        if not texts:
            return []
        try:
            response = self._client.embeddings.create(
                input=texts,
                model=self.model
            )
        except OpenAIError as e:
            logger.error(f"OpenAI Embedding API failed: {e}")
            raise
        # Ensure order is preserved
        data = sorted(response.data, key=lambda d: d.index)
        return [d.embedding for d in data]

    def embed_one(self, text: str) -> List[float]:
        """Get embedding for a single query string."""
        return self.embed([text])[0]
