"""
Base classes for embedding providers.

Embedding backends sit behind this interface so the index can be wired
to any provider that returns fixed-length float vectors.
"""

from abc import ABC, abstractmethod
from typing import List


class EmbeddingProvider(ABC):
    """
    Abstract base class for embedding providers.

    Implementations must provide batch embedding functionality
    for efficient API usage.
    """

    @abstractmethod
    async def batch_embed(self, texts: List[str]) -> List[List[float]]:
        """
        Generate embeddings for multiple texts in a single API call.

        Args:
            texts: List of text strings to embed

        Returns:
            List of embedding vectors in the same order as input texts

        Raises:
            EmbeddingError: If the embedding API fails
        """
        pass

    @abstractmethod
    def get_embedding_dimension(self) -> int:
        """Dimension of vectors produced by this provider."""
        pass

    @abstractmethod
    def get_model_name(self) -> str:
        pass


class EmbeddingError(Exception):
    """Exception raised when embedding generation fails."""
    pass
