"""Text embedding client for repository file vectors."""
import hashlib
import logging

from repochat.config import settings
from repochat.exceptions import ProviderError

logger = logging.getLogger(__name__)

# Provider input cap (characters); truncated content is already well below it
MAX_INPUT_CHARS = 8000


class EmbeddingService:
    """Generate text embeddings.

    Uses OpenAI's text-embedding-3-small by default. Without an API key a
    deterministic hash-based vector is returned so local runs and tests work
    offline.
    """

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        dimension: int | None = None,
    ):
        self.model = model or settings.EMBEDDING_MODEL
        self.api_key = settings.OPENAI_API_KEY if api_key is None else api_key
        self.dimension = dimension or settings.EMBEDDING_DIMENSION

    async def embed(self, text: str) -> list[float]:
        """Embed a single text. Raises ProviderError on transport or quota failure."""
        if self.api_key:
            return (await self._embed_openai([text]))[0]
        return self._mock_embed(text)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        if self.api_key:
            return await self._embed_openai(texts)
        return [self._mock_embed(t) for t in texts]

    async def _embed_openai(self, texts: list[str]) -> list[list[float]]:
        import openai

        client = openai.AsyncOpenAI(api_key=self.api_key)
        try:
            response = await client.embeddings.create(
                model=self.model,
                input=[t[:MAX_INPUT_CHARS] for t in texts],
            )
        except openai.OpenAIError as exc:
            logger.warning("Embedding request failed (%s): %s", self.model, exc)
            raise ProviderError(f"Embedding provider error: {exc}") from exc
        finally:
            await client.close()
        return [item.embedding for item in response.data]

    def _mock_embed(self, text: str) -> list[float]:
        """Deterministic vector derived from the SHA-256 of the text."""
        digest = hashlib.sha256(text.encode()).hexdigest()
        # h / 15 - 0.5 is never 0 for a hex digit h, so the vector always has magnitude
        return [int(digest[i % len(digest)], 16) / 15.0 - 0.5 for i in range(self.dimension)]
