"""
Text/embedding collaborator for semgraph.

The extraction model is a black box with a JSON-in/JSON-out contract:
chat_json() returns decoded JSON (untrusted, validated by callers) and
embed_texts() returns vectors aligned to the input order. Any transport,
quota or decoding failure surfaces as CollaboratorError.

Usage:
    service = get_ai_service()
    raw = await service.chat_json(system, user, temperature=0.05)
    vectors = await service.embed_texts(["a claim", "a definition"])
"""

import json
import logging
import re
import threading
from typing import Any, Optional

from semgraph.config import config

logger = logging.getLogger(__name__)


class CollaboratorError(RuntimeError):
    """Network/timeout/quota/configuration failure of an external collaborator."""


def decode_json_text(text: Optional[str]) -> Any:
    """
    Decode a model's JSON reply.

    Tolerates a fenced code block around the object, nothing else.
    """
    if not text or not text.strip():
        raise CollaboratorError("Model returned an empty response")

    body = text.strip()
    fenced = re.match(r"^```(?:json)?\s*([\s\S]*?)\s*```$", body)
    if fenced:
        body = fenced.group(1)

    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise CollaboratorError(f"Model returned invalid JSON: {e}") from e


class AIService:
    """Base class for text/embedding collaborators."""

    name = "base"

    async def chat_json(
        self,
        system: str,
        user: str,
        temperature: float,
        model: Optional[str] = None,
    ) -> Any:
        raise NotImplementedError

    async def embed_texts(
        self,
        texts: list[str],
        model: Optional[str] = None,
    ) -> list[list[float]]:
        raise NotImplementedError


class GeminiService(AIService):
    """
    Gemini-backed collaborator (google-genai).

    Uses JSON response mode for extraction and the embed_content API for
    vectors.
    """

    name = "gemini"

    def __init__(
        self,
        model: Optional[str] = None,
        embedding_model: Optional[str] = None,
        api_key: Optional[str] = None,
    ):
        self.model = model or config.GEMINI_MODEL
        self.embedding_model = embedding_model or config.GEMINI_EMBEDDING_MODEL
        self.api_key = api_key or config.GEMINI_API_KEY
        self._client = None

    @property
    def client(self):
        """Lazy load Gemini client."""
        if self._client is None:
            if not self.api_key:
                raise CollaboratorError("GEMINI_API_KEY not configured")

            from google import genai

            self._client = genai.Client(api_key=self.api_key)

        return self._client

    async def chat_json(
        self,
        system: str,
        user: str,
        temperature: float,
        model: Optional[str] = None,
    ) -> Any:
        model = model or self.model
        try:
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=user,
                config={
                    "system_instruction": system,
                    "temperature": temperature,
                    "response_mime_type": "application/json",
                    "max_output_tokens": 8192,
                },
            )
        except CollaboratorError:
            raise
        except Exception as e:
            raise CollaboratorError(f"Gemini request failed ({model}): {e}") from e

        return decode_json_text(response.text)

    async def embed_texts(
        self,
        texts: list[str],
        model: Optional[str] = None,
    ) -> list[list[float]]:
        if not texts:
            return []

        model = model or self.embedding_model
        try:
            response = await self.client.aio.models.embed_content(
                model=model,
                contents=texts,
            )
        except CollaboratorError:
            raise
        except Exception as e:
            raise CollaboratorError(f"Gemini embedding failed ({model}): {e}") from e

        return [list(e.values) for e in response.embeddings]


class OpenAIService(AIService):
    """OpenAI-backed collaborator (chat completions in JSON mode + embeddings)."""

    name = "openai"

    def __init__(
        self,
        model: Optional[str] = None,
        embedding_model: Optional[str] = None,
        api_key: Optional[str] = None,
    ):
        self.model = model or config.OPENAI_MODEL
        self.embedding_model = embedding_model or config.OPENAI_EMBEDDING_MODEL
        self.api_key = api_key or config.OPENAI_API_KEY
        self._client = None

    @property
    def client(self):
        """Lazy load async OpenAI client."""
        if self._client is None:
            if not self.api_key:
                raise CollaboratorError("OPENAI_API_KEY not configured")

            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self.api_key)

        return self._client

    async def chat_json(
        self,
        system: str,
        user: str,
        temperature: float,
        model: Optional[str] = None,
    ) -> Any:
        model = model or self.model
        try:
            response = await self.client.chat.completions.create(
                model=model,
                temperature=temperature,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": user},
                ],
            )
        except CollaboratorError:
            raise
        except Exception as e:
            raise CollaboratorError(f"OpenAI request failed ({model}): {e}") from e

        return decode_json_text(response.choices[0].message.content)

    async def embed_texts(
        self,
        texts: list[str],
        model: Optional[str] = None,
    ) -> list[list[float]]:
        if not texts:
            return []

        model = model or self.embedding_model
        try:
            response = await self.client.embeddings.create(input=texts, model=model)
        except CollaboratorError:
            raise
        except Exception as e:
            raise CollaboratorError(f"OpenAI embedding failed ({model}): {e}") from e

        # Sort by index to maintain order
        vectors: list[list[float]] = [[] for _ in texts]
        for item in response.data:
            vectors[item.index] = list(item.embedding)
        return vectors


# Global service instance
_service: Optional[AIService] = None
_service_lock = threading.Lock()


def build_ai_service(provider: Optional[str] = None) -> AIService:
    """Construct a collaborator for the given provider name."""
    provider = (provider or config.SG_PROVIDER).lower()
    if provider == "gemini":
        return GeminiService()
    if provider == "openai":
        return OpenAIService()
    raise CollaboratorError(f"Unknown SG provider: {provider}")


def get_ai_service() -> AIService:
    """Get or create the global collaborator selected by SG_PROVIDER."""
    global _service

    if _service is None:
        with _service_lock:
            if _service is None:
                _service = build_ai_service()
                logger.info(f"SG collaborator initialized: {_service.name}")

    return _service
