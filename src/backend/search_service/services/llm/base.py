"""
Generation Gateway Interface

Abstract client for the text-generation / embedding gateway used by the
search pipeline. Implementations provide the transport (embed, complete,
health_check); query expansion, RAG answers and follow-up questions are
built on top of complete() here so every transport behaves the same.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from ...models.search import RAGResponse, RAGSource, SearchContext
from ..config.configuration_service import ConfigurationService, get_config_service
from ..search.similarity import cosine_similarity

logger = logging.getLogger(__name__)

MAX_EXPANSIONS = 5
MAX_FOLLOW_UP_QUESTIONS = 3
DEFAULT_RAG_CONFIDENCE = 0.8
FOLLOW_UP_ANSWER_CHARS = 500

_NUMBERING_RE = re.compile(r"^\d+[.)]\s*")
_BULLET_RE = re.compile(r"^[-*]\s*")


class Completion(BaseModel):
    """Text completion returned by the gateway"""
    text: str
    confidence: Optional[float] = None
    usage: Dict[str, Any] = Field(default_factory=dict)


def _strip_list_marker(line: str) -> str:
    line = _NUMBERING_RE.sub("", line.strip())
    return _BULLET_RE.sub("", line).strip()


class GenerationGateway(ABC):
    """
    Abstract base class for generation gateway clients.

    Implementations:
    - HTTPGatewayClient: platform LLM gateway over HTTP
    - OpenAIGatewayClient: OpenAI API directly
    """

    def __init__(self, config_service: Optional[ConfigurationService] = None):
        self.config_service = config_service or get_config_service()

    @abstractmethod
    async def embed(self, texts: List[str], model: Optional[str] = None) -> List[List[float]]:
        """
        Generate embeddings for a batch of texts.

        Args:
            texts: Texts to embed
            model: Embedding model (defaults to the configured embedding model)

        Returns:
            One vector per input text, in input order

        Raises:
            GatewayError: If the gateway call fails
        """
        pass

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> Completion:
        """
        Generate a text completion.

        Raises:
            GatewayError: If the gateway call fails
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Return True when the gateway answers its health probe"""
        pass

    async def get_available_models(self) -> Dict[str, List[str]]:
        """List models offered by the gateway, by kind ("embedding", "completion")"""
        return {"embedding": [], "completion": []}

    async def close(self) -> None:
        """Release transport resources"""
        return None

    async def embed_one(self, text: str, model: Optional[str] = None) -> List[float]:
        """Embed a single text"""
        vectors = await self.embed([text], model=model)
        return vectors[0]

    @staticmethod
    def calculate_cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
        return cosine_similarity(a, b)

    async def expand_query(
        self,
        query: str,
        context: Optional[SearchContext] = None
    ) -> List[str]:
        """
        Ask the model for 3-5 alternative phrasings of a query.

        Args:
            query: Query text to expand
            context: Optional course id / previous queries used to scope the phrasings

        Returns:
            Up to 5 alternative phrasings; [query] if the gateway call fails
        """
        context_lines = []
        if context and context.course_id:
            context_lines.append(f"Course: {context.course_id}")
        if context and context.previous_queries:
            context_lines.append(f"Previous related queries: {', '.join(context.previous_queries)}")

        llm_config = self.config_service.get_llm_config("query_expansion")
        prompt = self.config_service.get_prompt("query_expansion").format(
            query=query,
            context="\n".join(context_lines)
        )

        try:
            completion = await self.complete(
                prompt,
                system_prompt=self.config_service.get_prompt("query_expansion_system"),
                model=llm_config.get("model"),
                temperature=llm_config.get("temperature", 0.5),
                max_tokens=llm_config.get("max_tokens", 200)
            )
        except Exception as e:
            logger.warning(f"Query expansion failed for '{query[:100]}': {e}")
            return [query]

        alternatives = [
            _strip_list_marker(line)
            for line in completion.text.splitlines()
            if len(line.strip()) > 2
        ]
        return [a for a in alternatives if a][:MAX_EXPANSIONS]

    async def generate_rag_answer(
        self,
        question: str,
        contexts: List[RAGSource],
        model: Optional[str] = None
    ) -> RAGResponse:
        """
        Generate an answer grounded in retrieved passages.

        Args:
            question: The user's question
            contexts: Retrieved passages, most relevant first
            model: Override for the configured answer model

        Returns:
            RAGResponse with answer, confidence, reasoning and follow-up questions

        Raises:
            GatewayError: If the answer completion fails
        """
        llm_config = self.config_service.get_llm_config("rag_answer")
        model = model or llm_config.get("model")

        context_text = "\n\n".join(
            f"[{i + 1}] {ctx.text}" for i, ctx in enumerate(contexts)
        )
        prompt = self.config_service.get_prompt("rag_answer").format(
            context=context_text,
            question=question
        )

        try:
            completion = await self.complete(
                prompt,
                system_prompt=self.config_service.get_prompt("rag_system"),
                model=model,
                temperature=llm_config.get("temperature", 0.3),
                max_tokens=llm_config.get("max_tokens", 1000)
            )
        except Exception:
            logger.error(
                f"Failed to generate RAG answer ({len(contexts)} contexts, model={model})",
                exc_info=True
            )
            raise

        follow_ups = await self.generate_follow_up_questions(question, completion.text)

        return RAGResponse(
            answer=completion.text,
            confidence=completion.confidence if completion.confidence is not None else DEFAULT_RAG_CONFIDENCE,
            reasoning=f"Generated using {len(contexts)} context sources",
            follow_up_questions=follow_ups,
            sources=contexts,
            model=model
        )

    async def generate_follow_up_questions(self, question: str, answer: str) -> List[str]:
        """
        Suggest follow-up questions for a question/answer pair.

        Returns:
            Up to 3 questions; [] if the gateway call fails
        """
        llm_config = self.config_service.get_llm_config("follow_up_questions")
        prompt = self.config_service.get_prompt("follow_up_questions").format(
            question=question,
            answer=answer[:FOLLOW_UP_ANSWER_CHARS]
        )

        try:
            completion = await self.complete(
                prompt,
                system_prompt=self.config_service.get_prompt("follow_up_system"),
                model=llm_config.get("model"),
                temperature=llm_config.get("temperature", 0.7),
                max_tokens=llm_config.get("max_tokens", 200)
            )
        except Exception as e:
            logger.warning(f"Follow-up question generation failed: {e}")
            return []

        questions = [
            _strip_list_marker(line)
            for line in completion.text.splitlines()
            if "?" in line and len(line.strip()) > 10
        ]
        return questions[:MAX_FOLLOW_UP_QUESTIONS]
