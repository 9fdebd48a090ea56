"""
Base Search Strategy Interface

Defines the abstract interface for all content search strategies.
Strategies can be keyword (full-text), semantic (vector similarity),
RAG (generated answer) or any future implementation.
"""

import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from ....models.search import ContentType, ProcessedQuery, SearchResult

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")


class SearchStrategy(ABC):
    """
    Abstract base class for all search strategies.

    Each strategy implements a different approach to searching content:
    - RAGSearchStrategy: generated answer grounded in retrieved passages
    - SemanticSearchStrategy: embedding similarity over the vector store
    - KeywordSearchStrategy: full-text relevance search over the index service

    Strategies are shared across concurrent requests and hold no per-request
    state. can_handle() must be free of side effects.
    """

    name: str = "base"
    default_priority: int = 0

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize strategy with configuration.

        Args:
            config: Strategy-specific configuration from search_config.json
        """
        self.config = config or {}
        self.enabled = self.config.get("enabled", True)
        self.priority = int(self.config.get("priority", self.default_priority))
        self.timeout_seconds: Optional[float] = self.config.get("timeout_seconds")

    @abstractmethod
    def can_handle(self, query: ProcessedQuery) -> bool:
        """
        Check whether this strategy applies to the query.

        Args:
            query: Processed query

        Returns:
            True if the strategy should be selected for this query
        """
        pass

    @abstractmethod
    async def search(self, query: ProcessedQuery) -> List[SearchResult]:
        """
        Execute search using this strategy.

        Args:
            query: Processed query

        Returns:
            Results with scores in [0, 1]
        """
        pass

    def is_enabled(self) -> bool:
        return self.enabled

    def get_priority(self) -> int:
        return self.priority

    def get_name(self) -> str:
        """
        Get the name of this strategy.

        Returns:
            Strategy name (e.g., "keyword", "semantic", "rag")
        """
        return self.name


def map_content_type(raw_type: Optional[str]) -> ContentType:
    """Map a backend content type string onto ContentType (unknown -> content)"""
    if not raw_type:
        return ContentType.CONTENT
    try:
        return ContentType(raw_type.lower())
    except ValueError:
        return ContentType.CONTENT


def extract_title(text: str, metadata: Dict[str, Any], max_length: int = 100) -> str:
    """Title from metadata, else the first sentence of the text"""
    title = metadata.get("title")
    if title:
        return str(title)

    first_sentence = _SENTENCE_SPLIT_RE.split(text.strip(), maxsplit=1)[0] if text else ""
    if len(first_sentence) > max_length:
        return first_sentence[:max_length - 3].rstrip() + "..."
    return first_sentence or "Untitled"


def parse_datetime(value: Any) -> Optional[datetime]:
    """ISO-8601 string (or datetime) to datetime; None if unparseable"""
    if value is None or isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def truncate(text: str, max_length: int = 200) -> str:
    if len(text) <= max_length:
        return text
    return text[:max_length - 3].rstrip() + "..."


def build_highlights(
    text: str,
    tokens: List[str],
    max_highlights: int = 3,
    pre_tag: str = "<em>",
    post_tag: str = "</em>"
) -> List[str]:
    """
    Pick sentences that contain query tokens and wrap the matches.

    Tokens are stems, so matching is by word prefix ("photosynthes" matches
    "photosynthesis").
    """
    if not text or not tokens:
        return []

    pattern = re.compile(
        r"\b(" + "|".join(re.escape(t) for t in tokens) + r")\w*",
        re.IGNORECASE
    )

    highlights = []
    for sentence in _SENTENCE_SPLIT_RE.split(text):
        sentence = sentence.strip()
        if sentence and pattern.search(sentence):
            highlights.append(pattern.sub(lambda m: f"{pre_tag}{m.group(0)}{post_tag}", sentence))
        if len(highlights) >= max_highlights:
            break

    return highlights


def build_content_url(content_id: str, content_type: ContentType, metadata: Dict[str, Any]) -> str:
    """Platform URL for a piece of content"""
    course_id = metadata.get("course_id")
    module_id = metadata.get("module_id")

    if content_type == ContentType.COURSE:
        return f"/courses/{content_id}"
    if content_type == ContentType.MODULE and course_id:
        return f"/courses/{course_id}/modules/{content_id}"
    if course_id and module_id:
        return f"/courses/{course_id}/modules/{module_id}/content/{content_id}"
    if course_id:
        return f"/courses/{course_id}/{content_type.value}s/{content_id}"
    return f"/content/{content_id}"
