"""
Query Processor

Turns a raw SearchRequest into an immutable ProcessedQuery:
1. Validate length against configured limits
2. Clean (trim, collapse whitespace, strip unsafe characters, lowercase);
   a query with nothing left after cleaning is rejected
3. Tokenize (stop word removal, Porter stemming, drop 1-char tokens)
4. Optionally expand through the generation gateway (never for RAG)
5. Resolve options against configured defaults
"""

import logging
import re
import uuid
from typing import List, Optional

from nltk.stem import PorterStemmer

from ...models.search import ProcessedQuery, SearchContext, SearchRequest, SearchType
from ..config.configuration_service import ConfigurationService, get_config_service
from ..llm.base import GenerationGateway
from .errors import QueryProcessingError

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 1000

# English stop words removed before stemming
STOP_WORDS = {
    'a', 'about', 'above', 'after', 'again', 'against', 'all', 'am', 'an', 'and',
    'any', 'are', 'as', 'at', 'be', 'because', 'been', 'before', 'being', 'below',
    'between', 'both', 'but', 'by', 'can', 'could', 'did', 'do', 'does', 'doing',
    'down', 'during', 'each', 'few', 'for', 'from', 'further', 'had', 'has', 'have',
    'having', 'he', 'her', 'here', 'hers', 'herself', 'him', 'himself', 'his', 'how',
    'i', 'if', 'in', 'into', 'is', 'it', 'its', 'itself', 'just', 'me', 'more',
    'most', 'my', 'myself', 'no', 'nor', 'not', 'now', 'of', 'off', 'on', 'once',
    'only', 'or', 'other', 'our', 'ours', 'ourselves', 'out', 'over', 'own', 'same',
    'she', 'should', 'so', 'some', 'such', 'than', 'that', 'the', 'their', 'theirs',
    'them', 'themselves', 'then', 'there', 'these', 'they', 'this', 'those',
    'through', 'to', 'too', 'under', 'until', 'up', 'very', 'was', 'we', 'were',
    'what', 'when', 'where', 'which', 'while', 'who', 'whom', 'why', 'will', 'with',
    'would', 'you', 'your', 'yours', 'yourself', 'yourselves'
}

_WHITESPACE_RE = re.compile(r"\s+")
_UNSAFE_CHARS_RE = re.compile(r"[^\w\s\-'\"]")


class QueryProcessor:
    """
    Validates, normalizes and expands incoming queries.

    Stateless apart from its collaborators, so one instance serves all requests.
    """

    def __init__(
        self,
        gateway: Optional[GenerationGateway] = None,
        config_service: Optional[ConfigurationService] = None
    ):
        """
        Initialize query processor.

        Args:
            gateway: Generation gateway used for query expansion (expansion is skipped if None)
            config_service: Configuration source (defaults to the global service)
        """
        self.gateway = gateway
        self.config_service = config_service or get_config_service()
        self.stemmer = PorterStemmer()

    async def process(self, request: SearchRequest, search_id: Optional[str] = None) -> ProcessedQuery:
        """
        Process a search request.

        Args:
            request: Raw caller input
            search_id: Identifier to carry through the pipeline (generated if None)

        Returns:
            ProcessedQuery ready for strategy dispatch

        Raises:
            QueryProcessingError: Query too short/long or processing failed
        """
        self.validate(request.query)

        try:
            cleaned = self.clean_query(request.query)
            if not cleaned:
                raise QueryProcessingError(
                    "Query contains no searchable characters.",
                    details={"query": request.query}
                )
            tokens = self.tokenize(cleaned)
            context = request.context or SearchContext()

            expanded = cleaned
            if self._should_expand(request.type):
                expanded = await self._expand(cleaned, context)

            return ProcessedQuery(
                original_query=request.query,
                cleaned_query=cleaned,
                expanded_query=expanded,
                tokens=tokens,
                strategy=request.type,
                filters=dict(request.filters or {}),
                options=self._resolve_options(request),
                context=context,
                search_id=search_id or str(uuid.uuid4())
            )
        except QueryProcessingError:
            raise
        except Exception as e:
            raise QueryProcessingError(
                f"Query processing failed: {e}",
                details={"query": request.query}
            ) from e

    def validate(self, query: str) -> None:
        """Reject queries outside [min_query_length, 1000] characters"""
        min_length = self.config_service.get_limits()["min_query_length"]

        if len(query) < min_length:
            raise QueryProcessingError(
                f"Query too short. Minimum length is {min_length} characters."
            )
        if len(query) > MAX_QUERY_LENGTH:
            raise QueryProcessingError(
                f"Query too long. Maximum length is {MAX_QUERY_LENGTH} characters."
            )

    @staticmethod
    def clean_query(query: str) -> str:
        """
        Normalize query text.

        Examples:
            >>> QueryProcessor.clean_query("  What is   Photosynthesis?! ")
            'what is photosynthesis'
        """
        cleaned = _WHITESPACE_RE.sub(" ", query.strip())
        cleaned = _UNSAFE_CHARS_RE.sub("", cleaned)
        return cleaned.lower()

    def tokenize(self, cleaned_query: str) -> List[str]:
        """Split, drop stop words, stem, then drop tokens of length <= 1"""
        words = [w for w in cleaned_query.split() if w]
        words = [w for w in words if w not in STOP_WORDS]
        stems = [self.stemmer.stem(w) for w in words]
        return [t for t in stems if len(t) > 1]

    def _should_expand(self, search_type: SearchType) -> bool:
        if self.gateway is None or search_type == SearchType.RAG:
            return False
        return self.config_service.is_feature_enabled("query_expansion")

    async def _expand(self, cleaned: str, context: SearchContext) -> str:
        try:
            phrasings = await self.gateway.expand_query(cleaned, context)
        except Exception as e:
            logger.warning(f"Query expansion failed, using original query: {e}")
            return cleaned

        if len(phrasings) > 1:
            expanded = " ".join(phrasings)
            logger.info(f"Query expanded: '{cleaned}' -> '{expanded}'")
            return expanded
        return cleaned

    def _resolve_options(self, request: SearchRequest):
        limits = self.config_service.get_limits()
        options = request.options
        limit = options.limit or limits["default_limit"]
        return options.model_copy(update={"limit": min(limit, limits["max_limit"])})
