"""
HTTP Generation Gateway Client

Talks to the platform LLM gateway:
- POST /api/v1/embeddings   {texts, model} -> {embeddings, usage}
- POST /api/v1/completions  {prompt, model, temperature, maxTokens, systemPrompt} -> {text, confidence, usage}
- GET  /api/v1/models       -> {embedding: [...], completion: [...]}
- GET  /health
"""

import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from langsmith import traceable

from ..config.configuration_service import ConfigurationService
from ..search.errors import GatewayError
from .base import Completion, GenerationGateway

logger = logging.getLogger(__name__)

USER_AGENT = "search-service/2.0.0"


class HTTPGatewayClient(GenerationGateway):
    """Generation gateway client over HTTP (httpx)"""

    def __init__(
        self,
        config_service: Optional[ConfigurationService] = None,
        http_client: Optional[httpx.AsyncClient] = None
    ):
        super().__init__(config_service)
        gateway_config = self.config_service.get_gateway_config()
        self.base_url = gateway_config["url"].rstrip("/")
        self.timeout = gateway_config.get("timeout_seconds", 30)
        self.health_timeout = gateway_config.get("health_timeout_seconds", 5)
        self._http = http_client

        logger.info(f"HTTPGatewayClient initialized (url: {self.base_url})")

    def _get_client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Content-Type": "application/json", "User-Agent": USER_AGENT}
            )
        return self._http

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        start_time = time.time()
        try:
            resp = await self._get_client().post(
                f"{self.base_url}{path}",
                json=payload,
                timeout=self.timeout
            )
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"LLM gateway POST {path} returned {e.response.status_code}")
            raise GatewayError(
                f"LLM gateway request failed: {e.response.status_code}",
                details={"path": path, "status_code": e.response.status_code}
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"LLM gateway POST {path} failed: {e}")
            raise GatewayError(
                f"LLM gateway request failed: {e}",
                details={"path": path}
            ) from e

        logger.debug(f"LLM gateway POST {path} took {(time.time() - start_time) * 1000:.0f}ms")
        return data

    @traceable(name="gateway_embed", run_type="embedding")
    async def embed(self, texts: List[str], model: Optional[str] = None) -> List[List[float]]:
        model = model or self.config_service.get_llm_config("embedding").get("model")
        data = await self._post("/api/v1/embeddings", {"texts": texts, "model": model})

        embeddings = data.get("embeddings")
        if not isinstance(embeddings, list) or len(embeddings) != len(texts):
            raise GatewayError(
                "LLM gateway returned malformed embeddings",
                details={"expected": len(texts)}
            )

        logger.info(f"Generated {len(embeddings)} embeddings (model: {model})")
        return embeddings

    @traceable(name="gateway_complete", run_type="llm")
    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> Completion:
        defaults = self.config_service.get_llm_config("rag_answer")
        payload = {
            "prompt": prompt,
            "model": model or defaults.get("model"),
            "temperature": temperature if temperature is not None else defaults.get("temperature"),
            "maxTokens": max_tokens or defaults.get("max_tokens"),
            "systemPrompt": system_prompt,
        }
        data = await self._post("/api/v1/completions", payload)

        if "text" not in data:
            raise GatewayError("LLM gateway returned no completion text")

        return Completion(
            text=data["text"],
            confidence=data.get("confidence"),
            usage=data.get("usage") or {}
        )

    async def health_check(self) -> bool:
        try:
            resp = await self._get_client().get(f"{self.base_url}/health", timeout=self.health_timeout)
            return resp.status_code == 200
        except httpx.HTTPError as e:
            logger.error(f"LLM gateway health check failed: {e}")
            return False

    async def get_available_models(self) -> Dict[str, List[str]]:
        defaults = {
            "embedding": [self.config_service.get_llm_config("embedding").get("model")],
            "completion": [self.config_service.get_llm_config("rag_answer").get("model")],
        }
        try:
            resp = await self._get_client().get(f"{self.base_url}/api/v1/models")
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Failed to get available models: {e}")
            return defaults

        return {
            "embedding": data.get("embedding") or defaults["embedding"],
            "completion": data.get("completion") or defaults["completion"],
        }

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None
