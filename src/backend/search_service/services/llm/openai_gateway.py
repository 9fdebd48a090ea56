"""
OpenAI Generation Gateway Client

Same contract as the platform gateway, served by the OpenAI API directly.
Selected with LLM_PROVIDER=openai.
"""

import logging
import os
from typing import Dict, List, Optional

from langsmith import traceable
from openai import AsyncOpenAI, OpenAIError

from ..config.configuration_service import ConfigurationService
from ..search.errors import GatewayError
from .base import Completion, GenerationGateway

logger = logging.getLogger(__name__)


class OpenAIGatewayClient(GenerationGateway):
    """Generation gateway client backed by AsyncOpenAI"""

    def __init__(
        self,
        config_service: Optional[ConfigurationService] = None,
        openai_client: Optional[AsyncOpenAI] = None
    ):
        super().__init__(config_service)
        if openai_client:
            self.client = openai_client
        else:
            self.client = AsyncOpenAI(api_key=os.getenv("OPENAI_API_KEY"))

        logger.info("OpenAIGatewayClient initialized")

    @traceable(name="openai_embed", run_type="embedding")
    async def embed(self, texts: List[str], model: Optional[str] = None) -> List[List[float]]:
        model = model or self.config_service.get_llm_config("embedding").get("model")
        try:
            response = await self.client.embeddings.create(model=model, input=texts)
        except OpenAIError as e:
            logger.error(f"Failed to generate embeddings: {e}")
            raise GatewayError(
                f"Failed to generate embeddings: {e}",
                details={"text_count": len(texts), "model": model}
            ) from e

        ordered = sorted(response.data, key=lambda item: item.index)
        return [item.embedding for item in ordered]

    @traceable(name="openai_complete", run_type="llm")
    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> Completion:
        defaults = self.config_service.get_llm_config("rag_answer")
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self.client.chat.completions.create(
                model=model or defaults.get("model", "gpt-4"),
                messages=messages,
                temperature=temperature if temperature is not None else defaults.get("temperature", 0.3),
                max_tokens=max_tokens or defaults.get("max_tokens", 1000)
            )
        except OpenAIError as e:
            logger.error(f"Failed to generate completion: {e}")
            raise GatewayError(
                f"Failed to generate completion: {e}",
                details={"prompt_length": len(prompt)}
            ) from e

        usage = {}
        if response.usage is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return Completion(text=response.choices[0].message.content or "", usage=usage)

    async def health_check(self) -> bool:
        try:
            await self.client.models.list()
            return True
        except OpenAIError as e:
            logger.error(f"OpenAI health check failed: {e}")
            return False

    async def get_available_models(self) -> Dict[str, List[str]]:
        try:
            page = await self.client.models.list()
        except OpenAIError as e:
            logger.error(f"Failed to get available models: {e}")
            return await super().get_available_models()

        model_ids = [m.id for m in page.data]
        return {
            "embedding": [m for m in model_ids if "embedding" in m],
            "completion": [m for m in model_ids if "embedding" not in m],
        }

    async def close(self) -> None:
        await self.client.close()
