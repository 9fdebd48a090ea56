"""
Generation Gateway Package

Clients for the text-generation / embedding gateway consumed by the search
pipeline. create_gateway() picks the implementation from llm_config.json
(overridable with LLM_PROVIDER).
"""

import logging
from typing import Optional

from ..config.configuration_service import ConfigurationService, get_config_service
from .base import Completion, GenerationGateway
from .http_gateway import HTTPGatewayClient
from .openai_gateway import OpenAIGatewayClient

logger = logging.getLogger(__name__)


def create_gateway(config_service: Optional[ConfigurationService] = None) -> GenerationGateway:
    """
    Create the configured generation gateway client.

    Args:
        config_service: Configuration source (defaults to the global service)

    Returns:
        HTTPGatewayClient or OpenAIGatewayClient
    """
    config_service = config_service or get_config_service()
    provider = config_service.get_gateway_config().get("provider", "http").lower()

    if provider == "openai":
        return OpenAIGatewayClient(config_service)
    if provider != "http":
        logger.warning(f"Unknown LLM provider '{provider}', using HTTP gateway")
    return HTTPGatewayClient(config_service)


__all__ = [
    "Completion",
    "GenerationGateway",
    "HTTPGatewayClient",
    "OpenAIGatewayClient",
    "create_gateway",
]
