"""
Configuration Service
Centralized configuration management with caching and environment overrides
"""

import json
import os
from functools import lru_cache
from typing import Dict, Any, Optional
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_LIMITS = {
    "min_query_length": 2,
    "max_query_length": 1000,
    "default_limit": 20,
    "max_limit": 100
}

DEFAULT_LLM_CONFIG = {
    "model": "gpt-4",
    "temperature": 0.3,
    "max_tokens": 1000
}


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() == "true"


class ConfigurationService:
    """
    Centralized service for loading and caching search configurations

    Loads configurations from JSON files in the config directory with:
    - LRU caching for performance
    - Environment variable overrides for deployment-specific values
    - Hot-reload capability

    Getters return copies, so callers may add defaults without touching the
    cached configuration.
    """

    def __init__(self, config_dir: Optional[str] = None):
        """
        Initialize ConfigurationService

        Args:
            config_dir: Path to configuration directory. If None, uses default search_service/config
        """
        if config_dir is None:
            self.config_dir = Path(__file__).parent.parent.parent / "config"
        else:
            self.config_dir = Path(config_dir)

        logger.info(f"ConfigurationService initialized with config_dir: {self.config_dir}")

    @lru_cache(maxsize=32)
    def load_config(self, config_name: str) -> Dict[str, Any]:
        """
        Load configuration from JSON file with caching

        Args:
            config_name: Name of config file (without .json extension)

        Returns:
            Dict containing configuration data

        Raises:
            FileNotFoundError: If config file not found
            json.JSONDecodeError: If config file is invalid JSON
        """
        try:
            config_path = self.config_dir / f"{config_name}.json"

            if not config_path.exists():
                raise FileNotFoundError(f"Config file not found: {config_path}")

            with open(config_path, "r", encoding="utf-8") as f:
                config = json.load(f)

            logger.info(f"Loaded config: {config_name} (version: {config.get('version', 'N/A')})")
            return config

        except FileNotFoundError:
            logger.error(f"Config file not found: {config_name}.json")
            raise
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {config_name}.json: {e}")
            raise

    def reload_config(self, config_name: str) -> Dict[str, Any]:
        """
        Force reload of configuration (clears cache)

        Args:
            config_name: Name of config file to reload

        Returns:
            Freshly loaded configuration
        """
        self.load_config.cache_clear()
        logger.info(f"Cache cleared, reloading config: {config_name}")
        return self.load_config(config_name)

    def get_search_config(self) -> Dict[str, Any]:
        """Get full search configuration"""
        return self.load_config("search_config")

    def _section(self, name: str) -> Dict[str, Any]:
        return dict(self.get_search_config().get(name, {}))

    def get_limits(self) -> Dict[str, Any]:
        """
        Get query and paging limits

        MIN_QUERY_LENGTH overrides the configured minimum query length.
        """
        limits = {**DEFAULT_LIMITS, **self._section("limits")}
        min_length = os.getenv("MIN_QUERY_LENGTH")
        if min_length:
            limits["min_query_length"] = int(min_length)
        return limits

    def get_features(self) -> Dict[str, bool]:
        """Get feature flags (ENABLE_QUERY_EXPANSION overrides query_expansion)"""
        features = self._section("features")
        features["query_expansion"] = _env_flag(
            "ENABLE_QUERY_EXPANSION", features.get("query_expansion", True)
        )
        return features

    def is_feature_enabled(self, feature: str) -> bool:
        return bool(self.get_features().get(feature, False))

    def get_strategies_config(self) -> Dict[str, Dict[str, Any]]:
        """Get per-strategy configuration, skipping description fields"""
        return {
            name: dict(cfg)
            for name, cfg in self.get_search_config().get("strategies", {}).items()
            if isinstance(cfg, dict)
        }

    def get_strategy_config(self, strategy_name: str) -> Dict[str, Any]:
        """
        Get configuration for a single strategy

        Args:
            strategy_name: Strategy key (e.g., "keyword", "semantic", "rag")

        Returns:
            Strategy configuration dict (empty if not configured)
        """
        return self.get_strategies_config().get(strategy_name, {})

    def get_orchestration_config(self) -> Dict[str, Any]:
        return self._section("orchestration")

    def get_fusion_config(self) -> Dict[str, Any]:
        return self._section("fusion")

    def get_suggestions_config(self) -> Dict[str, Any]:
        return self._section("suggestions")

    def get_highlights_config(self) -> Dict[str, Any]:
        return self._section("highlights")

    def get_vector_config(self) -> Dict[str, Any]:
        return self._section("vector")

    def get_rag_config(self) -> Dict[str, Any]:
        return self._section("rag")

    def get_cache_config(self) -> Dict[str, Any]:
        """
        Get search result cache configuration

        CACHE_SEARCH_RESULTS and SEARCH_CACHE_TTL override the file values.
        """
        cache = self._section("cache")
        cache["enabled"] = _env_flag("CACHE_SEARCH_RESULTS", cache.get("enabled", True))
        ttl = os.getenv("SEARCH_CACHE_TTL")
        if ttl:
            cache["search_ttl_seconds"] = int(ttl)
        return cache

    def get_elasticsearch_config(self) -> Dict[str, Any]:
        config = self._section("elasticsearch")
        config["backend"] = os.getenv("KEYWORD_INDEX_BACKEND", config.get("backend", "elasticsearch"))
        config["url"] = os.getenv("ELASTICSEARCH_URL", config.get("url", "http://localhost:9200"))
        return config

    def get_vector_store_config(self) -> Dict[str, Any]:
        config = self._section("vector_store")
        config["backend"] = os.getenv("VECTOR_STORE_BACKEND", config.get("backend", "http"))
        config["url"] = os.getenv("VECTOR_STORE_URL", config.get("url", "http://localhost:3020"))
        return config

    def get_gateway_config(self) -> Dict[str, Any]:
        """
        Get generation gateway settings

        LLM_PROVIDER selects the client ("http" or "openai"),
        LLM_GATEWAY_URL the base URL of the platform gateway.
        """
        config = dict(self.load_config("llm_config").get("gateway", {}))
        config["provider"] = os.getenv("LLM_PROVIDER", config.get("provider", "http"))
        config["url"] = os.getenv("LLM_GATEWAY_URL", config.get("url", "http://localhost:3010"))
        return config

    def get_llm_config(self, purpose: str = "rag_answer") -> Dict[str, Any]:
        """
        Get LLM configuration for specific purpose

        Args:
            purpose: Purpose key (e.g., "embedding", "query_expansion", "rag_answer")

        Returns:
            LLM configuration dict
        """
        config = self.load_config("llm_config")
        models = config.get("models", {})

        if purpose not in models:
            logger.warning(f"LLM config not found for purpose: {purpose}, using defaults")
            return dict(DEFAULT_LLM_CONFIG)

        return dict(models[purpose])

    def get_prompt(self, prompt_key: str) -> str:
        """
        Get LLM prompt by key

        Args:
            prompt_key: Prompt identifier

        Returns:
            Prompt string
        """
        config = self.load_config("llm_prompts")
        prompts = config.get("prompts", {})

        if prompt_key not in prompts:
            logger.error(f"Prompt not found: {prompt_key}")
            raise KeyError(f"Prompt not found: {prompt_key}")

        prompt_data = prompts[prompt_key]

        if isinstance(prompt_data, dict):
            return prompt_data.get("prompt") or prompt_data.get("template", "")
        return str(prompt_data)


# Global singleton instance
_config_service: Optional[ConfigurationService] = None


def get_config_service() -> ConfigurationService:
    """
    Get global ConfigurationService singleton instance

    Returns:
        ConfigurationService instance
    """
    global _config_service
    if _config_service is None:
        _config_service = ConfigurationService()
    return _config_service


def init_config_service(config_dir: Optional[str] = None) -> ConfigurationService:
    """
    Initialize global ConfigurationService with custom config directory

    Args:
        config_dir: Path to configuration directory

    Returns:
        ConfigurationService instance
    """
    global _config_service
    _config_service = ConfigurationService(config_dir)
    logger.info("Global ConfigurationService initialized")
    return _config_service
