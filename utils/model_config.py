"""
Model configuration for content generation.
Centralized model management following DRY principle.
"""

from typing import Dict, Any, Optional
from enum import Enum


class ModelProvider(str, Enum):
    OPENAI = "openai"
    GROQ = "groq"


# Shared by every structured-extraction request
EXTRACTION_TEMPERATURE = 0.1

# Model configurations
MODEL_CONFIGS: Dict[str, Dict[str, Any]] = {
    "gpt-4": {
        "provider": ModelProvider.OPENAI,
        "model": "gpt-4",
        "max_tokens": 4000,
        "temperature": EXTRACTION_TEMPERATURE
    },
    "gpt-4o": {
        "provider": ModelProvider.OPENAI,
        "model": "gpt-4o",
        "max_tokens": 8000,
        "temperature": EXTRACTION_TEMPERATURE
    },
    "gpt-4o-mini": {
        "provider": ModelProvider.OPENAI,
        "model": "gpt-4o-mini",
        "max_tokens": 8000,
        "temperature": EXTRACTION_TEMPERATURE
    },
    "gpt-oss-120b": {
        "provider": ModelProvider.GROQ,
        "model": "openai/gpt-oss-120b",
        "max_tokens": 8192,
        "temperature": EXTRACTION_TEMPERATURE
    },
    "llama-4-scout": {
        "provider": ModelProvider.GROQ,
        "model": "meta-llama/llama-4-scout-17b-16e-instruct",
        "max_tokens": 8192,
        "temperature": EXTRACTION_TEMPERATURE
    }
}

DEFAULT_MODEL = "gpt-4"


class ModelConfig:
    """Model configuration manager"""

    @staticmethod
    def get_config(model_key: Optional[str] = None) -> Dict[str, Any]:
        """Get configuration for specified model or default"""
        key = model_key or DEFAULT_MODEL

        if key not in MODEL_CONFIGS:
            raise ValueError(f"Unknown model: {key}. Available: {ModelConfig.get_available_models()}")

        return MODEL_CONFIGS[key]

    @staticmethod
    def get_available_models() -> list:
        """List all available models"""
        return list(MODEL_CONFIGS.keys())

    @staticmethod
    def generation_params(model_key: Optional[str] = None, max_tokens: Optional[int] = None) -> Dict[str, Any]:
        """
        Build the {model, provider, temperature, max_tokens} params for one
        completion request. max_tokens is capped at the model's budget.
        """
        config = ModelConfig.get_config(model_key)
        budget = config["max_tokens"]
        return {
            "model": config["model"],
            "provider": config["provider"],
            "temperature": config.get("temperature", EXTRACTION_TEMPERATURE),
            "max_tokens": min(max_tokens, budget) if max_tokens else budget,
        }
