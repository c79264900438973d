# Shared utilities
from .model_config import (
    ModelConfig,
    ModelProvider,
    MODEL_CONFIGS,
    DEFAULT_MODEL
)
from .settings import Settings, get_settings

__all__ = [
    'ModelConfig',
    'ModelProvider',
    'MODEL_CONFIGS',
    'DEFAULT_MODEL',
    'Settings',
    'get_settings'
]
