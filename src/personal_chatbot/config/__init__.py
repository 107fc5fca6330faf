"""Unified configuration management for the personal chatbot.

Settings come from CHATBOT_* environment variables and .env files; the model
catalogue comes from config/models.yaml. The model loader is imported from
``personal_chatbot.config.model_loader`` directly so that importing settings
does not pull in the LLM client package.
"""

from personal_chatbot.config.env_loader import Environment, get_environment
from personal_chatbot.config.loader import ConfigLoadError
from personal_chatbot.config.settings import AppConfig, get_settings, load_app_config

__all__ = [
    "AppConfig",
    "get_settings",
    "load_app_config",
    "Environment",
    "get_environment",
    "ConfigLoadError",
]
