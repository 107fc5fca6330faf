"""Wiring of the orchestrator from application settings."""

import functools

from personal_chatbot.config.model_loader import load_model_config
from personal_chatbot.config.settings import AppConfig
from personal_chatbot.interception import create_default_bang_commands
from personal_chatbot.llm_client import BackendCache, create_backend
from personal_chatbot.orchestrator.orchestrator import Orchestrator
from personal_chatbot.storage import create_storage
from personal_chatbot.tools import (
    ExchangeRateTool,
    ImageGeneratorTool,
    LocalInfoTool,
    RateLimiter,
    Reminder,
    ReminderTool,
    SelfInfoTool,
)


async def build_orchestrator(
    settings: AppConfig,
    reminder: Reminder | None = None,
    rate_limiter: RateLimiter | None = None,
) -> Orchestrator:
    """Build an orchestrator with storage, backends, built-in tools and commands.

    Args:
        settings: Application settings.
        reminder: Reminder scheduler of the platform; the reminder tool is
            only registered when one is given.
        rate_limiter: Optional rate limiter shared by the reminder and image tools.

    Returns:
        Ready-to-use orchestrator.

    Raises:
        ModelConfigError: If models.yaml is missing or invalid.
        StorageError: If the storage backend cannot be initialized.
    """
    model_config = load_model_config(settings.model_config_path)
    storage = await create_storage(settings)
    cache = BackendCache(
        model_config,
        factory=functools.partial(create_backend, max_retries=settings.llm_max_retries),
    )

    orchestrator = Orchestrator(
        storage=storage,
        cache=cache,
        system_role=settings.assistant_system_role or None,
        sensitive_marker=settings.assistant_sensitive_marker,
        max_model_calls=settings.orchestrator_max_model_calls,
    )
    orchestrator.add_simple_tool(LocalInfoTool())
    orchestrator.add_simple_tool(
        SelfInfoTool(name=settings.project_name, version=settings.version)
    )
    if reminder is not None:
        orchestrator.add_complex_tool(
            ReminderTool(reminder, settings.reminder_max_seconds, rate_limiter=rate_limiter)
        )
    if settings.image_generator_model and settings.image_generator_api_key:
        orchestrator.add_complex_tool(
            ImageGeneratorTool(
                endpoint=settings.image_generator_endpoint,
                model=settings.image_generator_model,
                api_key=settings.image_generator_api_key,
                rate_limiter=rate_limiter,
                timeout=settings.image_generator_timeout,
            )
        )
    if settings.exchange_rate_api_key:
        orchestrator.add_simple_tool(
            ExchangeRateTool(
                settings.exchange_rate_api_key, endpoint=settings.exchange_rate_endpoint
            )
        )
    orchestrator.add_interceptor(create_default_bang_commands(cache.model_names))
    return orchestrator
