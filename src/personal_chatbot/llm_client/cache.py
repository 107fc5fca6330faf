"""Lazily constructed, memoized model backends.

Each configured model name is in one of three states: uninitialized (only
its definition is known), created (its backend is cached), or failed
(construction failed once and is never retried in this process).
"""

import asyncio
from collections.abc import Awaitable, Callable

from personal_chatbot.llm_client.backend import ModelBackend
from personal_chatbot.llm_client.factory import create_backend
from personal_chatbot.llm_client.models import ModelConfig, ModelDefinition
from personal_chatbot.llm_client.types import BackendInitializationError, UndefinedModelError
from personal_chatbot.telemetry import BACKEND_CREATED, BACKEND_INIT_FAILED, get_logger
from personal_chatbot.tools.types import ToolDescriptor

log = get_logger(__name__)

BackendFactory = Callable[[str, ModelDefinition], Awaitable[ModelBackend]]


class BackendCache:
    """Per-model backend cache with at-most-one construction per name.

    Attributes:
        default_model: Name used when no model is requested.
    """

    def __init__(self, config: ModelConfig, factory: BackendFactory = create_backend) -> None:
        """Initialize the cache; no backend is built until first requested.

        Args:
            config: Validated model configuration.
            factory: Coroutine building a backend from a definition.
        """
        self.default_model = config.default
        self._factory = factory
        self._uninitialized: dict[str, ModelDefinition] = dict(config.models)
        self._created: dict[str, ModelBackend] = {}
        self._failed: set[str] = set()
        self._locks: dict[str, asyncio.Lock] = {}
        self._announced_tools: list[ToolDescriptor] = []

    @property
    def model_names(self) -> list[str]:
        """Every configured model name, whatever its state."""
        return sorted({*self._uninitialized, *self._created, *self._failed})

    def resolve(self, model: str | None) -> str:
        """Return ``model``, or the default model when it is None."""
        return model if model is not None else self.default_model

    def announce_tool(self, descriptor: ToolDescriptor) -> None:
        """Announce a tool to every current and future backend."""
        self._announced_tools.append(descriptor)
        for backend in self._created.values():
            backend.register_tool(descriptor)

    async def get(self, model: str | None = None) -> ModelBackend:
        """Get the backend for a model, building it on first use.

        Concurrent first requests for the same name wait on one construction.

        Args:
            model: Model name, or None for the default model.

        Returns:
            The cached backend.

        Raises:
            UndefinedModelError: If the name is not configured.
            BackendInitializationError: If construction failed, now or earlier.
        """
        name = self.resolve(model)

        backend = self._created.get(name)
        if backend is not None:
            return backend

        lock = self._locks.setdefault(name, asyncio.Lock())
        async with lock:
            backend = self._created.get(name)
            if backend is not None:
                return backend
            if name in self._failed:
                raise BackendInitializationError(name)

            definition = self._uninitialized.pop(name, None)
            if definition is None:
                raise UndefinedModelError(name)

            try:
                backend = await self._factory(name, definition)
            except Exception as e:
                self._failed.add(name)
                log.error(
                    BACKEND_INIT_FAILED,
                    model=name,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                raise BackendInitializationError(name) from e

            for descriptor in self._announced_tools:
                backend.register_tool(descriptor)
            self._created[name] = backend
            log.info(BACKEND_CREATED, model=name, backend=type(backend).__name__)
            return backend
