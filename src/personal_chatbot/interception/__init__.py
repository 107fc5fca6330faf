"""Pre-model interception chain and built-in interceptors."""

from personal_chatbot.interception.bang_command import (
    BangCommand,
    BangCommandInterceptor,
    BangCommandResponse,
    ChangeModelCommand,
    ModelOverride,
    create_default_bang_commands,
)
from personal_chatbot.interception.chain import InterceptionChain
from personal_chatbot.interception.types import (
    InterceptionAction,
    InterceptionError,
    InterceptionStatus,
    Interceptor,
)

__all__ = [
    "Interceptor",
    "InterceptionAction",
    "InterceptionStatus",
    "InterceptionError",
    "InterceptionChain",
    "BangCommand",
    "BangCommandInterceptor",
    "BangCommandResponse",
    "ChangeModelCommand",
    "ModelOverride",
    "create_default_bang_commands",
]
