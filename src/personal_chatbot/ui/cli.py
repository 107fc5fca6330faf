"""CLI interface for the personal chatbot.

This module provides a Typer-based command-line interface that runs single
conversation turns through the orchestrator. Use the sqlite storage backend
(``CHATBOT_STORAGE_BACKEND=sqlite``) to keep history between invocations.
"""

import asyncio

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markdown import Markdown
from rich.table import Table

from personal_chatbot.config import ConfigLoadError, get_settings
from personal_chatbot.config.loader import format_validation_error
from personal_chatbot.config.model_loader import load_model_config
from personal_chatbot.conversation import (
    ConversationUpdate,
    RequestContext,
    UserMessage,
    UserRole,
)
from personal_chatbot.orchestrator import OrchestrationError, Orchestrator, build_orchestrator
from personal_chatbot.storage import StorageError

app = typer.Typer(help="Personal chatbot - conversation orchestration from the terminal")
console = Console()

DEFAULT_CONTEXT_KEY = "cli"


@app.command(name="chat")
def chat_command(
    message: str = typer.Argument(..., help="User message to send to the chatbot"),
    context_key: str = typer.Option(
        DEFAULT_CONTEXT_KEY, "--context-key", help="Key the conversation is stored under"
    ),
    new: bool = typer.Option(False, "--new", help="Start a new conversation for the key"),
) -> None:
    """Send one message and print the reply.

    Examples:
        personal-chatbot chat "Hello"
        personal-chatbot chat "!change local" --context-key work
        personal-chatbot chat "Let's start over" --new
    """
    try:
        update = asyncio.run(_handle_message(message, context_key, new))
    except OrchestrationError as e:
        # Shown to the user only; nothing was saved
        console.print(f"\n[dim italic]({e})[/dim italic]")
        raise typer.Exit(1) from e
    except (ConfigLoadError, ValidationError) as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        raise typer.Exit(2) from e
    except StorageError as e:
        console.print(f"[red]Storage error: {e}[/red]")
        raise typer.Exit(2) from e

    response = update.assistant_response
    console.print("\n[bold blue]Assistant:[/bold blue]")
    if response.is_sensitive:
        console.print("[yellow](sensitive)[/yellow]")
    console.print(Markdown(response.text))
    for attachment in update.attachments:
        console.print(f"[dim]Attachment: {attachment.url}[/dim]")
    if update.model is not None:
        console.print(f"\n[dim]Model: {update.model}[/dim]")


async def _handle_message(message: str, context_key: str, new: bool) -> ConversationUpdate:
    """Run one turn and save it under the context key.

    Args:
        message: The user's message.
        context_key: Key the conversation is stored under.
        new: Start a new conversation even if the key is bound.

    Returns:
        The saved turn update.
    """
    orchestrator = await build_orchestrator(get_settings())
    try:
        return await _run_turn(orchestrator, message, context_key, new)
    finally:
        await orchestrator.storage.close()


async def _run_turn(
    orchestrator: Orchestrator, message: str, context_key: str, new: bool
) -> ConversationUpdate:
    conversation_id = None if new else await orchestrator.restore_conversation(context_key)
    if conversation_id is None:
        conversation_id = await orchestrator.new_conversation()

    context = RequestContext(identity="cli", context_key=context_key)
    update = await orchestrator.process_conversation(
        context,
        conversation_id,
        [UserMessage.from_text(message)],
        UserRole.privileged(),
    )
    await orchestrator.save_conversation(update, context_key)
    return update


@app.command(name="check-config")
def check_config_command() -> None:
    """Validate settings and the model catalogue.

    Examples:
        personal-chatbot check-config
    """
    try:
        settings = get_settings()
        model_config = load_model_config(settings.model_config_path)
    except ValidationError as e:
        console.print("[red]Invalid settings:[/red]")
        console.print(format_validation_error(e))
        raise typer.Exit(1) from e
    except ConfigLoadError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    console.print(f"[green]Settings OK[/green] ({settings.environment.value})")
    console.print(f"Storage: {settings.storage_backend}")
    console.print(
        f"Logging: {settings.log_level} ({settings.log_format}), "
        f"file: {settings.log_dir or 'off'}"
    )
    console.print(f"Max model calls per turn: {settings.orchestrator_max_model_calls}")

    table = Table(title=f"Models ({settings.model_config_path})")
    table.add_column("Name", style="cyan")
    table.add_column("Model ID", style="green")
    table.add_column("Endpoint", style="blue", overflow="fold")
    table.add_column("API key env", style="magenta")
    table.add_column("Default", style="white")

    for name, definition in sorted(model_config.models.items()):
        table.add_row(
            name,
            definition.id,
            definition.endpoint,
            definition.api_key_env or "-",
            "yes" if name == model_config.default else "",
        )
    console.print(table)


if __name__ == "__main__":
    app()
