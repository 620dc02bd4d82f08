"""
Main CLI entry point for TIAcher.

Usage:
    tiacher db init
    tiacher users confirm learner@example.com
    tiacher users progress learner@example.com
    tiacher conversations list learner@example.com
    tiacher chat --email learner@example.com
    tiacher serve --port 8000
"""

import asyncio
import logging

import typer
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from tiacher.settings import get_settings

app = typer.Typer(name="tiacher", help="TIAcher - gamified AI tutoring chat")
console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    """Configure logging for every command."""
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if verbose or settings.debug else settings.log_level
    )


def run_async(coro):
    """Helper to run async functions from Typer commands."""
    return asyncio.run(coro)


async def _run_in_session(operation):
    """Run ``operation(session)`` and release the engine afterwards."""
    from tiacher.db.connection import close_engine, get_session_factory

    try:
        async with get_session_factory()() as session:
            return await operation(session)
    finally:
        await close_engine()


async def _lookup_user_id(session, email: str) -> str:
    from tiacher.services.auth_service import get_identity_by_email

    identity = await get_identity_by_email(session, email)
    if not identity:
        console.print(f"[red]No user registered with email {email}[/red]")
        raise typer.Exit(1)
    return identity.id


# ============================================================================
# Database Commands
# ============================================================================

db_app = typer.Typer(help="Database management")
app.add_typer(db_app, name="db")


@db_app.command("init")
def db_init():
    """Create all tables."""
    from tiacher.db.connection import close_engine, init_schema

    async def _init():
        try:
            await init_schema()
        finally:
            await close_engine()

    typer.echo("Creating database tables...")
    run_async(_init())
    typer.echo("Database initialized successfully")


# ============================================================================
# User Commands
# ============================================================================

users_app = typer.Typer(help="User administration")
app.add_typer(users_app, name="users")


@users_app.command("confirm")
def users_confirm(email: str = typer.Argument(..., help="Email address to confirm")):
    """Confirm a user's email address so they can sign in."""
    from tiacher.errors import AuthError
    from tiacher.services.auth_service import confirm_email_for_address

    async def _confirm(session):
        return await confirm_email_for_address(session, email)

    try:
        identity = run_async(_run_in_session(_confirm))
    except AuthError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    typer.echo(f"Confirmed {identity.email} ({identity.id})")


@users_app.command("progress")
def users_progress(email: str = typer.Argument(..., help="User email")):
    """Show a user's XP and level."""
    from tiacher.services.progress_service import get_progress, level_progress

    async def _progress(session):
        user_id = await _lookup_user_id(session, email)
        return await get_progress(session, user_id)

    progress = run_async(_run_in_session(_progress))
    if not progress:
        typer.echo("No progress yet (user has never signed in).")
        return

    bar = level_progress(progress.xp)
    typer.echo(f"Level {progress.level} - {progress.xp} XP")
    typer.echo(f"  {bar.xp_into_level}/100 XP into this level")
    typer.echo(f"  {bar.xp_for_next_level} XP to the next level")
    typer.echo(f"  Study streak: {progress.study_streak} day(s)")


# ============================================================================
# Conversation Commands
# ============================================================================

conversations_app = typer.Typer(help="Conversation inspection")
app.add_typer(conversations_app, name="conversations")


@conversations_app.command("list")
def conversations_list(email: str = typer.Argument(..., help="User email")):
    """List a user's conversations, most recent first."""
    from tiacher.services.conversation_service import list_conversations

    async def _list(session):
        user_id = await _lookup_user_id(session, email)
        return await list_conversations(session, user_id)

    conversations = run_async(_run_in_session(_list))
    if not conversations:
        typer.echo("No conversations found.")
        return

    for c in conversations:
        typer.echo(f"○ {c.id}: {c.title or '(untitled)'}  [{c.updated_at:%Y-%m-%d %H:%M}]")


# ============================================================================
# Interactive Chat
# ============================================================================

CHAT_HELP = (
    "Commands: [bold]new[/bold] | [bold]list[/bold] | [bold]open N[/bold] | "
    "[bold]delete N[/bold] | [bold]style [NAME][/bold] | [bold]quit[/bold]"
)


def print_message(message, style: str):
    """Pretty print a chat message."""
    from tiacher.models import MessageAuthor

    if message.author == MessageAuthor.USER:
        console.print(Panel(message.content, title="You", border_style="blue"))
    else:
        console.print(
            Panel(Markdown(message.content), title=f"TIAcher · {style}", border_style="green")
        )


def print_styles(current: str):
    """List the learning styles, marking the active one."""
    from tiacher.learning.styles import STYLE_DESCRIPTIONS, resolve_style

    active = resolve_style(current)
    table = Table(title="Learning styles")
    table.add_column("")
    table.add_column("Style")
    table.add_column("Description")
    for style, description in STYLE_DESCRIPTIONS.items():
        table.add_row("●" if style == active else "", style.value, description)
    console.print(table)


def print_conversations(conversations):
    table = Table(title="Conversations")
    table.add_column("#", justify="right")
    table.add_column("Title")
    table.add_column("Last activity")
    for i, c in enumerate(conversations, start=1):
        table.add_row(str(i), c.title or "(untitled)", f"{c.updated_at:%Y-%m-%d %H:%M}")
    console.print(table)


async def run_chat(email: str, password: str):
    """Run an interactive chat session."""
    from tiacher.client import (
        ChatController,
        CompletionClient,
        ConversationManager,
        Notifier,
        SessionManager,
    )
    from tiacher.db.connection import close_engine, get_session_factory

    settings = get_settings()
    notifier = Notifier()
    notifier.subscribe(
        lambda n: console.print(
            f"[{'red' if n.is_error else 'yellow'}]{n.title}[/] {n.description}"
        )
    )

    factory = get_session_factory()
    session = SessionManager(
        factory, notifier, require_confirmed_email=settings.require_email_confirmation
    )
    conversations = ConversationManager(session, factory)
    chat = ChatController(session, conversations, CompletionClient())

    try:
        signed_in = await session.sign_in(email, password)
        if not signed_in.ok:
            raise typer.Exit(1)

        bar = session.level_progress()
        console.print(
            Panel(
                "[bold green]TIAcher[/bold green]\n\n"
                f"Learner: {session.profile.full_name or session.user.email}\n"
                f"Style: {session.learning_style}\n"
                f"Level {bar.level} · {bar.xp_into_level}/100 XP\n\n" + CHAT_HELP,
                title="Welcome",
                border_style="cyan",
            )
        )

        while True:
            try:
                user_input = Prompt.ask("\n[bold blue]You[/bold blue]")
            except (KeyboardInterrupt, EOFError):
                break

            command, _, argument = user_input.strip().partition(" ")
            command = command.lower()

            if command in ("quit", "exit", "q"):
                break
            if command == "new":
                created = await conversations.create_conversation()
                if created.ok:
                    for message in conversations.messages:
                        print_message(message, session.learning_style)
                continue
            if command == "list":
                print_conversations(conversations.conversations)
                continue
            if command in ("open", "delete") and argument.isdigit():
                index = int(argument) - 1
                if not 0 <= index < len(conversations.conversations):
                    console.print("[red]No such conversation[/red]")
                    continue
                target = conversations.conversations[index]
                if command == "open":
                    opened = await conversations.select_conversation(target)
                    if opened.ok:
                        for message in conversations.messages:
                            print_message(message, session.learning_style)
                else:
                    await conversations.delete_conversation(target.id)
                continue
            if command == "style":
                if argument:
                    await session.set_learning_style(argument)
                else:
                    print_styles(session.learning_style)
                continue

            if not user_input.strip():
                continue

            with console.status("[bold green]Thinking...", spinner="dots"):
                result = await chat.send(user_input)
            if result and result.ok:
                print_message(result.value.ai_message, session.learning_style)
    finally:
        await session.sign_out()
        await close_engine()

    console.print("[yellow]Goodbye! Keep learning![/yellow]")


@app.command()
def chat(
    email: str = typer.Option(..., "--email", "-e", help="Account email"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
):
    """Start an interactive chat session with the AI tutor."""
    run_async(run_chat(email, password))


# ============================================================================
# Server
# ============================================================================


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
):
    """Run the completion gateway."""
    import uvicorn

    uvicorn.run("api.app:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
