"""Terminal chat front-end using Typer."""
import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel

from jedi_gpt.client.proxy import DEFAULT_TIMEOUT, ProxyClient, default_api_url
from jedi_gpt.client.session import ChatMessage, ChatSession

app = typer.Typer(
    name="jedi-chat",
    help="Ask the Jedi Master questions from your terminal",
    add_completion=False,
)

console = Console()

QUIT_COMMANDS = {"/quit", "/exit"}
CONTINUATION = "\\"


def render_message(message: ChatMessage) -> None:
    if message.role == "user":
        console.print(Panel(message.text, title="You", title_align="left", border_style="cyan"))
    else:
        console.print(Panel(message.text, title="Jedi Master", title_align="left", border_style="green"))


def render_error(session: ChatSession) -> None:
    error = session.error
    if error is None:
        return
    console.print(f"[red]⚠️ {error.message}[/red]")
    if error.details:
        console.print(f"[dim]{error.details}[/dim]")
    console.print("[dim]Type /retry to ask again.[/dim]")


async def _send(session: ChatSession, retry: bool = False) -> None:
    if not retry:
        prompt = session.draft
        if not prompt.strip():
            return
        console.print(Panel(prompt, title="You", title_align="left", border_style="cyan"))
    else:
        console.print(f"[dim]Retrying: {session.state.prompt}[/dim]")

    with console.status("Thinking..."):
        reply = await (session.retry() if retry else session.submit())

    if reply is not None:
        render_message(reply)
    else:
        render_error(session)


def read_prompt() -> str:
    """Read one prompt. A trailing backslash continues it on the next line."""
    lines = []
    line = console.input("[bold cyan]Ask the Jedi Master › [/bold cyan]")
    while line.endswith(CONTINUATION):
        lines.append(line[: -len(CONTINUATION)])
        try:
            line = console.input("[cyan]... [/cyan]")
        except EOFError:
            line = ""
            break
    lines.append(line)
    return "\n".join(lines)


async def _chat(api_url: str, timeout: float) -> None:
    async with ProxyClient(api_url, timeout=timeout) as proxy:
        session = ChatSession(proxy)
        console.print("[bold]Jedi GPT[/bold]")
        console.print(f"[dim]Talking to {proxy.base_url}. Commands: /retry, /clear, /quit[/dim]")
        console.print("[dim]End a line with \\ to continue on the next one.[/dim]")

        while True:
            try:
                line = read_prompt()
            except (EOFError, KeyboardInterrupt):
                console.print()
                break

            command = line.strip().lower()
            if command in QUIT_COMMANDS:
                break
            if command == "/clear":
                if session.can_clear:
                    session.clear()
                    console.print("[dim]Conversation cleared.[/dim]")
                else:
                    console.print("[dim]Nothing to clear.[/dim]")
                continue
            if command == "/retry":
                if session.error is None:
                    console.print("[dim]Nothing to retry.[/dim]")
                    continue
                await _send(session, retry=True)
                continue

            session.draft = line
            await _send(session)


@app.command()
def chat(
    api_url: Optional[str] = typer.Option(
        None,
        "--api-url",
        "-u",
        help="Base URL of the Jedi proxy (defaults to $JEDI_API_URL or http://localhost:3000)",
    ),
    timeout: float = typer.Option(
        DEFAULT_TIMEOUT,
        "--timeout",
        "-t",
        help="Seconds to wait for each answer",
    ),
):
    """Start an interactive conversation with the Jedi Master."""
    asyncio.run(_chat(api_url or default_api_url(), timeout))


if __name__ == "__main__":
    app()
