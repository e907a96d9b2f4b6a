"""
Quill CLI - Command-line front end for the assistant core.

Commands:
- quill prompt <text>      - Run a prompt on a selection, optionally with critique
- quill chat               - Streaming chat session
- quill image <prompt>     - Generate images
- quill transcribe <file>  - Speech to text
- quill speak <text>       - Text to speech
- quill route <model>      - Show which backend serves a model
- quill models             - List the model catalog
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from adapters.base import Message
from adapters.router import build_adapter, build_media_adapter, describe_model
from quill.config import ALL_IMAGE_MODELS, ALL_MODELS, Settings
from quill.critique import CRITIQUE_DELAY_SECONDS, CritiqueOrchestrator, CritiqueState
from quill.editor import BufferEditor
from quill.errors import ConfigError
from quill.notices import ConsoleNotifier

app = typer.Typer(
    name="quill",
    help="Quill - multi-backend writing assistant",
    add_completion=False,
)
console = Console()

logging.basicConfig(
    level=logging.WARNING,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("quill.cli")


# ============================================================================
# Helper Functions
# ============================================================================


def load_settings(config: Path | None, verbose: bool = False) -> Settings:
    """Load settings from a file if given, else from the environment."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    try:
        if config is not None:
            return Settings.from_file(config)
        return Settings.from_env()
    except ConfigError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(2)


ConfigOption = typer.Option(None, "--config", "-c", help="Settings YAML file")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Verbose output")


# ============================================================================
# Commands
# ============================================================================


@app.command()
def prompt(
    text: str = typer.Argument("", help="Instruction for the model"),
    selection: str = typer.Option(None, "--selection", "-s", help="Text the prompt applies to"),
    file: Path = typer.Option(None, "--file", "-f", help="Read the selection from a file"),
    preset: int = typer.Option(None, "--preset", "-p", help="Use custom prompt 1, 2 or 3"),
    model: str = typer.Option(None, "--model", "-m", help="Primary model"),
    critique: bool = typer.Option(False, "--critique", help="Ask a second model to critique"),
    critique_model: str = typer.Option(None, "--critique-model", help="Critique model"),
    delay: float = typer.Option(CRITIQUE_DELAY_SECONDS, "--delay", help="Seconds before the critique"),
    no_replace: bool = typer.Option(False, "--no-replace", help="Keep the selection, add the answer below"),
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Run a prompt against a selection and print the resulting document."""
    settings = load_settings(config, verbose)
    if no_replace:
        settings = settings.with_overrides(replace_selection=False)

    if preset is not None:
        prompts = [settings.custom_prompt_1, settings.custom_prompt_2, settings.custom_prompt_3]
        if not 1 <= preset <= 3 or not prompts[preset - 1]:
            console.print(f"[red]Custom prompt {preset} is not set[/red]")
            raise typer.Exit(2)
        text = prompts[preset - 1]
    if not text:
        console.print("[red]No prompt given[/red]")
        raise typer.Exit(2)

    document = file.read_text() if file is not None else (selection or "")
    editor = BufferEditor(document)
    orchestrator = CritiqueOrchestrator(
        settings,
        editor,
        notifier=ConsoleNotifier(),
        delay=delay,
    )

    async def run_prompt() -> CritiqueState:
        run = await orchestrator.run(
            text,
            model=model,
            critique=critique,
            critique_model=critique_model,
        )
        await run.wait()
        return run.state

    state = asyncio.run(run_prompt())
    console.print(Panel(Markdown(editor.text or "_empty_"), title="Document"))
    if state == CritiqueState.FAILED:
        raise typer.Exit(1)


@app.command()
def chat(
    model: str = typer.Option(None, "--model", "-m", help="Model to chat with"),
    system: str = typer.Option(None, "--system", help="System prompt"),
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Streaming chat session. Empty line or Ctrl-D ends it."""
    settings = load_settings(config, verbose)
    model_id = model or settings.model_name
    adapter = build_adapter(model_id, settings, notifier=ConsoleNotifier())
    messages: list[Message] = []
    if system:
        messages.append(Message(role="system", content=system))

    console.print(f"[dim]Chatting with {model_id} ({adapter.family.value})[/dim]")

    async def session() -> None:
        while True:
            try:
                line = console.input("[bold cyan]you>[/bold cyan] ")
            except EOFError:
                break
            if not line.strip():
                break

            messages.append(Message.user(line))
            with Live(console=console, refresh_per_second=12) as live:
                answer = await adapter.text_call(
                    messages,
                    stream_sink=lambda text: live.update(Markdown(text)),
                )
            if answer:
                messages.append(Message(role="assistant", content=answer))
            else:
                messages.pop()

    asyncio.run(session())


@app.command()
def image(
    prompt_text: str = typer.Argument(..., help="Image description"),
    size: str = typer.Option("1024x1024", "--size", help="Image size"),
    count: int = typer.Option(1, "--count", "-n", help="Number of images"),
    hd: bool = typer.Option(False, "--hd", help="HD quality (dall-e-3 only)"),
    model: str = typer.Option(None, "--model", "-m", help="Image model"),
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Generate images and print their URLs."""
    settings = load_settings(config, verbose)
    image_model = model or settings.image_model_name
    adapter = build_media_adapter(settings, notifier=ConsoleNotifier())

    urls = asyncio.run(adapter.image_call(image_model, prompt_text, size, count, hd))
    if not urls:
        raise typer.Exit(1)
    for url in urls:
        console.print(url)


@app.command()
def transcribe(
    audio: Path = typer.Argument(..., help="Audio file"),
    language: str = typer.Option(None, "--language", "-l", help="ISO-639-1 language code"),
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Transcribe an audio file."""
    settings = load_settings(config, verbose)
    adapter = build_media_adapter(settings, notifier=ConsoleNotifier())

    text = asyncio.run(adapter.speech_to_text(audio, language or settings.language))
    if text is None:
        raise typer.Exit(1)
    console.print(text)


@app.command()
def speak(
    text: str = typer.Argument(..., help="Text to read aloud"),
    out: Path = typer.Option(Path("speech.mp3"), "--out", "-o", help="Output file"),
    config: Path = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Synthesize speech into an audio file."""
    settings = load_settings(config, verbose)
    adapter = build_media_adapter(settings, notifier=ConsoleNotifier())

    audio = asyncio.run(adapter.text_to_speech(text))
    if audio is None:
        raise typer.Exit(1)
    audio.save(out)
    console.print(f"[green]Wrote {len(audio.data)} bytes to {out}[/green]")


@app.command()
def route(
    model: str = typer.Argument(..., help="Model identifier"),
    max_tokens: int = typer.Option(500, "--max-tokens", help="Token budget"),
) -> None:
    """Show how a model identifier is routed."""
    descriptor = describe_model(model, max_tokens)

    table = Table(title=f"Routing for {model}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Backend", descriptor.family.value)
    table.add_row("Reasoning model", "yes" if descriptor.is_reasoning_model else "no")
    table.add_row("Reads images", "yes" if descriptor.image_capable else "no")
    table.add_row("Max tokens", str(descriptor.max_tokens))
    console.print(table)


@app.command()
def models() -> None:
    """List the model catalog."""
    table = Table(title="Text Models")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Backend")

    for model_id, name in ALL_MODELS.items():
        table.add_row(model_id, name, describe_model(model_id, 1).family.value)
    console.print(table)

    console.print(f"Image models: {', '.join(ALL_IMAGE_MODELS)}")


# ============================================================================
# Entry Point
# ============================================================================


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
