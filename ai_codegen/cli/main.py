"""
CLI interface for AI Codegen.

Interactive prompt loop, one-shot generation, and offline SQL formatting.
"""

import logging
import sys
from typing import Callable, Optional, Tuple

import typer
import yaml
from rich.console import Console

from ai_codegen.cli.display import Display, build_display
from ai_codegen.config.loader import Settings, load_api_key, load_settings
from ai_codegen.core.errors import CompletionError, MissingCredential
from ai_codegen.core.formatter import format_plain, format_sql
from ai_codegen.core.generator import CodeGenerator, available_kinds, get_generator
from ai_codegen.sdk.openai_client import CompletionClient

app = typer.Typer()
console = Console()

EXIT_CODE_OK = 0
EXIT_CODE_FAIL = 1

logger = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


def _startup(
    kind: str,
    config: Optional[str],
    verbose: bool
) -> Tuple[Settings, CodeGenerator, CompletionClient]:
    """Load settings and the credential, then build the client.

    Any failure here is fatal: it is reported and the process exits before
    a prompt is read.
    """
    _configure_logging(verbose)
    try:
        settings = load_settings(config)
        generator = get_generator(kind)
        api_key = load_api_key()
    except MissingCredential as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Configuration error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    client = CompletionClient(api_key=api_key, generator=generator, settings=settings)
    return settings, generator, client


def generate_and_print(
    client: CompletionClient,
    generator: CodeGenerator,
    display: Display,
    prompt: str
) -> bool:
    """Generate code for one prompt and render the result or the error.

    Returns:
        True if code was generated, False if the request failed
    """
    with display.thinking():
        try:
            code = client.generate(prompt)
        except CompletionError as e:
            error = e
        else:
            error = None

    if error is not None:
        logger.debug(f"Generation failed: {type(error).__name__}")
        display.show_error(f"Failed to generate {generator.description}: {error}")
        return False

    try:
        formatted = generator.format(code)
    except Exception as e:
        logger.warning(f"Showing unformatted {generator.description}: {type(e).__name__}: {e}")
        formatted = format_plain(code)

    display.show_code(formatted)
    return True


def run_loop(
    client: CompletionClient,
    generator: CodeGenerator,
    display: Display,
    read_line: Callable[[str], str]
) -> None:
    """Read prompts until end of input, generating code for each.

    Blank lines are skipped. Request failures are shown and the loop
    continues with the next line.
    """
    prompt_label = f"[green]{generator.name}:[/green]>[blue] [/blue]"
    while True:
        try:
            line = read_line(prompt_label)
        except (EOFError, KeyboardInterrupt):
            console.print()
            return

        if not line.strip():
            continue
        generate_and_print(client, generator, display, line)


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """AI Codegen CLI."""
    if ctx.invoked_subcommand is None:
        console.print("AI Codegen - Use --help to see available commands")


@app.command()
def run(
    kind: str = typer.Option(
        "sql",
        "--kind",
        "-k",
        help=f"Kind of code to generate: {', '.join(available_kinds())}"
    ),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
    no_animate: bool = typer.Option(
        False,
        "--no-animate",
        help="Print results at once instead of character by character"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging"
    )
):
    """
    Start the interactive prompt.

    Each non-blank line is sent as a prompt; generated code is printed
    below it. End input (Ctrl-D) or interrupt (Ctrl-C) to quit.
    """
    settings, generator, client = _startup(kind, config, verbose)
    display = build_display(
        console,
        animated=settings.display.animate and not no_animate,
        delay_ms=settings.display.delay_ms
    )

    console.clear()
    run_loop(client, generator, display, console.input)
    sys.exit(EXIT_CODE_OK)


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Statement to generate code for"),
    kind: str = typer.Option(
        "sql",
        "--kind",
        "-k",
        help=f"Kind of code to generate: {', '.join(available_kinds())}"
    ),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
    no_animate: bool = typer.Option(
        False,
        "--no-animate",
        help="Print results at once instead of character by character"
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging"
    )
):
    """Generate code for a single prompt and exit."""
    settings, generator, client = _startup(kind, config, verbose)
    display = build_display(
        console,
        animated=settings.display.animate and not no_animate,
        delay_ms=settings.display.delay_ms
    )

    if generate_and_print(client, generator, display, prompt):
        sys.exit(EXIT_CODE_OK)
    sys.exit(EXIT_CODE_FAIL)


@app.command("format")
def format_command(
    sql: Optional[str] = typer.Argument(None, help="SQL to format; read from stdin when omitted")
):
    """Format SQL text without calling the API."""
    text = sql if sql is not None else sys.stdin.read()
    console.print(format_sql(text), markup=False, highlight=False)


if __name__ == "__main__":
    app()
