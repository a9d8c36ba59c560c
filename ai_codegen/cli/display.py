"""
Console presentation for generated code.

Rendering of results, errors and the waiting spinner. Character animation
is an optional wrapper around the write function and never touches the
completion client.
"""

import time
from typing import Callable, Optional

from rich.console import Console

SEPARATOR_WIDTH = 80
THINKING_MESSAGE = "\t\tOpenAI is Thinking..."


def animate(
    write: Callable[[str], None],
    delay: float,
    sleep: Callable[[float], None] = time.sleep
) -> Callable[[str], None]:
    """Wrap a write function to emit text one character at a time.

    Args:
        write: Function writing text to the console
        delay: Pause between characters in seconds
        sleep: Sleep function, replaceable in tests

    Returns:
        Write function with the same signature
    """
    def animated_write(text: str) -> None:
        for char in text:
            write(char)
            sleep(delay)

    return animated_write


class Display:
    """Renders code and errors to a rich console."""

    def __init__(self, console: Console, write: Optional[Callable[[str], None]] = None):
        self.console = console
        self.write = write or self._write

    def _write(self, text: str) -> None:
        self.console.print(text, end="", markup=False, highlight=False, soft_wrap=True)

    def thinking(self):
        """Spinner shown while a request is in flight."""
        return self.console.status(THINKING_MESSAGE, spinner="dots12")

    def show_code(self, code: str) -> None:
        """Print code framed by separator lines."""
        separator = "=" * SEPARATOR_WIDTH
        self.console.print(f"\n{separator}", markup=False)
        self.write(code)
        self.console.print(f"\n{separator}", markup=False)

    def show_error(self, message: str) -> None:
        """Print an error framed by red separators of matching length."""
        error_msg = f"Error: {message}"
        separator = "-" * len(error_msg)
        self.console.print(f"\n[red]{separator}[/red]")
        self.write(error_msg)
        self.console.print(f"\n[red]{separator}[/red]")


def build_display(console: Console, animated: bool, delay_ms: int) -> Display:
    """Create a display, animated when requested and the delay is non-zero."""
    display = Display(console)
    if animated and delay_ms > 0:
        display.write = animate(display.write, delay_ms / 1000)
    return display
