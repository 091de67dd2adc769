from __future__ import annotations

from typing import Mapping, Optional

from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.style import Style
from rich.text import Text


class ConsoleStyles:
    """
    Centralized styles and helper methods for rich console output.
    """

    SUCCESS = Style(color="green", bold=True)
    WARNING = Style(color="yellow", bold=True)
    ERROR = Style(color="red", bold=True)
    INFO = Style(color="cyan", italic=True)

    @staticmethod
    def print_success(console: Console, message: str) -> None:
        console.print(Text(message, style=ConsoleStyles.SUCCESS))

    @staticmethod
    def print_warning(console: Console, message: str) -> None:
        console.print(Text(message, style=ConsoleStyles.WARNING))

    @staticmethod
    def print_error(console: Console, message: str) -> None:
        console.print(Text(message, style=ConsoleStyles.ERROR))

    @staticmethod
    def print_info(console: Console, message: str) -> None:
        console.print(Text(message, style=ConsoleStyles.INFO))


class MessageHelpers:
    """
    Console helpers for deployment progress messages.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def print_info(self, message: str) -> None:
        self.console.print(f"[blue]ℹ[/blue] {message}")

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def print_warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def print_rule(self, title: str, style: str = "bold blue") -> None:
        self.console.print(Rule(f"[{style}]{title}[/{style}]"))

    def print_panel(
        self,
        content: str,
        title: str = None,
        border_style: str = "blue",
        expand: bool = False,
    ) -> None:
        panel = Panel(
            content,
            title=f"[bold]{title}[/bold]" if title else None,
            border_style=border_style,
            expand=expand,
        )
        self.console.print(panel)

    @staticmethod
    def format_label_value(label: str, value: str, label_color: str = "cyan") -> str:
        """Format a label-value pair with consistent styling."""
        return f"[{label_color}]{label}:[/{label_color}] {value}"

    @staticmethod
    def format_check_item(text: str, checked: bool = True) -> str:
        check = "✓" if checked else "✗"
        color = "green" if checked else "red"
        return f"[{color}]{check}[/{color}] {text}"

    def print_details(self, title: str, details: Mapping[str, str]) -> None:
        """Print label/value pairs in a panel."""
        lines = [self.format_label_value(label, value) for label, value in details.items()]
        self.print_panel("\n".join(lines), title=title)
