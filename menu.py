"""
Terminal input helpers built on rich
"""

from typing import Callable, Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt

console = Console()

# Returns an error message for invalid input, None when it is accepted
Validator = Callable[[str], Optional[str]]


class RichMenu:
    """Asks the operator to pick options, type text and confirm."""

    def __init__(self, output: Optional[Console] = None):
        self.console = output or console

    def choose_one(self, message: str, options: Sequence[str]) -> str:
        """Show a numbered list and return the chosen option."""
        self.console.print(f"\n[bold cyan]{escape(message)}[/bold cyan]")
        for number, option in enumerate(options, 1):
            self.console.print(f"  [cyan]{number}[/cyan]. {escape(option)}")

        choices = [str(number) for number in range(1, len(options) + 1)]
        answer = Prompt.ask(
            "[bold green]Select an option[/bold green]",
            choices=choices,
            default="1",
            show_choices=False,
            console=self.console,
        )
        return options[int(answer) - 1]

    def read_text(
        self,
        message: str,
        validator: Optional[Validator] = None,
        default: Optional[str] = None,
        password: bool = False,
    ) -> str:
        """Read a line of text, repeating until the validator accepts it."""
        kwargs = {"password": password, "console": self.console}
        if default is not None:
            kwargs["default"] = default

        while True:
            answer = Prompt.ask(message, **kwargs)
            problem = validator(answer) if validator else None
            if problem is None:
                return answer
            self.console.print(f"[red]{escape(problem)}[/red]")

    def confirm(self, message: str, default: bool = True) -> bool:
        return Confirm.ask(message, default=default, console=self.console)
