from __future__ import annotations

import argparse
import shutil
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.table import Table
from rich.text import Text

if TYPE_CHECKING:  # pragma: no cover
    from .command_help import CommandHelp


class RichHelpFormatter(argparse.HelpFormatter):
    """
    Argparse help formatter that renders sections, examples, environment variables
    and tips with Rich.

    Falls back to plain text (still including examples and tips) when the output is
    not a terminal, so piped help stays readable.
    """

    SECTION_STYLE = "bold bright_cyan"

    def __init__(
        self,
        prog: str,
        indent_increment: int = 2,
        max_help_position: int = 28,
        width: int | None = None,
        console: Console | None = None,
    ) -> None:
        if width is None:
            width = min(shutil.get_terminal_size().columns, 110)
        super().__init__(
            prog=prog,
            indent_increment=indent_increment,
            max_help_position=max_help_position,
            width=width,
        )
        self.console = console or Console()
        self._examples: list[tuple[str, str]] = []
        self._env_vars: list[tuple[str, str]] = []
        self._tips: list[str] = []

    def add_command_help(self, command_help: CommandHelp) -> None:
        self._examples = list(command_help.examples)
        self._env_vars = list(command_help.env_vars)
        self._tips = list(command_help.tips)

    def format_help(self) -> str:
        standard_help = super().format_help()
        if not self.console.is_terminal:
            return standard_help + self._render_plain_extras()

        parts: list[str] = []
        current_section: str | None = None
        section_lines: list[str] = []
        for line in standard_help.split("\n"):
            if line and not line[0].isspace() and line.endswith(":"):
                if current_section is not None:
                    parts.append(self._render_section(current_section, section_lines))
                current_section = line[:-1]
                section_lines = []
            elif current_section is None:
                parts.append(line)
            else:
                section_lines.append(line)
        if current_section is not None:
            parts.append(self._render_section(current_section, section_lines))

        if self._examples:
            parts.append(self._render_examples())
        if self._env_vars:
            parts.append(self._render_env_vars())
        if self._tips:
            parts.append(self._render_tips())
        return "\n".join(parts)

    def _capture(self, *renderables: Any) -> str:
        with self.console.capture() as capture:
            for renderable in renderables:
                self.console.print(renderable)
        return capture.get()

    def _render_section(self, title: str, lines: list[str]) -> str:
        content = "\n".join(lines).rstrip()
        heading = self._capture(Text(f"{title}:", style=self.SECTION_STYLE))
        return f"{heading}{content}\n" if content else heading

    def _render_examples(self) -> str:
        renderables: list[Any] = [Text("Examples:", style=self.SECTION_STYLE)]
        for index, (description, command) in enumerate(self._examples, 1):
            line = Text()
            line.append(f"  {index}. ", style="dim cyan")
            line.append(description, style="bright_white")
            renderables.append(line)
            renderables.append(Text(f"     $ {command}", style="bright_yellow"))
        return self._capture(*renderables)

    def _render_env_vars(self) -> str:
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Variable", style="bright_green bold", no_wrap=True)
        table.add_column("Description", style="bright_white")
        for name, description in self._env_vars:
            table.add_row(name, description)
        return self._capture(Text("Environment Variables:", style=self.SECTION_STYLE), table)

    def _render_tips(self) -> str:
        renderables: list[Any] = [Text("Tips:", style=self.SECTION_STYLE)]
        for tip in self._tips:
            line = Text()
            line.append("  * ", style="bright_yellow")
            line.append(tip, style="bright_white")
            renderables.append(line)
        return self._capture(*renderables)

    def _render_plain_extras(self) -> str:
        lines: list[str] = []
        if self._examples:
            lines.append("\nexamples:")
            for description, command in self._examples:
                lines.append(f"  {description}")
                lines.append(f"    $ {command}")
        if self._env_vars:
            lines.append("\nenvironment variables:")
            lines.extend(f"  {name:<24}{description}" for name, description in self._env_vars)
        if self._tips:
            lines.append("\ntips:")
            lines.extend(f"  - {tip}" for tip in self._tips)
        return "\n".join(lines) + ("\n" if lines else "")


class RichArgumentParser(argparse.ArgumentParser):
    """ArgumentParser whose help carries the examples and tips of a CommandHelp."""

    def __init__(self, *args: Any, command_help: CommandHelp | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", RichHelpFormatter)
        # ArgumentParser.__init__ already builds a formatter when adding -h
        self.command_help = command_help
        super().__init__(*args, **kwargs)

    def format_usage(self) -> str:
        # usage lines on errors stay plain and without examples
        formatter = argparse.HelpFormatter(prog=self.prog)
        formatter.add_usage(self.usage, self._actions, self._mutually_exclusive_groups)
        return formatter.format_help()

    def _get_formatter(self, *args: Any, **kwargs: Any) -> argparse.HelpFormatter:
        formatter = super()._get_formatter(*args, **kwargs)
        if self.command_help is not None and isinstance(formatter, RichHelpFormatter):
            formatter.add_command_help(self.command_help)
        return formatter
