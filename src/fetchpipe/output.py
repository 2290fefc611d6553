"""Terminal output for fetchpipe: decoded data on stdout, diagnostics on stderr.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** carries nothing but decoded response bodies, so that
  ``fetchpipe request GET /users --json | jq`` always sees valid data.
* **stderr** carries everything else: the unauthorized warning, one line
  per failed call from :mod:`fetchpipe.boundary`, and the ``--verbose``
  trace of each pipeline step.
* ``AUTO`` format means Rich when stdout is an interactive terminal and
  plain text when piped. ``NO_COLOR``, ``TERM=dumb`` and ``--no-color``
  turn colour off.

Diagnostic lines are built as :class:`rich.text.Text` rather than markup
strings because they routinely embed response bodies, and a body such as
``[{"error": "bad"}]`` must be printed verbatim.

:class:`OutputManager` is created once per CLI invocation in
:func:`~fetchpipe.app.main_callback` and installed with :func:`set_output`;
library code reaches it through the module-level helpers.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from typing import Any, NamedTuple, Optional

from pydantic import BaseModel
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text


class OutputFormat(str, Enum):
    """How decoded data is rendered on stdout.

    ``AUTO`` resolves to ``RICH`` on a colour-capable TTY and to ``PLAIN``
    otherwise.
    """

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


class _Level(NamedTuple):
    prefix: str
    prefix_style: str
    body_style: str
    quiet_hides: bool


_LEVELS: dict[str, _Level] = {
    "info": _Level("", "", "", True),
    "success": _Level("", "green", "green", True),
    "suggest": _Level("→ ", "dim", "dim", True),
    "warning": _Level("Warning: ", "yellow", "", False),
    "error": _Level("Error: ", "bold red", "", False),
    "debug": _Level("[debug] ", "dim", "dim", False),
}


def to_jsonable(data: Any) -> Any:
    """Convert a decoded value into plain JSON types.

    Pydantic models (the result of ``send(..., decode_as=Model)``) are
    dumped in JSON mode; containers are converted recursively.
    """
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, (list, tuple)):
        return [to_jsonable(item) for item in data]
    if isinstance(data, dict):
        return {str(key): to_jsonable(value) for key, value in data.items()}
    return data


def _as_records(data: Any) -> Optional[list[dict[str, Any]]]:
    """Return *data* if it is a non-empty list of flat dicts sharing the same keys."""
    if not isinstance(data, list) or not data:
        return None
    if not all(isinstance(item, dict) for item in data):
        return None
    keys = list(data[0])
    for item in data:
        if list(item) != keys:
            return None
        if any(isinstance(value, (dict, list)) for value in item.values()):
            return None
    return data


class OutputManager:
    """Routes decoded data to stdout and diagnostics to stderr.

    Args:
        format: Rendering for decoded data. ``AUTO`` resolves on TTY
            detection.
        no_color: Disable colour and Rich styling.
        quiet: Hide ``info``, ``success`` and ``suggest`` lines. Warnings
            and errors are always shown.
        verbose: Show ``debug`` lines (the per-call pipeline trace).
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._quiet = quiet
        self._verbose = verbose

        if format == OutputFormat.AUTO:
            use_rich = _is_tty() and not self._no_color
            self._format = OutputFormat.RICH if use_rich else OutputFormat.PLAIN
        else:
            self._format = format

        self._stdout = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=(self._format == OutputFormat.RICH),
        )
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    @property
    def is_quiet(self) -> bool:
        return self._quiet

    @property
    def is_verbose(self) -> bool:
        return self._verbose

    # ------------------------------------------------------------------ #
    # stdout
    # ------------------------------------------------------------------ #

    def format_response(self, data: Any) -> None:
        """Render one decoded response body.

        * JSON -- indented JSON document.
        * PLAIN -- ``key<TAB>value`` for objects, one tab-separated row per
          element for lists.
        * RICH -- a table for lists of flat records, highlighted JSON for
          other containers, the bare value otherwise.
        """
        data = to_jsonable(data)
        if self._format == OutputFormat.JSON:
            self.print_data(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        elif self._format == OutputFormat.PLAIN:
            for line in _plain_lines(data):
                self.print_data(line)
        else:
            self._render_rich(data)

    def print_data(self, text: str) -> None:
        """Write one line of data to stdout."""
        print(text, file=sys.stdout, flush=True)

    def print_table(
        self,
        headers: list[str],
        rows: list[list[str]],
        title: Optional[str] = None,
    ) -> None:
        """Write a table: JSON records, tab-separated lines, or a Rich table."""
        if self._format == OutputFormat.JSON:
            records = [dict(zip(headers, row)) for row in rows]
            self.print_data(json.dumps(records, indent=2, ensure_ascii=False))
            return
        if self._format == OutputFormat.PLAIN:
            for line in [headers, *rows]:
                self.print_data("\t".join(line))
            return

        table = Table(title=title, show_header=True, header_style="bold cyan")
        for header in headers:
            table.add_column(header)
        for row in rows:
            table.add_row(*row)
        self._stdout.print(table)

    # ------------------------------------------------------------------ #
    # stderr
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        self._emit("info", message)

    def success(self, message: str) -> None:
        self._emit("success", message)

    def suggest(self, message: str) -> None:
        """A next step the user may want to run."""
        self._emit("suggest", message)

    def warning(self, message: str) -> None:
        self._emit("warning", message)

    def error(self, message: str) -> None:
        self._emit("error", message)

    def debug(self, message: str) -> None:
        """Pipeline trace line, shown only with ``--verbose``."""
        if self._verbose:
            self._emit("debug", message)

    def _emit(self, level: str, message: str) -> None:
        spec = _LEVELS[level]
        if spec.quiet_hides and self._quiet:
            return
        if self._no_color:
            print(f"{spec.prefix}{message}", file=sys.stderr, flush=True)
            return
        self._stderr.print(
            Text.assemble((spec.prefix, spec.prefix_style), (message, spec.body_style))
        )

    def _render_rich(self, data: Any) -> None:
        records = _as_records(data)
        if records is not None:
            headers = list(records[0])
            rows = [[_cell(record[h]) for h in headers] for record in records]
            self.print_table(headers, rows)
        elif isinstance(data, (dict, list)):
            rendered = json.dumps(data, indent=2, ensure_ascii=False, default=str)
            self._stdout.print(Syntax(rendered, "json", theme="monokai", word_wrap=True))
        else:
            self._stdout.print(Text(str(data)))


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def _plain_lines(data: Any) -> list[str]:
    if isinstance(data, dict):
        return [f"{key}\t{value}" for key, value in data.items()]
    if isinstance(data, list):
        return [
            "\t".join(str(v) for v in item.values()) if isinstance(item, dict) else str(item)
            for item in data
        ]
    return [str(data)]


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """``NO_COLOR`` (any value, even empty) or ``TERM=dumb`` disables colour."""
    return os.environ.get("NO_COLOR") is not None or os.environ.get("TERM") == "dumb"


# ------------------------------------------------------------------ #
# Process-wide instance
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one on first use."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager. Tests call this between runs."""
    global _output
    _output = None


def format_response(data: Any) -> None:
    get_output().format_response(data)


def print_table(
    headers: list[str],
    rows: list[list[str]],
    title: Optional[str] = None,
) -> None:
    get_output().print_table(headers, rows, title)


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def suggest(message: str) -> None:
    get_output().suggest(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)


def debug(message: str) -> None:
    get_output().debug(message)
