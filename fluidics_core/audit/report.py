"""
Solve Report

Terminal summary of a backend run: status, solved intervals per entity, and
solved symbols that could not be written back to the schematic.
"""

from typing import List, Optional, Tuple

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..backend import BackendResult
from ..smt2.symbols import DELIMITER


class SolveReport:
    def __init__(
        self,
        width: int = 92,
        max_items: int = 50,
        precision: int = 6,
        console: Optional[Console] = None,
    ):
        self.console = console or Console()
        self.width = width
        self.max_items = max_items
        self.precision = precision

    def render(self, run: BackendResult, title: str = "Microfluidic Solve"):
        self.console.print()

        if run.result is None:
            status_text, style = "⚙️  GENERATED (NOT SOLVED)", "yellow"
        elif run.result.satisfiable:
            status_text, style = "✅ SATISFIABLE", "green"
        else:
            status_text, style = "⛔ UNSATISFIABLE", "red"

        self.console.print(
            Panel(
                Text(status_text, justify="center", style=f"bold {style}"),
                title=f"[white]{title}: {run.schematic_name}[/]",
                border_style=style,
                width=self.width,
            )
        )

        if run.result is not None and run.result.satisfiable:
            table = Table(
                title="Solved Values",
                box=box.SIMPLE,
                show_header=True,
                header_style="bold cyan",
                width=self.width,
            )
            table.add_column("Entity", style="cyan", width=20)
            table.add_column("Attribute", style="cyan", width=24)
            table.add_column("Interval", style="white")
            table.add_column("Midpoint", style="bold white")

            rows = self._rows(run)
            for i, (entity, attribute, interval, mid) in enumerate(rows):
                if i >= self.max_items:
                    table.add_row("…", "", f"(truncated after {self.max_items} symbols)", "")
                    break
                table.add_row(entity, attribute, interval, mid)
            self.console.print(table)

        if run.skipped_symbols:
            self.console.print()
            skipped = Table(title="Not Written Back", box=box.ROUNDED, style="yellow", width=self.width)
            skipped.add_column("Symbol", style="yellow")
            for name in run.skipped_symbols:
                skipped.add_row(name)
            self.console.print(skipped)

        self.console.print()
        footer = Text.assemble(
            ("Expressions: ", "dim"),
            (str(len(run.expressions)), "bold white"),
            (" | ", "dim"),
            ("Latency: ", "dim"),
            (f"{run.latency_ms:.3f}ms", "bold white"),
        )
        if run.smt2_path is not None:
            footer.append(" | ", style="dim")
            footer.append(str(run.smt2_path), style="dim")
        self.console.print(footer, justify="right", width=self.width)
        self.console.print()

    def _rows(self, run: BackendResult) -> List[Tuple[str, str, str, str]]:
        rows = []
        for name in sorted(run.result.intervals):
            lower, upper = run.result.intervals[name]
            entity, _, attribute = name.rpartition(DELIMITER)
            interval = f"[{lower:.{self.precision}g}, {upper:.{self.precision}g}]"
            mid = f"{run.result.midpoint(name):.{self.precision}g}"
            rows.append((entity or "-", attribute, interval, mid))
        return rows
