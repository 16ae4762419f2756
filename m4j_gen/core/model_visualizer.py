"""Terminal visualization for workload models.

This module provides Rich-based terminal output for workload models,
showing the behavior mix and the states and transitions of every
behavior model.
"""

import math
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from m4j_gen.core.model import EXIT_STATE, BehaviorModel, ThinkTime, WorkloadModel


class ModelVisualizer:
    """Visualize workload models in terminal with Rich formatting.

    Example:
        >>> visualizer = ModelVisualizer()
        >>> visualizer.visualize(workload_model)
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        """Initialize visualizer.

        Args:
            console: Rich Console instance (creates new one if not provided)
        """
        self.console = console or Console()

    def visualize(self, workload_model: WorkloadModel) -> None:
        """Display workload model in terminal.

        Args:
            workload_model: Parsed workload model to visualize
        """
        self.console.print()
        self.console.print(
            f"[bold blue]Workload model:[/bold blue] {workload_model.name}",
            highlight=False,
        )
        self._render_settings(workload_model)
        self.console.print()

        self.console.print(self._render_behavior_mix(workload_model))

        for behavior_model in workload_model.behavior_models:
            self.console.print()
            self.console.print(self._render_behavior_model(behavior_model))

    def _render_settings(self, workload_model: WorkloadModel) -> None:
        """Render workload model settings summary."""
        intensity = workload_model.workload_intensity
        parts = [f"Intensity: {intensity.type} {intensity.formula}"]

        if workload_model.base_url:
            parts.append(f"Base URL: {workload_model.base_url}")

        if workload_model.variables:
            parts.append(f"Variables: {len(workload_model.variables)}")

        self.console.print(f"[dim]{' | '.join(parts)}[/dim]")

    def _render_behavior_mix(self, workload_model: WorkloadModel) -> Table:
        """Render behavior mix as table with relative shares."""
        table = Table(title="Behavior Mix", show_header=True, header_style="bold cyan")
        table.add_column("Behavior Model", style="cyan")
        table.add_column("Frequency", justify="right")
        table.add_column("Share", justify="right")

        if workload_model.behavior_mix:
            rows = [(e.behavior_model, e.frequency) for e in workload_model.behavior_mix]
        else:
            rows = [(m.name, 1.0) for m in workload_model.behavior_models]

        total = math.fsum(frequency for _, frequency in rows)
        for name, frequency in rows:
            share = f"{frequency / total:.1%}" if total > 0 else "-"
            table.add_row(name, f"{frequency:g}", share)
        return table

    def _render_behavior_model(self, behavior_model: BehaviorModel) -> Panel:
        """Render states and transitions of one behavior model."""
        table = Table(show_header=True, header_style="bold", expand=True)
        table.add_column("State", style="cyan")
        table.add_column("Requests")
        table.add_column("Transitions")

        for state in behavior_model.states:
            requests = Text()
            for i, request in enumerate(state.requests):
                if i:
                    requests.append("\n")
                requests.append(f"{request.method} ", style=f"bold {self._get_method_color(request.method)}")
                requests.append(request.path)
            if state.think_time:
                requests.append(f"\nthink_time: {self._format_think_time(state.think_time)}", style="magenta")

            transitions = Text()
            for i, transition in enumerate(state.transitions):
                if i:
                    transitions.append("\n")
                target_style = "red" if transition.target == EXIT_STATE else "cyan"
                transitions.append(transition.target, style=target_style)
                transitions.append(f" p={transition.probability:g}")
                if transition.think_time:
                    transitions.append(
                        f" ({self._format_think_time(transition.think_time)})", style="magenta"
                    )
                if transition.guard:
                    transitions.append(f" [{transition.guard}]", style="dim")
            if not state.transitions:
                transitions.append(f"-> {EXIT_STATE}", style="dim red")

            name = state.name
            if name == behavior_model.entry_state:
                name = f"{name} (initial)"
            table.add_row(name, requests, transitions)

        return Panel(
            table,
            title=f"[bold]{behavior_model.name}[/bold]",
            title_align="left",
            border_style="blue",
            padding=(0, 1),
        )

    def _format_think_time(self, think_time: ThinkTime) -> str:
        if think_time.deviation:
            return f"{think_time.mean:g}ms ±{think_time.deviation:g}ms"
        return f"{think_time.mean:g}ms"

    def _get_method_color(self, method: str) -> str:
        """Get color for HTTP method."""
        colors = {
            "GET": "green",
            "POST": "blue",
            "PUT": "yellow",
            "PATCH": "yellow",
            "DELETE": "red",
            "HEAD": "cyan",
            "OPTIONS": "magenta",
        }
        return colors.get(method.upper(), "white")
