"""Command-line interface for the Markov4JMeter Test Plan Generator.

This module provides a Click-based CLI for generating JMeter JMX files
from probabilistic workload models.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

from m4j_gen import __version__
from m4j_gen.core.behavior_csv import BehaviorModelCSVWriter, LineBreakType
from m4j_gen.core.filters import create_filters
from m4j_gen.core.model_visualizer import ModelVisualizer
from m4j_gen.core.test_plan import ElementKind
from m4j_gen.core.test_plan_generator import TestPlanGenerator
from m4j_gen.core.transformer import SimpleTestPlanTransformer
from m4j_gen.core.workload_model_parser import WorkloadModelParser
from m4j_gen.exceptions import EngineException, M4JGenException

console = Console()

CONFIGURATION_DIR = Path(__file__).parent / "configuration"
GENERATOR_DEFAULT_PROPERTIES = CONFIGURATION_DIR / "generator.default.properties"
TESTPLAN_DEFAULT_PROPERTIES = CONFIGURATION_DIR / "testplan.default.properties"


def _configure_logging(verbose: bool) -> None:
    """Route log records of the generator through Rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
        force=True,
    )


def _validate_filters(ctx: click.Context, param: click.Parameter, value: str) -> str:
    """Reject unknown filter flags before anything is generated."""
    try:
        create_filters(value)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e
    return value


def _print_error(error: M4JGenException) -> None:
    """Print a categorized failure, e.g. "[ModelLoadError] ..."."""
    message = escape(f"[{error.category}] {error}")
    console.print(f"\n[bold red]Error:[/bold red] {message}")


@click.group()
@click.version_option(version=__version__, prog_name="m4j-gen")
def cli():
    """Markov4JMeter Test Plan Generator - Generate JMX test plans from workload models.

    A workload model describes user sessions as probabilistic state graphs
    (behavior models), their mix and the number of concurrent sessions.
    The generator turns it into a JMeter Test Plan that replays these
    sessions with weighted random transitions.
    """
    pass


@cli.command()
@click.option(
    "-i",
    "--input",
    "input_path",
    required=True,
    help="Workload model file (YAML)",
    type=click.Path(dir_okay=False),
)
@click.option(
    "-o",
    "--output",
    "output_path",
    required=True,
    help="Output JMX file path (the directory must exist)",
    type=click.Path(dir_okay=False),
)
@click.option(
    "-t",
    "--testplan-properties",
    default=str(TESTPLAN_DEFAULT_PROPERTIES),
    show_default="bundled testplan.default.properties",
    help="Test Plan default properties (.properties or .yaml)",
    type=click.Path(dir_okay=False),
)
@click.option(
    "-g",
    "--generator-properties",
    default=str(GENERATOR_DEFAULT_PROPERTIES),
    show_default="bundled generator.default.properties",
    help="Generator properties (.properties or .yaml)",
    type=click.Path(dir_okay=False),
)
@click.option(
    "-f",
    "--filters",
    "filter_flags",
    default="H",
    show_default=True,
    callback=_validate_filters,
    help="Filters to apply, in order: H = default headers, G = gaussian think times (e.g. HG, \"\" for none)",
)
@click.option(
    "-p",
    "--path",
    "behavior_models_path",
    default=None,
    help="Also export every behavior model as CSV matrix into this existing directory",
    type=click.Path(file_okay=False),
)
@click.option(
    "-l",
    "--linebreak",
    "line_break",
    default=LineBreakType.UNIX.value,
    show_default=True,
    help="Line break of exported behavior model files",
    type=click.Choice([t.value for t in LineBreakType], case_sensitive=False),
)
@click.option(
    "--think-time-mean",
    default=300.0,
    help="Mean of gaussian think times in ms (filter G, default: 300)",
    type=click.FloatRange(min=0),
)
@click.option(
    "--think-time-deviation",
    default=100.0,
    help="Deviation of gaussian think times in ms (filter G, default: 100)",
    type=click.FloatRange(min=0),
)
@click.option(
    "-r",
    "--run",
    "run_test",
    is_flag=True,
    default=False,
    help="Run the generated Test Plan with JMeter (requires jmeter_home)",
)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Show debug output",
)
def generate(
    input_path: str,
    output_path: str,
    testplan_properties: str,
    generator_properties: str,
    filter_flags: str,
    behavior_models_path: Optional[str],
    line_break: str,
    think_time_mean: float,
    think_time_deviation: float,
    run_test: bool,
    verbose: bool,
):
    """Generate a JMeter Test Plan from a workload model.

    Examples:
        m4j-gen generate -i workload.yaml -o testplan.jmx
        m4j-gen generate -i workload.yaml -o testplan.jmx -f HG -r
        m4j-gen generate -i workload.yaml -o testplan.jmx -p behaviors/ -l windows
    """
    _configure_logging(verbose)

    generator = TestPlanGenerator()
    if not generator.init(generator_properties, testplan_properties):
        console.print("\n[bold red]Error:[/bold red] Initialization of Test Plan Generator failed")
        sys.exit(1)

    filters = create_filters(filter_flags, think_time_mean, think_time_deviation)
    if behavior_models_path is None:
        transformer = SimpleTestPlanTransformer()
    else:
        transformer = SimpleTestPlanTransformer(
            BehaviorModelCSVWriter(line_break.lower()), behavior_models_path
        )

    console.print(f"\n[bold]Generating Test Plan:[/bold] {output_path}")
    try:
        tree = generator.generate_from_file(input_path, output_path, transformer, filters)
    except M4JGenException as e:
        _print_error(e)
        sys.exit(1)

    if tree is None:
        console.print("\n[bold red]Error:[/bold red] Test Plan generation failed")
        sys.exit(1)

    filter_names = ", ".join(f.name for f in filters) or "none"
    behavior_models = Path(behavior_models_path).absolute() if behavior_models_path else "not exported"
    panel = Panel(
        f"[bold green]Test Plan generated successfully![/bold green]\n\n"
        f"[cyan]File:[/cyan] {Path(output_path).absolute()}\n"
        f"[cyan]Elements:[/cyan] {tree.count()}\n"
        f"[cyan]Sessions:[/cyan] {len(tree.find_all(kind=ElementKind.SESSION_CONTROLLER))}\n"
        f"[cyan]States:[/cyan] {len(tree.find_all(kind=ElementKind.REQUEST_CONTROLLER))}\n"
        f"[cyan]HTTP Samplers:[/cyan] {len(tree.find_all(test_class='HTTPSamplerProxy'))}\n"
        f"[cyan]Filters:[/cyan] {filter_names}\n"
        f"[cyan]Behavior Models:[/cyan] {behavior_models}\n\n"
        f"[dim]Next step: Open in JMeter GUI or run headless[/dim]",
        title="Generation Complete",
        border_style="green",
    )
    console.print(panel)

    if run_test:
        _run_test_plan(generator, output_path)


def _run_test_plan(generator: TestPlanGenerator, output_path: str) -> None:
    """Run the generated file with the gateway of the initialized generator."""
    engine = generator.engine
    if engine is None or not engine.enabled:
        console.print(
            "\n[bold red]Error:[/bold red] Could not run Test Plan: "
            "jmeter_home is not set in the generator properties"
        )
        sys.exit(1)

    console.print(f"\n[bold]Running Test Plan:[/bold] {output_path}")
    try:
        exit_code = engine.run(output_path)
    except EngineException as e:
        console.print(f"\n[bold red]Error:[/bold red] Could not run Test Plan: {escape(str(e))}")
        sys.exit(1)

    if exit_code != 0:
        console.print(f"\n[bold red]Error:[/bold red] JMeter finished with exit code {exit_code}")
        sys.exit(exit_code)
    console.print("[green]✓[/green] Test run finished")


@cli.command()
@click.argument("model_path", type=click.Path(exists=True, dir_okay=False))
def show(model_path: str):
    """Show behavior models, mix and transitions of a workload model.

    Example:
        m4j-gen show workload.yaml
    """
    try:
        workload_model = WorkloadModelParser().parse(model_path)
    except M4JGenException as e:
        _print_error(e)
        sys.exit(1)

    ModelVisualizer(console).visualize(workload_model)


def main(argv: Optional[list[str]] = None):
    """Entry point for CLI application."""
    cli(argv)


if __name__ == "__main__":
    main()
