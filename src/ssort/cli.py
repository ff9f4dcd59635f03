"""Command-line interface for ssort."""

from pathlib import Path
from typing import Annotated, Any, Optional

import click
import typer
from click.core import ParameterSource
from rich.console import Console
from rich.markup import escape

from . import __version__
from .config_file import (
    DurationError,
    FilterFile,
    FilterFileError,
    command_argv,
    parse_duration,
    parse_filter_file,
    split_filters,
)
from .line_source import LineSource, SourceStartError
from .matcher import FilterPatternError
from .models import RunConfig
from .output_sink import OutputFile, OutputSink
from .reorderer import Reorderer

app = typer.Typer(
    name="ssort",
    help="Reorder a line stream so lines matching earlier filters come first.",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)

# Options the argument line of a filter file may set
FILE_OPTIONS = (
    "filters",
    "only_matching",
    "keep_going",
    "ignore_case",
    "limit",
    "timeout",
    "color",
    "word_boundary",
    "exec_command",
)

EXIT_INTERRUPTED = 130


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"ssort {__version__}")
        raise typer.Exit()


@app.command()
def main(
    ctx: typer.Context,
    filter_file: Annotated[
        Optional[Path],
        typer.Argument(
            help="File with one filter per line, optionally preceded by an option line.",
        ),
    ] = None,
    filters: Annotated[
        Optional[str],
        typer.Option(
            "--filters",
            "-f",
            help="Comma separated list of prioritized strings.",
        ),
    ] = None,
    only_matching: Annotated[
        bool,
        typer.Option(
            "--only-matching",
            "-o",
            help="Output only matching lines.",
        ),
    ] = False,
    keep_going: Annotated[
        bool,
        typer.Option(
            "--keep-going",
            "-k",
            help="Output unmatched lines immediately, unsorted.",
        ),
    ] = False,
    ignore_case: Annotated[
        bool,
        typer.Option(
            "--ignore-case",
            "-i",
            help="Ignore case.",
        ),
    ] = False,
    word_boundary: Annotated[
        bool,
        typer.Option(
            "--word-boundary",
            "-w",
            help="Match on word boundaries only.",
        ),
    ] = False,
    limit: Annotated[
        int,
        typer.Option(
            "--limit",
            min=0,
            help="Flush after N prioritized matches and stop after N results (0 = off).",
        ),
    ] = 0,
    timeout: Annotated[
        str,
        typer.Option(
            "--timeout",
            help="Flush timeout, e.g. 500ms, 2s, 1m30s.",
        ),
    ] = "500ms",
    color: Annotated[
        bool,
        typer.Option(
            "--color",
            help="Ignore ANSI color codes when matching and sorting.",
        ),
    ] = False,
    exec_command: Annotated[
        Optional[str],
        typer.Option(
            "--exec",
            "-e",
            help="Execute command and sort its output instead of stdin.",
        ),
    ] = None,
    output: Annotated[
        str,
        typer.Option(
            "--output",
            help="Write results to a file (default: stdout).",
        ),
    ] = "stdout",
    stats: Annotated[
        bool,
        typer.Option(
            "--stats",
            "-s",
            help="Show routing statistics at the end.",
        ),
    ] = False,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Reorder lines from stdin (or --exec) by filter priority.

    Lines matching the first filter are printed at once. Lines matching
    later filters are held back and printed sorted by filter order, either
    every --timeout or after --limit prioritized matches. Unmatched lines
    come last unless -k or -o is given.

    Examples:
        tail -f app.log | ssort -f ERROR,WARN
        ssort -i -w -f error,warning -e "journalctl -f"
        ssort --limit 20 filters.txt < build.log
    """
    values = dict(ctx.params)
    file_filters: list[str] = []

    if filter_file is not None:
        parsed = _load_filter_file(filter_file)
        values = merge_file_options(
            values,
            _parse_file_args(ctx, parsed),
            explicit=explicit_options(ctx),
        )
        file_filters = parsed.filters

    try:
        config = build_config(values, file_filters)
    except DurationError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    output_file = OutputFile(output)
    try:
        stream = output_file.open()
    except OSError as e:
        err_console.print(
            f"[red]Error opening output {escape(output)}:[/red] {escape(str(e))}"
        )
        raise typer.Exit(1)

    try:
        _run(config, stream, show_stats=stats)
    finally:
        output_file.close()


def _run(config: RunConfig, stream, show_stats: bool = False) -> None:
    """Set up the pipeline, run it to the end of input and report."""
    sink = OutputSink(stream, budget=config.budget, on_error=_report_write_error)

    try:
        reorderer = Reorderer(config, sink)
    except FilterPatternError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)

    source = _open_source(config)
    sink.start()
    source.start()

    try:
        reorderer.run(source)
    except KeyboardInterrupt:
        source.terminate()
        err_console.print("\n[dim]Interrupted.[/dim]")
        raise typer.Exit(EXIT_INTERRUPTED)

    if show_stats:
        err_console.print()
        err_console.print("[bold]Reorder Statistics:[/bold]")
        err_console.print(
            reorderer.stats.summary(config.filters), markup=False, highlight=False
        )


def _open_source(config: RunConfig) -> LineSource:
    """Create the line source: the --exec command, or stdin."""
    if config.exec_command is None:
        return LineSource.from_stdin(on_error=_report_read_error)

    try:
        argv = command_argv(config.exec_command)
        return LineSource.from_command(argv, on_error=_report_read_error)
    except ValueError as e:
        err_console.print(f"[red]Invalid command:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except SourceStartError as e:
        err_console.print(f"[red]{escape(str(e))}[/red]")
        raise typer.Exit(1)


def _report_read_error(error: Exception) -> None:
    err_console.print(f"[red]Error reading input:[/red] {escape(str(error))}")


def _report_write_error(error: Exception) -> None:
    err_console.print(f"[red]Error writing output:[/red] {escape(str(error))}")


def _load_filter_file(path: Path) -> FilterFile:
    """Load a filter file, exiting on errors."""
    try:
        return parse_filter_file(path)
    except OSError as e:
        err_console.print(f"[red]Error reading filter file:[/red] {escape(str(e))}")
        raise typer.Exit(1)
    except FilterFileError as e:
        err_console.print(f"[red]Error parsing {escape(str(path))}:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def _parse_file_args(ctx: typer.Context, parsed: FilterFile) -> dict[str, Any]:
    """Parse a filter file's argument line with the command's own options."""
    if not parsed.args:
        return {}

    try:
        file_ctx = ctx.command.make_context(
            ctx.info_name or "ssort", list(parsed.args)
        )
    except click.ClickException as e:
        err_console.print(
            f"[red]Error parsing args in filter file:[/red] {escape(e.format_message())}"
        )
        raise typer.Exit(1)

    return {name: file_ctx.params[name] for name in FILE_OPTIONS if name in file_ctx.params}


def explicit_options(ctx: click.Context) -> set[str]:
    """Names of the options given explicitly on the command line."""
    explicit = set()
    for name in FILE_OPTIONS:
        source = ctx.get_parameter_source(name)
        if source is not None and source not in (
            ParameterSource.DEFAULT,
            ParameterSource.DEFAULT_MAP,
        ):
            explicit.add(name)
    return explicit


def merge_file_options(
    cli_values: dict[str, Any],
    file_values: dict[str, Any],
    explicit: set[str],
) -> dict[str, Any]:
    """Layer option values: defaults < filter file < command line.

    Args:
        cli_values: Values from the command line, defaults included.
        file_values: Values parsed from the filter file's argument line.
        explicit: Options given explicitly on the command line.

    Returns:
        The merged option values.
    """
    merged = dict(cli_values)
    for name, value in file_values.items():
        if name not in explicit:
            merged[name] = value
    return merged


def build_config(values: dict[str, Any], file_filters: list[str]) -> RunConfig:
    """Build the run configuration from merged option values.

    Filters from the file come first, then those given with --filters.

    Raises:
        DurationError: If the timeout is invalid or not positive.
    """
    timeout = parse_duration(values["timeout"])
    if timeout <= 0:
        raise DurationError(f"Flush timeout must be positive: {values['timeout']!r}")

    return RunConfig(
        filters=tuple(file_filters + split_filters(values["filters"])),
        ignore_case=values["ignore_case"],
        word_boundary=values["word_boundary"],
        only_matching=values["only_matching"],
        keep_unmatched=values["keep_going"],
        limit=values["limit"],
        timeout=timeout,
        color=values["color"],
        exec_command=values["exec_command"] or None,
    )


if __name__ == "__main__":
    app()
