"""Command-line interface.

Usage:
    make-it-heavy                          # interactive mode
    make-it-heavy "your question"          # single query
    make-it-heavy --agents 6 --debug "..."
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import time
from collections.abc import Sequence
from pathlib import Path

from rich.console import Console, Group
from rich.live import Live
from rich.markdown import Markdown
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from heavy.core.orchestrator import Orchestrator
from heavy.llm.factory import create_gateway
from heavy.models import ProgressStatus, TaskRun
from heavy.tools.builtin import create_default_registry
from heavy.utils.config import AppConfig, LogFormat, init_config
from heavy.utils.exceptions import ConfigurationError
from heavy.utils.logging import get_logger, setup_logging
from heavy.utils.output import save_output

logger = get_logger(__name__)

EXIT_COMMANDS = {"quit", "exit", "bye"}
HELP_COMMANDS = {"help", "--help", "-h"}

BAR_WIDTH = 60
ORANGE = "color(208)"

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "configs" / "app.yaml"


def format_elapsed(seconds: float) -> str:
    """Compact elapsed time: ``45S``, ``2M5S``, ``1H3M``."""
    if seconds < 60:
        return f"{int(seconds)}S"
    if seconds < 3600:
        return f"{int(seconds // 60)}M{int(seconds % 60)}S"
    return f"{int(seconds // 3600)}H{int(seconds % 3600 // 60)}M"


def model_label(model: str) -> str:
    """Header label derived from a model id such as ``moonshotai/kimi-k2``."""
    name = model.rsplit("/", 1)[-1].upper().replace("_", "-")
    return f"MAKE IT HEAVY • {name}"


def progress_bar(status: ProgressStatus) -> Text:
    """One agent's status line body."""
    if status == ProgressStatus.QUEUED:
        return Text("○ " + "·" * BAR_WIDTH, style="dim")
    if status == ProgressStatus.INITIALIZING:
        return Text.assemble(("◐ ", ORANGE), "·" * BAR_WIDTH)
    if status == ProgressStatus.PROCESSING:
        filled = BAR_WIDTH // 6
        return Text.assemble(
            ("● ", ORANGE), (":" * filled, ORANGE), "·" * (BAR_WIDTH - filled)
        )
    if status == ProgressStatus.COMPLETED:
        return Text.assemble(("● ", ORANGE), (":" * BAR_WIDTH, ORANGE))
    return Text.assemble(("✗ ", "red"), ("×" * BAR_WIDTH, "red"))


def render_progress(
    label: str,
    statuses: Sequence[ProgressStatus],
    elapsed: float,
    running: bool = True,
) -> Panel:
    """Build the live progress panel."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold")
    table.add_column()
    for index, status in enumerate(statuses):
        table.add_row(f"AGENT {index + 1:02d}", progress_bar(status))

    state = "RUNNING" if running else "COMPLETED"
    header = Text(f"● {state} • {format_elapsed(elapsed)}", style=ORANGE)
    return Panel(Group(header, Text(""), table), title=label, border_style=ORANGE)


def build_orchestrator(config: AppConfig, num_agents: int | None = None) -> Orchestrator:
    """Wire an orchestrator from config.

    Raises:
        MissingConfigurationError: If no LLM API key is configured.
    """
    gateway = create_gateway(config)
    tools = create_default_registry(config)
    return Orchestrator.from_config(config, gateway, tools, num_agents=num_agents)


async def run_with_progress(
    orchestrator: Orchestrator,
    query: str,
    console: Console,
    label: str,
    refresh_seconds: float = 0.25,
) -> TaskRun:
    """Run ``query`` while redrawing the progress panel until it finishes."""
    started = time.monotonic()
    task = asyncio.create_task(orchestrator.run(query))

    def panel(running: bool) -> Panel:
        return render_progress(
            label, orchestrator.progress_snapshot(), time.monotonic() - started, running
        )

    with Live(panel(True), console=console, refresh_per_second=4) as live:
        while not task.done():
            await asyncio.wait([task], timeout=refresh_seconds)
            live.update(panel(not task.done()))

    return task.result()


def print_help(console: Console, config: AppConfig, num_agents: int) -> None:
    table = Table(show_header=False, box=None)
    table.add_column(style="cyan")
    table.add_column()
    table.add_row("help, --help, -h", "Show this help message")
    table.add_row("quit, exit, bye", "Exit the application")
    table.add_row("<your question>", "Start a multi-agent analysis")
    table.add_row("", "")
    table.add_row("Model", config.llm.resolved_model)
    table.add_row("Parallel agents", str(num_agents))
    table.add_row("Agent timeout", f"{config.orchestrator.task_timeout}s")
    console.print(Panel(table, title="Make It Heavy", border_style="cyan"))


class HeavyCLI:
    """Runs queries against one orchestrator and prints the answers."""

    def __init__(
        self,
        orchestrator: Orchestrator,
        config: AppConfig,
        console: Console | None = None,
        save: bool = True,
    ) -> None:
        self.orchestrator = orchestrator
        self.config = config
        self.console = console or Console()
        self.save = save and config.output.enabled
        self.label = model_label(config.llm.resolved_model)

    async def run_query(self, query: str) -> TaskRun:
        """Run one query with live progress, then print and save the answer."""
        run = await run_with_progress(self.orchestrator, query, self.console, self.label)
        answer = run.answer or ""

        self.console.print(Rule("FINAL RESULTS"))
        self.console.print(Markdown(answer))
        self.console.print(Rule())

        if self.save:
            path = save_output(query, answer, self.config.output.directory)
            self.console.print(f"[dim]Saved to {path}[/dim]")
        return run

    async def interactive(self) -> None:
        """Read queries until the user exits."""
        self.console.print("[bold]Multi-Agent Orchestrator[/bold]")
        self.console.print(
            f"Configured for {self.orchestrator.num_agents} parallel agents "
            f"using {self.config.llm.resolved_model}"
        )
        self.console.print("Type 'quit', 'exit', or 'bye' to exit")
        self.console.print(Rule())

        while True:
            try:
                line = await asyncio.to_thread(self.console.input, "\n[bold]User:[/bold] ")
            except (EOFError, KeyboardInterrupt):
                self.console.print("\nGoodbye!")
                return

            query = line.strip()
            if query.lower() in EXIT_COMMANDS:
                self.console.print("Goodbye!")
                return
            if query.lower() in HELP_COMMANDS:
                print_help(self.console, self.config, self.orchestrator.num_agents)
                continue
            if not query:
                self.console.print("Please enter a question or command.")
                continue

            try:
                await self.run_query(query)
            except Exception as e:
                logger.exception("Query failed", error=str(e))
                self.console.print(f"[red]Error during orchestration: {e}[/red]")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="make-it-heavy",
        description="Fan a question out to parallel research agents and synthesize one answer",
    )
    parser.add_argument("query", nargs="*", help="Question to run; omit for interactive mode")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML configuration file")
    parser.add_argument("--env-file", type=str, default=None, help="Path to .env file")
    parser.add_argument("--agents", type=int, default=None, help="Number of parallel agents")
    parser.add_argument("--debug", action="store_true", help="Verbose logging on stderr")
    parser.add_argument("--no-save", action="store_true", help="Do not write the answer to disk")
    args = parser.parse_args(argv)

    if args.agents is not None and args.agents < 1:
        parser.error("--agents must be at least 1")
    return args


def main(argv: Sequence[str] | None = None) -> int:
    """Console script entry point. Returns the process exit code."""
    args = parse_args(argv)

    config_path = args.config
    if config_path is None and DEFAULT_CONFIG_PATH.exists():
        config_path = DEFAULT_CONFIG_PATH
    config = init_config(yaml_path=config_path, env_file=args.env_file)

    # Logs go to stderr so they never interleave with the live display
    setup_logging(
        level="DEBUG" if args.debug else "WARNING",
        json_format=config.logging.format == LogFormat.JSON and not args.debug,
        stream=sys.stderr,
    )

    console = Console()
    try:
        orchestrator = build_orchestrator(config, args.agents)
    except ConfigurationError as e:
        console.print(f"[red]ERROR: {e.message}[/red]")
        console.print("Set OPENROUTER_API_KEY (or llm.api_key in the config file).")
        console.print("Get a key from https://openrouter.ai/keys")
        return 1

    cli = HeavyCLI(orchestrator, config, console=console, save=not args.no_save)

    if not args.query:
        try:
            asyncio.run(cli.interactive())
        except KeyboardInterrupt:
            console.print("\nExiting...")
        return 0

    query = " ".join(args.query)
    if query.lower() in HELP_COMMANDS:
        print_help(console, config, orchestrator.num_agents)
        return 0

    try:
        asyncio.run(cli.run_query(query))
    except KeyboardInterrupt:
        console.print("\nExiting...")
        return 130
    except Exception as e:
        logger.exception("Query failed", error=str(e))
        console.print(f"[red]Error during orchestration: {e}[/red]")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
