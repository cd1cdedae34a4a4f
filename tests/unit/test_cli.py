"""CLI 테스트."""

from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console

from heavy.cli import (
    HeavyCLI,
    format_elapsed,
    main,
    model_label,
    parse_args,
    render_progress,
    run_with_progress,
)
from heavy.models import ProgressStatus
from heavy.utils.config import AppConfig
from tests.stubs import make_orchestrator


def recording_console() -> Console:
    return Console(record=True, width=120, force_terminal=False)


class TestDisplayHelpers:
    """표시용 헬퍼 함수 테스트."""

    @pytest.mark.parametrize(
        ("seconds", "expected"),
        [(0, "0S"), (45.9, "45S"), (125, "2M5S"), (3780, "1H3M")],
    )
    def test_format_elapsed(self, seconds: float, expected: str):
        assert format_elapsed(seconds) == expected

    def test_model_label(self):
        assert model_label("moonshotai/kimi-k2") == "MAKE IT HEAVY • KIMI-K2"
        assert model_label("gpt_4o") == "MAKE IT HEAVY • GPT-4O"

    def test_render_progress(self):
        console = recording_console()
        statuses = [
            ProgressStatus.COMPLETED,
            ProgressStatus.PROCESSING,
            ProgressStatus.QUEUED,
            ProgressStatus.FAILED,
        ]

        console.print(render_progress("MAKE IT HEAVY • KIMI-K2", statuses, 5))

        text = console.export_text()
        assert "MAKE IT HEAVY • KIMI-K2" in text
        assert "● RUNNING • 5S" in text
        for label in ("AGENT 01", "AGENT 02", "AGENT 03", "AGENT 04"):
            assert label in text
        assert "✗" in text

    def test_render_progress_finished(self):
        console = recording_console()
        console.print(render_progress("X", [ProgressStatus.COMPLETED], 65, running=False))
        assert "COMPLETED • 1M5S" in console.export_text()


class TestParseArgs:
    """인자 파싱 테스트."""

    def test_defaults(self):
        args = parse_args([])
        assert args.query == []
        assert args.agents is None
        assert not args.debug
        assert not args.no_save

    def test_query_words_and_options(self):
        args = parse_args(["--agents", "6", "--no-save", "compare", "X", "and", "Y"])
        assert " ".join(args.query) == "compare X and Y"
        assert args.agents == 6
        assert args.no_save

    def test_agents_must_be_positive(self):
        with pytest.raises(SystemExit):
            parse_args(["--agents", "0", "q"])


class TestHeavyCLI:
    """HeavyCLI 테스트."""

    @pytest.mark.asyncio
    async def test_run_with_progress_returns_run(self):
        orchestrator = make_orchestrator(2)

        run = await run_with_progress(
            orchestrator, "q", recording_console(), "LABEL", refresh_seconds=0.01
        )

        assert run.answer == "FINAL ANSWER"
        assert orchestrator.progress_snapshot() == [ProgressStatus.COMPLETED] * 2

    @pytest.mark.asyncio
    async def test_run_query_prints_answer(self, app_config: AppConfig):
        console = recording_console()
        cli = HeavyCLI(make_orchestrator(2, answer="# Verdict"), app_config, console, save=False)

        run = await cli.run_query("compare X and Y")

        text = console.export_text()
        assert "FINAL RESULTS" in text
        assert "Verdict" in text
        assert "Saved to" not in text
        assert run.original_query == "compare X and Y"

    @pytest.mark.asyncio
    async def test_run_query_saves_answer(self, app_config: AppConfig, tmp_path: Path):
        config = app_config.model_copy(
            update={"output": app_config.output.model_copy(update={"directory": str(tmp_path)})}
        )
        console = recording_console()
        cli = HeavyCLI(make_orchestrator(2, answer="saved answer"), config, console)

        await cli.run_query("solar power outlook")

        files = list(tmp_path.rglob("*.md"))
        assert len(files) == 1
        assert files[0].read_text(encoding="utf-8") == "saved answer"
        assert files[0].parent.name == "solar-power-outlook"
        assert "Saved to" in console.export_text()

    @pytest.mark.asyncio
    async def test_interactive_commands(self, app_config: AppConfig):
        console = recording_console()
        inputs = iter(["help", "   ", "quit"])
        console.input = lambda prompt="": next(inputs)  # type: ignore[method-assign]
        orchestrator = make_orchestrator(2)
        cli = HeavyCLI(orchestrator, app_config, console, save=False)

        await cli.interactive()

        text = console.export_text()
        assert "Configured for 2 parallel agents" in text
        assert "Parallel agents" in text
        assert "Please enter a question or command." in text
        assert "Goodbye!" in text
        assert orchestrator.current_run is None

    @pytest.mark.asyncio
    async def test_interactive_end_of_input(self, app_config: AppConfig):
        console = recording_console()

        def closed(prompt: str = "") -> str:
            raise EOFError

        console.input = closed  # type: ignore[method-assign]
        await HeavyCLI(make_orchestrator(1), app_config, console, save=False).interactive()

        assert "Goodbye!" in console.export_text()


class TestMain:
    """main 진입점 테스트."""

    def test_missing_api_key(self):
        assert main(["--no-save", "what is heavy mode"]) == 1

    def test_single_query(self):
        with patch("heavy.cli.build_orchestrator", return_value=make_orchestrator(2)) as build:
            assert main(["--no-save", "--agents", "2", "compare", "X"]) == 0

        build.assert_called_once()
        assert build.call_args.args[1] == 2

    def test_single_query_failure(self):
        orchestrator = make_orchestrator(2)

        async def broken(query: str):
            raise RuntimeError("event loop on fire")

        orchestrator.run = broken  # type: ignore[method-assign]
        with patch("heavy.cli.build_orchestrator", return_value=orchestrator):
            assert main(["--no-save", "q"]) == 1
