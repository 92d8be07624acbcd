"""Unit tests for the wp-ai-indexer command-line interface."""

from __future__ import annotations

from argparse import Namespace
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from tests.conftest import make_app_settings
from wp_indexer.models.run import (
    CleanResult,
    DeleteAllResult,
    RunError,
    RunProgress,
    RunResult,
)
from wp_indexer.models.vector import IndexStats


# ======================================================================
# Shared helpers
# ======================================================================


def _pipeline(**results) -> MagicMock:
    pipeline = MagicMock()
    pipeline.index = AsyncMock(return_value=results.get("index"))
    pipeline.clean = AsyncMock(return_value=results.get("clean"))
    pipeline.delete_all = AsyncMock(return_value=results.get("delete_all"))
    return pipeline


def _run_result(success: bool = True, errors: list[RunError] | None = None) -> RunResult:
    return RunResult(
        success=success,
        stats=RunProgress(
            total_documents=2, processed_documents=2, total_chunks=4, processed_chunks=4
        ),
        errors=errors or [],
        store_stats=IndexStats(total_vector_count=4, dimension=8),
        elapsed_seconds=1.25,
    )


# ======================================================================
# Argument parser
# ======================================================================


class TestBuildParser:
    def test_index_with_since(self) -> None:
        from wp_indexer.cli.indexer import _build_parser

        args = _build_parser().parse_args(["index", "--since", "2024-03-01", "--debug"])

        assert args.command == "index"
        assert args.since == datetime(2024, 3, 1)
        assert args.debug is True

    def test_index_defaults(self) -> None:
        from wp_indexer.cli.indexer import _build_parser

        args = _build_parser().parse_args(["index"])
        assert args.since is None
        assert args.debug is False

    def test_invalid_since_rejected(self) -> None:
        from wp_indexer.cli.indexer import _build_parser

        with pytest.raises(SystemExit):
            _build_parser().parse_args(["index", "--since", "last tuesday"])

    def test_delete_all_yes(self) -> None:
        from wp_indexer.cli.indexer import _build_parser

        args = _build_parser().parse_args(["delete-all", "--yes"])
        assert args.command == "delete-all"
        assert args.yes is True

    def test_config(self) -> None:
        from wp_indexer.cli.indexer import _build_parser

        assert _build_parser().parse_args(["config"]).command == "config"


# ======================================================================
# index
# ======================================================================


class TestHandleIndex:
    @pytest.mark.asyncio
    async def test_success_returns_zero(self, capsys: pytest.CaptureFixture[str]) -> None:
        from wp_indexer.cli.indexer import _handle_index

        pipeline = _pipeline(index=_run_result())
        code = await _handle_index(Namespace(since=None), pipeline)

        assert code == 0
        pipeline.index.assert_awaited_once_with(modified_after=None)
        pipeline.tracker.register_listener.assert_called_once()
        out = capsys.readouterr().out
        assert "Index Summary" in out
        assert "2/2" in out

    @pytest.mark.asyncio
    async def test_passes_since(self) -> None:
        from wp_indexer.cli.indexer import _handle_index

        since = datetime(2024, 1, 1)
        pipeline = _pipeline(index=_run_result())
        await _handle_index(Namespace(since=since), pipeline)

        pipeline.index.assert_awaited_once_with(modified_after=since)

    @pytest.mark.asyncio
    async def test_failure_returns_one_and_prints_errors(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        from wp_indexer.cli.indexer import _handle_index

        errors = [RunError(document_id=9, message="Failed to process document 9: boom")]
        pipeline = _pipeline(index=_run_result(success=False, errors=errors))

        code = await _handle_index(Namespace(since=None), pipeline)

        assert code == 1
        assert "[document 9]" in capsys.readouterr().out


# ======================================================================
# clean / delete-all
# ======================================================================


class TestHandleClean:
    @pytest.mark.asyncio
    async def test_skipped(self, capsys: pytest.CaptureFixture[str]) -> None:
        from wp_indexer.cli.indexer import _handle_clean

        code = await _handle_clean(_pipeline(clean=CleanResult(skipped=True)))

        assert code == 0
        assert "disabled" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_summary(self, capsys: pytest.CaptureFixture[str]) -> None:
        from wp_indexer.cli.indexer import _handle_clean

        result = CleanResult(
            live_document_count=2,
            stored_vector_count=5,
            orphaned_document_ids=[5],
            deleted_vector_count=2,
        )
        code = await _handle_clean(_pipeline(clean=result))

        assert code == 0
        out = capsys.readouterr().out
        assert "Vectors deleted:    2" in out


class TestHandleDeleteAll:
    @pytest.mark.asyncio
    async def test_confirmed_by_typing_delete(self) -> None:
        from wp_indexer.cli.indexer import _handle_delete_all

        pipeline = _pipeline(
            delete_all=DeleteAllResult(
                deleted_vector_count=3,
                before=IndexStats(total_vector_count=3),
                after=IndexStats(total_vector_count=0),
            )
        )
        with patch("builtins.input", return_value="DELETE"):
            code = await _handle_delete_all(Namespace(yes=False), pipeline)

        assert code == 0
        pipeline.delete_all.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answer", ["", "y", "delete"])
    async def test_anything_else_aborts(self, answer: str) -> None:
        from wp_indexer.cli.indexer import _handle_delete_all

        pipeline = _pipeline()
        with patch("builtins.input", return_value=answer):
            code = await _handle_delete_all(Namespace(yes=False), pipeline)

        assert code == 0
        pipeline.delete_all.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_yes_skips_prompt(self) -> None:
        from wp_indexer.cli.indexer import _handle_delete_all

        pipeline = _pipeline(delete_all=DeleteAllResult())
        with patch("builtins.input") as mock_input:
            await _handle_delete_all(Namespace(yes=True), pipeline)

        mock_input.assert_not_called()
        pipeline.delete_all.assert_awaited_once()


# ======================================================================
# config
# ======================================================================


class TestHandleConfig:
    def test_masks_secrets(self, capsys: pytest.CaptureFixture[str]) -> None:
        from wp_indexer.cli.indexer import _handle_config

        code = _handle_config(make_app_settings(openai_api_key="sk-very-secret"))

        out = capsys.readouterr().out
        assert code == 0
        assert "sk-very-secret" not in out
        assert "********" in out
        assert "https://example.com" in out

    def test_missing_required_returns_one(self, capsys: pytest.CaptureFixture[str]) -> None:
        from wp_indexer.cli.indexer import _handle_config

        code = _handle_config(make_app_settings(wp_api_base="", openai_api_key=""))

        assert code == 1
        out = capsys.readouterr().out
        assert "WP_API_BASE" in out
        assert "OPENAI_API_KEY" in out


# ======================================================================
# main
# ======================================================================


class TestMain:
    def test_no_command_exits_one(self) -> None:
        from wp_indexer.cli.indexer import main

        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1

    def test_config_command(self) -> None:
        from wp_indexer.cli.indexer import main

        with patch("wp_indexer.cli.indexer.Settings", return_value=make_app_settings()), patch(
            "wp_indexer.cli.indexer.configure_logging"
        ):
            with pytest.raises(SystemExit) as exc_info:
                main(["config"])
        assert exc_info.value.code == 0

    def test_index_command_runs_pipeline(self) -> None:
        from wp_indexer.cli.indexer import main

        pipeline = _pipeline(index=_run_result())
        with patch("wp_indexer.cli.indexer.Settings", return_value=make_app_settings()), patch(
            "wp_indexer.cli.indexer.configure_logging"
        ) as configure, patch("wp_indexer.main.build_pipeline", return_value=pipeline):
            with pytest.raises(SystemExit) as exc_info:
                main(["index", "--debug"])

        assert exc_info.value.code == 0
        configure.assert_called_once_with(log_level="DEBUG")
        pipeline.index.assert_awaited_once()

    def test_missing_environment_exits_one(self, capsys: pytest.CaptureFixture[str]) -> None:
        from wp_indexer.cli.indexer import main

        settings = make_app_settings(openai_api_key="")
        with patch("wp_indexer.cli.indexer.Settings", return_value=settings), patch(
            "wp_indexer.cli.indexer.configure_logging"
        ):
            with pytest.raises(SystemExit) as exc_info:
                main(["index"])

        assert exc_info.value.code == 1
        assert "OPENAI_API_KEY" in capsys.readouterr().err
