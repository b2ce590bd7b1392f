from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from trendline.__main__ import build_parser, format_item, make_fetch, print_result, run_once
from trendline.analytics.fallback import synthesize_injuries
from trendline.models.results import InjuriesResult, NewsResult

from conftest import AS_OF


def test_parser_defaults() -> None:
    args = build_parser().parse_args(["predictions", "--sport", "NBA", "--min-confidence", "65"])
    assert args.command == "predictions"
    assert args.min_confidence == 65
    assert args.category == "all"
    assert not args.watch


@pytest.mark.asyncio
async def test_make_fetch_binds_command_arguments() -> None:
    aggregator = MagicMock()
    aggregator.fetch_injuries = AsyncMock(return_value=InjuriesResult())
    args = build_parser().parse_args(["injuries", "--sport", "NFL", "--high-impact-only"])

    await make_fetch(aggregator, args)("background")

    aggregator.fetch_injuries.assert_awaited_once_with("NFL", True, refresh_mode="background")


def test_print_result_text_and_json(capsys) -> None:
    injuries = tuple(synthesize_injuries("NBA", AS_OF, 2))
    result = InjuriesResult(items=injuries, last_updated=AS_OF)

    print_result(result, as_json=False)
    text = capsys.readouterr().out
    assert format_item(injuries[0]) in text
    assert "2 items" in text

    print_result(result, as_json=True)
    payload = json.loads(capsys.readouterr().out)
    assert payload["items"][0]["severity"] == injuries[0].severity
    assert payload["items"][0]["category"] == "injury"


@pytest.mark.asyncio
async def test_run_once_exit_code_reflects_error(capsys) -> None:
    aggregator = MagicMock()
    aggregator.fetch_news = AsyncMock(return_value=NewsResult(error="All sources failed"))
    args = build_parser().parse_args(["news", "--force"])

    assert await run_once(aggregator, args) == 1
    aggregator.fetch_news.assert_awaited_once_with("all", 20, refresh_mode="force")
    assert "All sources failed" in capsys.readouterr().out
