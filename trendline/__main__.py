import argparse
import asyncio
import json
import logging
import signal
import sys
from typing import Any, Awaitable, Callable

from trendline.config import ConfigManager
from trendline.models.results import FeedResult
from trendline.models.trends import Entity, NewsArticle, Prediction
from trendline.scheduler import AppLifecycle, PollingScheduler, SubscriptionState
from trendline.services.aggregator import CATEGORIES, TrendsAggregator
from trendline.storage.snapshot_store import SnapshotStore
from trendline.utils.errors import ConfigError

COMMANDS = ("trends", "predictions", "injuries", "news")

logger = logging.getLogger("trendline")


def setup_logging(log_level):
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s'
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sports trends, injuries, predictions and news")
    parser.add_argument('command', choices=COMMANDS, help='Feed to fetch')
    parser.add_argument('--sport', type=str, default='all', help='NBA, NFL, MLB, NHL or all')
    parser.add_argument('--category', type=str, default='all', choices=CATEGORIES + ('news',),
                        help='Trend category (trends only)')
    parser.add_argument('--min-confidence', type=int, default=0, help='Minimum consensus confidence (predictions only)')
    parser.add_argument('--high-impact-only', action='store_true', help='Only high-impact injuries (injuries only)')
    parser.add_argument('--limit', type=int, default=20, help='Maximum headlines (news only)')
    parser.add_argument('--force', action='store_true', help='Bypass cached data')
    parser.add_argument('--config', type=str, default=None, help='Path to config JSON file')
    parser.add_argument('--log-level', type=str, default='INFO', help='Logging level')
    parser.add_argument('--json', action='store_true', help='Print results as JSON')
    parser.add_argument('--watch', action='store_true',
                        help='Keep polling; SIGUSR1 backgrounds, SIGUSR2 foregrounds')
    parser.add_argument('--show-config', action='store_true', help='Print effective config and exit')
    return parser


def make_fetch(aggregator: TrendsAggregator, args) -> Callable[[str], Awaitable[FeedResult]]:
    """Bind the chosen command's arguments; the result is called with a refresh mode."""
    if args.command == "trends":
        return lambda mode: aggregator.fetch_trends(args.sport, args.category, refresh_mode=mode)
    if args.command == "predictions":
        return lambda mode: aggregator.fetch_predictions(args.sport, args.min_confidence, refresh_mode=mode)
    if args.command == "injuries":
        return lambda mode: aggregator.fetch_injuries(args.sport, args.high_impact_only, refresh_mode=mode)
    return lambda mode: aggregator.fetch_news(args.sport, args.limit, refresh_mode=mode)


def format_item(item: Any) -> str:
    if isinstance(item, Entity):
        return f"[{item.sport}] {item.severity.upper():<8} {item.category:<8} {item.title}"
    if isinstance(item, Prediction):
        c = item.consensus
        favored = item.home_team if c.favored_team == "home" else item.away_team
        return (f"[{item.sport}] {item.away_team} @ {item.home_team}: {favored} "
                f"{c.win_probability}% (confidence {c.confidence})")
    if isinstance(item, NewsArticle):
        published = item.published.strftime('%Y-%m-%d %H:%M') if item.published else "--"
        return f"[{item.sport}] {published} {item.headline}"
    return str(item)


def print_result(result: FeedResult, as_json: bool) -> None:
    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
        return
    if result.error:
        print(f"❌ {result.error}")
    for item in result.items:
        print(format_item(item))
    updated = result.last_updated.strftime('%H:%M:%S') if result.last_updated else "never"
    print(f"--- {result.count} items, {result.live_games_count} live games, updated {updated} ---")


async def run_once(aggregator: TrendsAggregator, args) -> int:
    fetch = make_fetch(aggregator, args)
    result = await fetch("force" if args.force else "initial")
    print_result(result, args.json)
    return 1 if result.error else 0


async def run_watch(aggregator: TrendsAggregator, config: ConfigManager, args) -> int:
    loop = asyncio.get_running_loop()
    stop = asyncio.Event()
    lifecycle = AppLifecycle()
    scheduler = PollingScheduler(config.polling, lifecycle)

    last_printed = {'data': None}

    def on_state(state: SubscriptionState) -> None:
        if state.data is not None and state.data is not last_printed['data']:
            last_printed['data'] = state.data
            print_result(state.data, args.json)
        elif state.error and state.data is None:
            print(f"❌ {state.error}")

    for sig, handler in (
        (signal.SIGINT, stop.set),
        (signal.SIGTERM, stop.set),
        (signal.SIGUSR1, lifecycle.to_background),
        (signal.SIGUSR2, lifecycle.to_foreground),
    ):
        loop.add_signal_handler(sig, handler)

    subscription = await scheduler.subscribe(make_fetch(aggregator, args), listener=on_state, name=args.command)
    logger.info(f"👀 Watching {args.command} for {args.sport} (Ctrl+C to stop)")
    try:
        await stop.wait()
    finally:
        subscription.dispose()
        scheduler.dispose_all()
    return 0


async def main() -> int:
    args = build_parser().parse_args()
    setup_logging(args.log_level)

    try:
        config = ConfigManager(args.config)
    except (ConfigError, json.JSONDecodeError) as e:
        logger.error(f"Configuration error: {e}")
        return 1

    if args.show_config:
        print(json.dumps(config.to_dict(), indent=2))
        return 0

    config.log_config_summary()
    snapshot_store = SnapshotStore(config.snapshot_path) if config.snapshot_path else None

    try:
        async with TrendsAggregator(config, snapshot_store=snapshot_store) as aggregator:
            if args.watch:
                return await run_watch(aggregator, config, args)
            return await run_once(aggregator, args)
    except ValueError as e:
        logger.error(str(e))
        return 2


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == '__main__':
    cli()
