#!/usr/bin/env python3
"""
Proxy speedtest CLI -- measure and classify the proxies of Clash configs.

Usage::

    python proxy_speedtest.py -c config.yaml                 # test and save
    python proxy_speedtest.py -c a.yaml,configs/ -f 'HK|SG'  # filter names
    python proxy_speedtest.py -c https://host/sub.yaml --fast
    python proxy_speedtest.py -c config.yaml \\
        --extra-connect-url https://www.google.com,https://github.com
    python proxy_speedtest.py -c config.yaml --json results.json
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from speedtester.config import TestConfig, load_config
from speedtester.constants import MAX_CONCURRENT, MIN_CONCURRENT
from speedtester.exceptions import ProxyConfigError
from speedtester.grading import Thresholds, is_usable, rank_results
from speedtester.loader import find_config_paths, load_proxies, source_name
from speedtester.result import Result
from speedtester.tester import SpeedTester
from ui.dashboard import ProgressDisplay, console, print_header, print_results
from ui.log import setup_logging
from ui.output import create_result_json, save_json, save_results

logger = logging.getLogger("proxy_speedtest")


# ---------------------------------------------------------------------------
# Parameter validation
# ---------------------------------------------------------------------------

def _split_urls(value: str) -> List[str]:
    return [u.strip() for u in value.split(",") if u.strip()]


def _validate(args: argparse.Namespace) -> None:
    """Raise ``ValueError`` if any classification parameter is out of range."""
    if args.max_latency < 0:
        raise ValueError("Max latency must not be negative")
    for flag in ("min_speed", "open_speed_threshold", "good_open_speed_threshold",
                 "good_download_speed_threshold"):
        if getattr(args, flag) < 0:
            raise ValueError(f"--{flag.replace('_', '-')} must not be negative")


def build_test_config(args: argparse.Namespace) -> TestConfig:
    config = TestConfig(
        server_url=args.server_url.rstrip("/"),
        download_size=args.download_size,
        upload_size=args.upload_size,
        timeout=args.timeout,
        concurrent=args.concurrent,
        extra_connect_urls=_split_urls(args.extra_connect_url),
        extra_download_url=args.extra_download_url.strip(),
        fast_mode=args.fast,
    )
    config.validate()
    return config


def build_thresholds(args: argparse.Namespace, config: TestConfig) -> Thresholds:
    return Thresholds.from_mbps(
        max_latency_ms=args.max_latency,
        min_speed=args.min_speed,
        open_speed=args.open_speed_threshold,
        good_open_speed=args.good_open_speed_threshold,
        good_download_speed=args.good_download_speed_threshold,
        check_open_speed=bool(config.extra_connect_urls),
        check_extra_download=bool(config.extra_download_url),
    )


# ---------------------------------------------------------------------------
# Core run
# ---------------------------------------------------------------------------

async def run(
    paths: List[str],
    config: TestConfig,
    thresholds: Thresholds,
    filter_regex: str = ".+",
    block_keywords: str = "",
    show_progress: bool = True,
) -> List[Result]:
    """Test every proxy of every document; return the usable results, ranked."""
    tester = SpeedTester(config)
    usable: List[Result] = []

    def _collect(result: Result) -> None:
        if is_usable(result, thresholds):
            usable.append(result)
        else:
            logger.info("%s is not usable: %s", result.display_name, result.to_dict())

    for path in paths:
        try:
            proxies = await load_proxies(path, filter_regex, block_keywords)
        except ProxyConfigError as exc:
            logger.warning("load proxies failed: %s: %s", path, exc)
            continue

        progress = ProgressDisplay() if show_progress else None
        if progress:
            progress.start(source_name(path), total=len(proxies))

        def _on_result(result: Result) -> None:
            _collect(result)
            if progress:
                progress.advance()

        try:
            await tester.test_proxies(
                proxies.values(),
                on_result=_on_result,
                on_start=progress.on_start if progress else None,
                on_error=(lambda handle, exc: progress.advance()) if progress else None,
            )
        finally:
            if progress:
                progress.stop()

    logger.info("all documents tested")
    return rank_results(usable, thresholds)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def build_parser(defaults: Optional[dict] = None) -> argparse.ArgumentParser:
    d = defaults if defaults is not None else load_config()
    parser = argparse.ArgumentParser(
        description="Proxy speedtest -- latency, throughput and reachability through Clash proxies",
    )
    # Input
    parser.add_argument("-c", "--config", required=True, help="Config file paths, directories or http(s) URLs, ',' separated")
    parser.add_argument("-f", "--filter", default=".+", help="Filter proxies by name (regexp)")
    parser.add_argument("-b", "--block", default="", help="Block proxies by keywords, '|' separated (example: 'rate|x1|1x')")
    parser.add_argument("--skip-paths", default="", help="Skip these files/directories, ',' separated")

    # Test parameters
    parser.add_argument("--server-url", default=d["server_url"], help="Speed-test server URL")
    parser.add_argument("--download-size", type=int, default=d["download_size"], metavar="BYTES", help="Total download size per proxy")
    parser.add_argument("--upload-size", type=int, default=d["upload_size"], metavar="BYTES", help="Total upload size per proxy")
    parser.add_argument("--timeout", type=float, default=d["timeout"], metavar="SECS", help="Timeout of every single request")
    parser.add_argument("--concurrent", type=int, default=d["concurrent"], metavar="N",
                        help=f"Parallel transfers per direction ({MIN_CONCURRENT}-{MAX_CONCURRENT})")
    parser.add_argument("--extra-connect-url", default="", help="URLs that must be reachable, ',' separated")
    parser.add_argument("--extra-download-url", default="", help="Extra download speed test URL")
    parser.add_argument("--fast", action="store_true", help="Only test latency")

    # Classification
    parser.add_argument("--max-latency", type=float, default=d["max_latency"], metavar="MS", help="Filter latency greater than this (0 disables)")
    parser.add_argument("--min-speed", type=float, default=d["min_speed"], metavar="MB/S", help="Filter download speed less than this")
    parser.add_argument("--open-speed-threshold", type=float, default=d["open_speed_threshold"], metavar="MB/S",
                        help="Minimum open speed of the extra connect URLs for a usable proxy")
    parser.add_argument("--good-open-speed-threshold", type=float, default=d["good_open_speed_threshold"], metavar="MB/S",
                        help="Minimum open speed of the extra connect URLs for a good proxy")
    parser.add_argument("--good-download-speed-threshold", type=float, default=d["good_download_speed_threshold"], metavar="MB/S",
                        help="Minimum download speed for a good proxy")

    # Output
    parser.add_argument("--output", default=d["output"], help="Output file for usable proxies ('' disables)")
    parser.add_argument("--good-output", default=d["good_output"], help="Output file for good proxies ('' disables)")
    parser.add_argument("--json", metavar="FILE", help="Also save full results as JSON")
    parser.add_argument("--debug", action="store_true", help="Show log output")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    setup_logging(args.debug)

    try:
        _validate(args)
        config = build_test_config(args)
    except ValueError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)
    thresholds = build_thresholds(args, config)

    try:
        paths = find_config_paths(args.config, args.skip_paths)
    except ProxyConfigError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)
    if not paths:
        console.print("[red]Error: cannot find any yaml paths[/red]")
        sys.exit(1)

    print_header()
    try:
        results = asyncio.run(
            run(paths, config, thresholds, args.filter, args.block, show_progress=not args.debug)
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Test cancelled by user[/yellow]")
        sys.exit(1)

    print_results(results, thresholds, fast_mode=config.fast_mode)

    if args.json:
        save_json(create_result_json(results, thresholds), args.json)
        console.print(f"[green]Results saved to:[/green] {args.json}")

    if not results:
        console.print("[red]No usable proxies found[/red]")
        sys.exit(1)

    for path in save_results(results, thresholds, args.output, args.good_output):
        console.print(f"[green]Saved proxies to:[/green] {path}")


if __name__ == "__main__":
    main()
