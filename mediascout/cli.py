#!/usr/bin/env python3
import sys
import json
import signal
import logging
import argparse
import asyncio
from pathlib import Path
from urllib.parse import urlparse

from playwright.async_api import Error as PlaywrightError

from . import config
from .capture import PlaywrightHost
from .detector import KINDS, is_manifest_url
from .errors import MediaScoutError
from .http_dl import download_file
from .pipeline import ScanPipeline
from .reconstruct import CancelToken, save_stream
from .utils import (
    copy_text,
    default_headers,
    describe,
    filter_results,
    format_size,
    sort_results,
    suggested_filename,
    truncate_url,
)


def derive_output_from_url(url: str, downloads_dir: Path) -> Path:
    """Derive a nested output path mirroring the URL: domain/path/file.ts.

    Examples:
      https://cdn.example.com/videos/abc/master.m3u8 -> downloads/cdn.example.com/videos/abc/master.ts
    """

    def sanitize(s: str) -> str:
        s2 = "".join(c for c in s if c.isalnum() or c in ("-", "_", "."))
        return (s2 or "_")[:64]

    u = urlparse(url)
    base = downloads_dir / sanitize(u.netloc or "unknown-host")
    segs = [sanitize(seg) for seg in (u.path or "").split("/") if seg]
    if not segs:
        segs = ["video"]
    # last segment becomes the file stem; strip playlist extensions if present
    stem = segs[-1]
    if stem.lower().endswith(".m3u8"):
        stem = stem[:-5]
    nested_dir = base.joinpath(*segs[:-1]) if len(segs) > 1 else base
    return nested_dir / f"{stem}.ts"


def print_results(results, as_json=False, kind="all", search=""):
    shown = sort_results(filter_results(results, kind, search))
    if as_json:
        print(json.dumps([item.to_dict() for item in shown], indent=2))
        return
    if not shown:
        print("No media found.")
        return
    print(f"Found {len(shown)} item{'' if len(shown) == 1 else 's'}")
    for item in shown:
        print(f"  [{describe(item)}]")
        print(f"    {item.url}")


async def run_scan(page_url: str, wait: float, headless: bool, headers: dict):
    async with PlaywrightHost(headless=headless, headers=headers) as host:
        pipeline = ScanPipeline(host, headers=headers)
        tab = await host.open(page_url, wait_seconds=wait)
        return await pipeline.scan(tab)


async def run_watch(page_url: str, seconds: float, headless: bool, headers: dict):
    def on_new(context_id, obs):
        print(f"[{obs.kind}] {obs.url}", flush=True)

    async with PlaywrightHost(headless=headless, headers=headers) as host:
        pipeline = ScanPipeline(host, headers=headers)
        pipeline.subscribe(on_new)
        await host.open(page_url, wait_seconds=0)
        await asyncio.sleep(seconds)
        pipeline.unsubscribe(on_new)


async def run_download(url: str, out_path: Path, headers: dict):
    token = CancelToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
    except (NotImplementedError, RuntimeError):
        pass

    last_pct = -1

    def progress_fn(done, total_):
        nonlocal last_pct
        if not total_:
            print(f"Downloading — {format_size(done)}\r", end="", flush=True)
            return
        pct = int(done / total_ * 100)
        if pct != last_pct:
            print(f"Downloading — {pct}% ({done}/{total_})\r", end="", flush=True)
            last_pct = pct

    print(f"Downloading {truncate_url(url)}")
    try:
        if is_manifest_url(url):
            return await save_stream(url, out_path, progress_fn, token, headers=headers)
        return await download_file(url, out_path, progress_fn, token, headers=headers)
    finally:
        print()
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass


def default_output(url: str, downloads_dir: Path) -> Path:
    """Playlists mirror the URL as a .ts path; single files keep their own name."""
    if is_manifest_url(url):
        return derive_output_from_url(url, downloads_dir)
    return downloads_dir / suggested_filename(url)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="mediascout",
        description="Find media referenced by a web page and rebuild HLS streams.",
    )
    parser.add_argument("--ua", default=config.USER_AGENT, help="User-Agent header")
    parser.add_argument("--ref", help="Referer header for HTTP requests")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="DEBUG, INFO, WARNING or ERROR")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="List media found on a page")
    scan.add_argument("url", help="Page URL")
    scan.add_argument("--wait", type=float, default=config.WAIT_SECONDS, help="Seconds to let network traffic settle")
    scan.add_argument("--kind", choices=("all",) + KINDS, default="all", help="Only show this kind")
    scan.add_argument("--search", default="", help="Only show URLs or sources containing this text")
    scan.add_argument("--json", action="store_true", help="Print results as JSON")
    scan.add_argument("--urls", action="store_true", help="Print bare URLs, one per line")
    scan.add_argument("--no-headless", action="store_true", help="Show the browser window")

    watch = sub.add_parser("watch", help="Print media requests as a page issues them")
    watch.add_argument("url", help="Page URL")
    watch.add_argument("--seconds", type=float, default=30, help="How long to watch")
    watch.add_argument("--no-headless", action="store_true", help="Show the browser window")

    dl = sub.add_parser("download", help="Save a media file, or rebuild an HLS stream into one .ts file")
    dl.add_argument("url", help="Media file URL, or master/media playlist URL (.m3u8)")
    dl.add_argument("-o", "--out", help="Output file (default: downloads/<host>/<path>.ts for playlists, downloads/<file name> otherwise)")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    headers = default_headers(args.ua, args.ref)

    try:
        if args.command == "scan":
            results = asyncio.run(run_scan(args.url, args.wait, False if args.no_headless else None, headers))
            if args.urls:
                print(copy_text(sort_results(filter_results(results, args.kind, args.search))))
            else:
                print_results(results, args.json, args.kind, args.search)
        elif args.command == "watch":
            asyncio.run(run_watch(args.url, args.seconds, False if args.no_headless else None, headers))
        elif args.command == "download":
            out_path = Path(args.out) if args.out else default_output(args.url, Path.cwd() / "downloads")
            saved = asyncio.run(run_download(args.url, out_path, headers))
            print(f"Saved: {saved} ({format_size(saved.stat().st_size)})")
    except (MediaScoutError, PlaywrightError) as e:
        print("Error:", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
