from __future__ import annotations
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import canon, exceptions, ingest, pipeline, utils
from .client import JsonRequestLogStore, TelemetryClient, UsageQuery, settings_from_env
from .config import NormalizeConfig

logger = logging.getLogger(__name__)


def _config(args: argparse.Namespace) -> NormalizeConfig:
    return NormalizeConfig(tz=args.tz)


def _cmd_round(args: argparse.Namespace) -> int:
    cfg = _config(args)
    try:
        ts = int(args.timestamp)
    except ValueError as e:
        raise exceptions.TimestampError(f"Invalid timestamp: {args.timestamp!r}") from e
    rounded = utils.round_to_minute(ts, cfg.tz)
    print(f"original: {ts}")
    print(f"rounded: {rounded}")
    print(f"local: {utils.format_time(rounded, cfg.tz, cfg.minute_format)}")
    return 0


def _cmd_convert(args: argparse.Namespace) -> int:
    res = pipeline.convert_file(args.file, args.out_dir, config=_config(args))
    print(f"{len(res.samples)} samples -> {res.path}")
    return 0


def _cmd_batch(args: argparse.Namespace) -> int:
    res = pipeline.batch_csv(args.files, args.out_dir, config=_config(args))
    if args.show_log:
        print("\n".join(res.merged.log))
    print(f"{len(res.samples)} samples -> {res.path}")
    return 0


def _cmd_merge(args: argparse.Namespace) -> int:
    res = pipeline.merge_json(args.files, args.out_dir)
    if args.show_log:
        print("\n".join(res.merged.log))
    for p in res.paths:
        print(p)
    return 0


def _cmd_fetch(args: argparse.Namespace) -> int:
    settings = settings_from_env(args.env_file)
    store = JsonRequestLogStore(args.request_log) if args.request_log else None
    client = TelemetryClient(settings, store=store)
    query = UsageQuery(deviceUuid=args.device, startTime=args.start, endTime=args.end)
    if args.all_pages:
        for p in client.download_pages(query, args.out_dir, start_seq=args.start_seq):
            print(p)
        return 0

    data = client.fetch(query)
    name = args.name or f"{args.device}.json"
    target = Path(args.out_dir) / (name if name.endswith(".json") else f"{name}.json")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    if isinstance(data, dict) and data.get("next") is not None:
        print(f"next: {data['next']}")
    print(target)
    return 0


def _cmd_post(args: argparse.Namespace) -> int:
    body = ingest.read_document(args.body).content
    exceptions.require(
        isinstance(body, dict), "Request body must be a JSON object.", exceptions.DocumentError
    )
    store = JsonRequestLogStore(args.request_log) if args.request_log else None
    client = TelemetryClient(settings_from_env(args.env_file), store=store)
    data = client.post(body)
    text = json.dumps(data, indent=2, ensure_ascii=False)
    if args.out:
        target = Path(args.out)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
        print(target)
    else:
        print(text)
    return 0


def _cmd_logs(args: argparse.Namespace) -> int:
    store = JsonRequestLogStore(args.request_log)
    if args.clear:
        store.clear()
        print(f"cleared {store.path}")
        return 0
    logs = store.all()
    for log in logs:
        status = log.status if log.status is not None else "-"
        print(f"{log.timestamp} {log.method} {log.url} status={status}")
        if log.error:
            print(f"  error: {log.error}")
        if args.full:
            print(log.model_dump_json(indent=2))
    logger.debug("%d request logs in %s", len(logs), store.path)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="solarusage",
        description="Fetch solar usage telemetry and convert it to half-hourly CSV.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--tz", default=canon.DEFAULT_TZ, help=f"Civil time zone (default: {canon.DEFAULT_TZ})")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("round", help="Round a millisecond timestamp to the nearest minute")
    p.add_argument("timestamp")
    p.set_defaults(func=_cmd_round)

    p = sub.add_parser("convert", help="Convert one JSON array file to CSV")
    p.add_argument("file")
    p.add_argument("--out-dir", default=".", help="Output folder (default: .)")
    p.set_defaults(func=_cmd_convert)

    p = sub.add_parser("batch", help="Merge several usage exports into one CSV")
    p.add_argument("files", nargs="+")
    p.add_argument("--out-dir", default=".", help="Output folder (default: .)")
    p.add_argument("--show-log", action="store_true", help="Print the processing log")
    p.set_defaults(func=_cmd_batch)

    p = sub.add_parser("merge", help="Merge channel arrays into merged_<channel>.json files")
    p.add_argument("files", nargs="+")
    p.add_argument("--out-dir", default=".", help="Output folder (default: .)")
    p.add_argument("--show-log", action="store_true", help="Print the processing log")
    p.set_defaults(func=_cmd_merge)

    p = sub.add_parser("fetch", help="Retrieve usage data from the vendor API")
    p.add_argument("--device", required=True, help="Device UUID")
    p.add_argument("--start", type=int, required=True, help="Start time (epoch ms)")
    p.add_argument("--end", type=int, required=True, help="End time (epoch ms)")
    p.add_argument("--all-pages", action="store_true", help="Follow 'next' until exhausted")
    p.add_argument("--start-seq", type=int, default=1, help="First page number (default: 1)")
    p.add_argument("--name", help="Output file name for a single request")
    p.add_argument("--out-dir", default=".", help="Output folder (default: .)")
    p.add_argument("--env-file", help="Path to a .env file with endpoint settings")
    p.add_argument("--request-log", help="Append request logs to this JSON-lines file")
    p.set_defaults(func=_cmd_fetch)

    p = sub.add_parser("post", help="Send a raw JSON request body and print the response")
    p.add_argument("body", help="JSON file holding the request body")
    p.add_argument("--out", help="Write the response to this file instead of stdout")
    p.add_argument("--env-file", help="Path to a .env file with endpoint settings")
    p.add_argument("--request-log", help="Append request logs to this JSON-lines file")
    p.set_defaults(func=_cmd_post)

    p = sub.add_parser("logs", help="Show or clear stored request logs")
    p.add_argument("request_log", help="JSON-lines request log file")
    p.add_argument("--full", action="store_true", help="Print each log as JSON")
    p.add_argument("--clear", action="store_true", help="Delete all stored logs")
    p.set_defaults(func=_cmd_logs)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    try:
        return args.func(args)
    except exceptions.UsageError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
