import argparse
import json
import logging
from collections.abc import Mapping
from dataclasses import replace
from pathlib import Path
from typing import Optional

import requests

from .config import Settings, load_settings
from .errors import FailureKind, FetchError
from .http_client import HttpResponse, SimpleHttpClient
from .pipeline import TIME_RANGES, fetch_and_refresh, run_refresh
from .source_registry import DEFAULT_SOURCES, get_source, source_keys


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ingestion")
    _ = parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    _ = subparsers.add_parser("list-sources")

    analyze_files = subparsers.add_parser("analyze-files")
    _ = analyze_files.add_argument("--source1", required=True, choices=source_keys())
    _ = analyze_files.add_argument("--file1", required=True)
    _ = analyze_files.add_argument("--source2", required=True, choices=source_keys())
    _ = analyze_files.add_argument("--file2", required=True)
    _ = analyze_files.add_argument("--normalize", action=argparse.BooleanOptionalAction, default=True)
    _ = analyze_files.add_argument("--tolerance-ms", type=int)
    _ = analyze_files.add_argument("--spike-threshold", type=float)

    fetch_analyze = subparsers.add_parser("fetch-analyze")
    _ = fetch_analyze.add_argument("--source1", default="airQuality", choices=source_keys())
    _ = fetch_analyze.add_argument("--source2", default="cryptocurrency", choices=source_keys())
    _ = fetch_analyze.add_argument("--time-range", choices=list(TIME_RANGES))

    return parser


def _requests_transport(timeout_seconds: float):
    def transport(method: str, url: str, headers: Mapping[str, str]) -> HttpResponse:
        response = requests.request(method, url, headers=dict(headers), timeout=timeout_seconds)
        return HttpResponse(
            status_code=response.status_code,
            body=response.content,
            headers=dict(response.headers.items()),
        )

    return transport


def build_http_client(settings: Settings) -> SimpleHttpClient:
    return SimpleHttpClient(
        transport=_requests_transport(settings.request_timeout_seconds),
        rate_limit_per_second=settings.rate_limit_per_second,
        max_retries=settings.max_retries,
    )


def _read_payload(path: str) -> object:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise FetchError(f"{path} is not valid JSON: {exc.msg}", kind=FailureKind.VALIDATION) from exc


def list_sources_command() -> list[dict[str, object]]:
    return [
        {"key": key, "name": descriptor.name, "shape": descriptor.shape, "unit": descriptor.unit}
        for key, descriptor in DEFAULT_SOURCES.items()
    ]


def analyze_files_command(
    source1: str,
    file1: str,
    source2: str,
    file2: str,
    normalize: bool = True,
    tolerance_ms: Optional[int] = None,
    spike_threshold: Optional[float] = None,
) -> dict[str, object]:
    settings = load_settings()
    if tolerance_ms is not None:
        settings = replace(settings, alignment_tolerance_ms=tolerance_ms)
    if spike_threshold is not None:
        settings = replace(settings, spike_threshold=spike_threshold)

    descriptor1 = get_source(source1)
    descriptor2 = get_source(source2)
    descriptor1 = replace(descriptor1, transform=replace(descriptor1.transform, normalize=normalize))
    descriptor2 = replace(descriptor2, transform=replace(descriptor2.transform, normalize=normalize))

    result = run_refresh(
        descriptor1,
        _read_payload(file1),
        descriptor2,
        _read_payload(file2),
        settings=settings,
    )
    return result.to_dict()


def fetch_analyze_command(source1: str, source2: str, time_range: Optional[str] = None) -> dict[str, object]:
    settings = load_settings()
    result = fetch_and_refresh(
        source1,
        source2,
        client=build_http_client(settings),
        settings=settings,
        time_range=time_range,
    )
    return result.to_dict()


def _print_failure(error: Exception) -> int:
    kind = error.kind if isinstance(error, FetchError) else FailureKind.CONFIGURATION
    print(json.dumps({"error": str(error), "kind": kind.value}, ensure_ascii=False))
    return 1


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "list-sources":
        print(json.dumps(list_sources_command(), ensure_ascii=False))
        return 0

    if args.command == "analyze-files":
        try:
            result = analyze_files_command(
                source1=args.source1,
                file1=args.file1,
                source2=args.source2,
                file2=args.file2,
                normalize=args.normalize,
                tolerance_ms=args.tolerance_ms,
                spike_threshold=args.spike_threshold,
            )
        except (OSError, FetchError) as error:
            return _print_failure(error)
        print(json.dumps(result, default=str, ensure_ascii=False))
        return 0

    if args.command == "fetch-analyze":
        result = fetch_analyze_command(args.source1, args.source2, args.time_range)
        print(json.dumps(result, default=str, ensure_ascii=False))
        return 0 if not result.get("errors") else 2

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
