#!/usr/bin/env python3
"""
Command line interface for the rtcstats features toolkit.

Usage:
    # Aggregate a session sample map
    rtcstats-features aggregate samples.json --output aggregates.json

    # Extract samples from an rtcstats dump, and aggregate them right away
    rtcstats-features extract dump.ndjson --aggregate

    # Build flat feature records for a session
    rtcstats-features records samples.json --session-info session.json

    # Validate configuration
    rtcstats-features --config features.yaml validate
"""

import argparse
import json
import logging
import math
import sys
from pathlib import Path
from typing import Any, List, Mapping, Optional

from extraction.dump_extractor import DumpExtractor, load_dump
from monitoring.logging_config import (
    LogFormat,
    LogOutput,
    LoggingConfig,
    apply_logging_config,
    set_correlation_context,
)
from monitoring.structured_logging import CorrelationIdManager
from publishing.feature_records import FeatureRecordBuilder
from quality_stats.stats_aggregator import StatsAggregator

from .config_manager import ConfigManager
from .exceptions import QualityStatsError, ValidationError
from .utils import load_json_file

logger = logging.getLogger(__name__)


def _finite(value: Any) -> Any:
    """Replace NaN and infinities, which JSON cannot carry, with null."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {key: _finite(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_finite(item) for item in value]
    return value


def _write_output(document: Any, output: Optional[str]):
    text = json.dumps(_finite(document), indent=2, default=str, allow_nan=False)
    if output:
        Path(output).write_text(text + "\n", encoding='utf-8')
        logger.info(f"Wrote {output}")
    else:
        print(text)


def _load_samples(path: str) -> Mapping[str, Any]:
    samples = load_json_file(path)
    if not isinstance(samples, Mapping):
        raise ValidationError(path, type(samples).__name__, "session sample map must be a JSON object")
    return samples


def _configure_logging(args: argparse.Namespace, manager: ConfigManager):
    settings = manager.config.logging
    overrides = {}
    if args.config:
        overrides = {
            'level': settings.level.value,
            'format_type': LogFormat(settings.format),
            'output': LogOutput(settings.output),
            'log_file': settings.log_file,
        }
    if args.log_level:
        overrides['level'] = args.log_level.upper()
    if args.log_format:
        overrides['format_type'] = LogFormat(args.log_format)
    apply_logging_config(LoggingConfig.from_env(**overrides))


def cmd_aggregate(args: argparse.Namespace, manager: ConfigManager) -> int:
    aggregator = StatsAggregator(manager.aggregation)
    aggregates = aggregator.calculate_aggregates(_load_samples(args.samples))
    _write_output({pc_id: aggregate.to_dict() for pc_id, aggregate in aggregates.items()}, args.output)
    return 0


def cmd_extract(args: argparse.Namespace, manager: ConfigManager) -> int:
    samples = DumpExtractor().extract(load_dump(args.dump))
    if args.aggregate:
        aggregates = StatsAggregator(manager.aggregation).calculate_aggregates(samples)
        document = {pc_id: aggregate.to_dict() for pc_id, aggregate in aggregates.items()}
    else:
        document = {pc_id: pc_data.to_dict() for pc_id, pc_data in samples.items()}
    _write_output(document, args.output)
    return 0


def cmd_records(args: argparse.Namespace, manager: ConfigManager) -> int:
    dump_info = load_json_file(args.session_info)
    if not isinstance(dump_info, Mapping):
        raise ValidationError(args.session_info, type(dump_info).__name__, "session info must be a JSON object")
    if dump_info.get('clientId'):
        CorrelationIdManager.set_session_id(dump_info['clientId'])

    aggregates = StatsAggregator(manager.aggregation).calculate_aggregates(_load_samples(args.samples))
    records = FeatureRecordBuilder(manager.config.app_env).build(dump_info, aggregates)
    _write_output(records.to_dict(), args.output)
    return 0


def cmd_validate(args: argparse.Namespace, manager: ConfigManager) -> int:
    errors = manager.validate()
    if errors:
        for error in errors:
            print(f"❌ {error}")
        return 1
    print("✅ Configuration is valid")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rtcstats-features",
        description="WebRTC quality statistics aggregation"
    )
    parser.add_argument("--config", help="Configuration file (.yaml, .yml or .json)")
    parser.add_argument("--log-level", choices=["debug", "info", "warning", "error"], help="Log level")
    parser.add_argument("--log-format", choices=[f.value for f in LogFormat], help="Log format")

    subparsers = parser.add_subparsers(dest="command", required=True)

    aggregate_parser = subparsers.add_parser("aggregate", help="Aggregate a session sample map")
    aggregate_parser.add_argument("samples", help="Session sample map (JSON)")
    aggregate_parser.add_argument("--output", "-o", help="Output file (defaults to stdout)")
    aggregate_parser.set_defaults(handler=cmd_aggregate)

    extract_parser = subparsers.add_parser("extract", help="Extract samples from an rtcstats dump")
    extract_parser.add_argument("dump", help="Newline delimited JSON dump")
    extract_parser.add_argument("--aggregate", action="store_true", help="Aggregate the extracted samples")
    extract_parser.add_argument("--output", "-o", help="Output file (defaults to stdout)")
    extract_parser.set_defaults(handler=cmd_extract)

    records_parser = subparsers.add_parser("records", help="Build flat feature records")
    records_parser.add_argument("samples", help="Session sample map (JSON)")
    records_parser.add_argument("--session-info", required=True, help="Session metadata (JSON)")
    records_parser.add_argument("--output", "-o", help="Output file (defaults to stdout)")
    records_parser.set_defaults(handler=cmd_records)

    validate_parser = subparsers.add_parser("validate", help="Validate configuration")
    validate_parser.set_defaults(handler=cmd_validate)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        manager = ConfigManager(args.config)
        _configure_logging(args, manager)
        set_correlation_context(component=args.command)
        return args.handler(args, manager)
    except QualityStatsError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"❌ {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
