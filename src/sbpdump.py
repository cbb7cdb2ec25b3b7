#!/usr/bin/env python3
"""SBP signal id dump.

Reads a file of JSON-encoded SBP messages (one message per line) and prints,
for every epoch, which satellites/signals each sender reported in its
observation, ephemeris and SSR correction messages. Lining up the rows of an
observation stream against those of a correction stream makes missing or
mismatched signals easy to spot.

Row layout (sender-aware):

    <epoch:6> <sender:5> <msg_type:4> sat:code sat:code-iod ...

Usage:
    python src/sbpdump.py -f <file.json> [--matched] [--gps] [--galileo]
                          [--filter MODE] [--flat | --sender-aware]
                          [--breaks | --no-breaks] [-c config.yaml] [-v]
"""

import argparse
import json
import logging
import os
import sys
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from itertools import groupby

import yaml

from sbp_messages import (
    GAL_CODES,
    GPS_CODES,
    MESSAGE_DESCRIPTIONS,
    classify,
)

logger = logging.getLogger(__name__)

# Extra blank lines between epochs when segment breaks are on
MINUTE_BREAK_SECONDS = 60
TEN_MINUTE_BREAK_SECONDS = 600


class RecordParseError(ValueError):
    """A line of the input file is not valid JSON."""

    def __init__(self, line_number, reason):
        super().__init__(f"line {line_number}: {reason}")
        self.line_number = line_number


class ConfigError(ValueError):
    """The YAML config file is unreadable or holds invalid values."""


class FilterMode(str, Enum):
    """Which signal codes make it into the report."""
    NONE = "none"
    GPS = "gps"
    GALILEO = "galileo"
    BOTH = "both"


DEFAULT_CONFIG = {
    "filter": FilterMode.NONE.value,
    "sender_aware": True,
    "breaks": False,
}


@dataclass(frozen=True)
class CodeFilter:
    """Allowed signal codes; allowed_codes=None lets every code through."""
    allowed_codes: frozenset | None = None

    @classmethod
    def from_mode(cls, mode):
        mode = FilterMode(mode)
        if mode == FilterMode.NONE:
            return cls(None)
        codes = set()
        if mode in (FilterMode.GPS, FilterMode.BOTH):
            codes |= GPS_CODES
        if mode in (FilterMode.GALILEO, FilterMode.BOTH):
            codes |= GAL_CODES
        return cls(frozenset(codes))

    def allows(self, sid):
        return self.allowed_codes is None or sid.code in self.allowed_codes


def filter_mode_from_flags(matched=False, gps=False, galileo=False):
    """Map the --matched/--gps/--galileo flags onto a FilterMode.

    Picking one constellation drops the other unless it is picked too;
    --matched with neither picked keeps both. --gps or --galileo on their
    own imply --matched.
    """
    if gps and galileo:
        return FilterMode.BOTH
    if gps:
        return FilterMode.GPS
    if galileo:
        return FilterMode.GALILEO
    if matched:
        return FilterMode.BOTH
    return FilterMode.NONE


@dataclass
class DumpResult:
    """Collected data from a single pass through the SBP JSON file."""
    epochs: dict = field(default_factory=dict)          # epoch -> sender -> kind -> set[Sid]
    message_counts: dict = field(default_factory=dict)  # kind -> count
    total_records: int = 0
    classified_records: int = 0


def fold_message(result, msg):
    """Merge one ClassifiedMessage into the epoch/sender/kind index."""
    sender_map = result.epochs.setdefault(msg.epoch, {})
    kind_map = sender_map.setdefault(msg.sender, {})
    kind_map.setdefault(msg.kind, set()).update(msg.sids)
    result.message_counts[msg.kind] = result.message_counts.get(msg.kind, 0) + 1
    result.classified_records += 1


def _reject_constant(name):
    # json accepts NaN/Infinity, which are not JSON
    raise ValueError(f"invalid constant {name}")


def parse_sbp_lines(lines):
    """Single-pass parse of JSON lines. Returns DumpResult.

    Raises RecordParseError on the first line that is not valid JSON.
    """
    result = DumpResult()
    for line_number, line in enumerate(lines, 1):
        try:
            record = json.loads(line, parse_constant=_reject_constant)
        except json.JSONDecodeError as e:
            raise RecordParseError(line_number, e.msg) from e
        except (ValueError, RecursionError) as e:
            raise RecordParseError(line_number, str(e) or type(e).__name__) from e

        result.total_records += 1
        msg = classify(record)
        if msg is not None:
            fold_message(result, msg)

    return result


def parse_sbp_json(filepath):
    """Parse an SBP JSON log file. Returns DumpResult."""
    with open(filepath, "r", encoding="utf-8") as f:
        return parse_sbp_lines(f)


def iter_index(result):
    """Yield (epoch, sender, kind, sorted sids) in ascending order."""
    for epoch in sorted(result.epochs):
        sender_map = result.epochs[epoch]
        for sender in sorted(sender_map):
            kind_map = sender_map[sender]
            for kind in sorted(kind_map):
                yield epoch, sender, kind, sorted(kind_map[kind])


def _merge_senders(sender_map):
    """Union the sid sets of every sender, keyed by kind."""
    merged = defaultdict(set)
    for kind_map in sender_map.values():
        for kind, sids in kind_map.items():
            merged[kind] |= sids
    return merged


def _format_sids(sids, code_filter):
    return "".join(f"{sid} " for sid in sorted(sids) if code_filter.allows(sid))


def render_report(result, code_filter=None, sender_aware=True, breaks=False):
    """Yield report lines for a completed DumpResult.

    Each epoch's rows are followed by a blank line. With breaks on, epochs
    on a whole minute get one more blank line and those on a ten minute
    boundary another.
    """
    if code_filter is None:
        code_filter = CodeFilter()

    for epoch, rows in groupby(iter_index(result), key=lambda row: row[0]):
        if sender_aware:
            for _epoch, sender, kind, sids in rows:
                yield f"{epoch:>6} {sender:>5} {int(kind):>4} {_format_sids(sids, code_filter)}"
        else:
            merged = _merge_senders(result.epochs[epoch])
            for kind in sorted(merged):
                yield f"{epoch:>6} {int(kind):>4} {_format_sids(merged[kind], code_filter)}"

        yield ""
        if breaks:
            if epoch % MINUTE_BREAK_SECONDS == 0:
                yield ""
            if epoch % TEN_MINUTE_BREAK_SECONDS == 0:
                yield ""


def print_report(result, code_filter=None, sender_aware=True, breaks=False, out=None):
    """Write the rendered report to out (stdout by default)."""
    out = out or sys.stdout
    for line in render_report(result, code_filter, sender_aware, breaks):
        print(line, file=out)


def log_inventory(result):
    """Log how many records were seen and classified, per message type."""
    logger.info(
        f"Classified {result.classified_records:,} of {result.total_records:,} records "
        f"into {len(result.epochs):,} epochs"
    )
    for kind in sorted(result.message_counts):
        desc = MESSAGE_DESCRIPTIONS.get(kind, "")
        logger.debug(f"  {int(kind):>4} ({desc}): {result.message_counts[kind]:,}")


def load_config(config_path):
    """Load report defaults from a YAML file, filling in missing keys."""
    try:
        with open(config_path, "r") as f:
            raw = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"cannot read config {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {config_path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"config {config_path} must be a mapping")

    config = dict(DEFAULT_CONFIG)
    config.update({key: raw[key] for key in DEFAULT_CONFIG if key in raw})

    try:
        config["filter"] = FilterMode(config["filter"]).value
    except ValueError:
        choices = ", ".join(m.value for m in FilterMode)
        raise ConfigError(f"filter must be one of {choices}, got {config['filter']!r}")
    for key in ("sender_aware", "breaks"):
        if not isinstance(config[key], bool):
            raise ConfigError(f"{key} must be true or false, got {config[key]!r}")

    return config


def resolve_filter_mode(args, config):
    """--filter beats the legacy flags, which beat the config file."""
    if args.filter:
        return FilterMode(args.filter)
    if args.matched or args.gps or args.galileo:
        return filter_mode_from_flags(args.matched, args.gps, args.galileo)
    return FilterMode(config["filter"])


def build_parser():
    parser = argparse.ArgumentParser(
        description="Dump SBP signal ids per epoch, sender and message type",
    )
    parser.add_argument(
        "-f", "--file", required=True,
        help="Path to SBP JSON log (one message per line)",
    )
    parser.add_argument(
        "--matched", action="store_true",
        help="Only show GPS and Galileo signal codes",
    )
    parser.add_argument(
        "--gps", action="store_true",
        help="Only show GPS signal codes (combine with --galileo for both)",
    )
    parser.add_argument(
        "--galileo", action="store_true",
        help="Only show Galileo signal codes (combine with --gps for both)",
    )
    parser.add_argument(
        "--filter", choices=[m.value for m in FilterMode], default=None,
        help="Explicit code filter, overrides --matched/--gps/--galileo",
    )
    shape = parser.add_mutually_exclusive_group()
    shape.add_argument(
        "--flat", dest="sender_aware", action="store_false", default=None,
        help="Merge senders: one row per epoch and message type",
    )
    shape.add_argument(
        "--sender-aware", dest="sender_aware", action="store_true", default=None,
        help="One row per epoch, sender and message type (default)",
    )
    breaks = parser.add_mutually_exclusive_group()
    breaks.add_argument(
        "--breaks", dest="breaks", action="store_true", default=None,
        help="Extra blank lines at every minute and ten minute epoch",
    )
    breaks.add_argument(
        "--no-breaks", dest="breaks", action="store_false", default=None,
        help="No segment breaks, even if the config file enables them",
    )
    parser.add_argument(
        "-c", "--config", default=None,
        help="Optional YAML file with filter/sender_aware/breaks defaults",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s"
    )
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = load_config(args.config) if args.config else dict(DEFAULT_CONFIG)
    except ConfigError as e:
        logger.error(f"Config error: {e}")
        sys.exit(1)

    filter_mode = resolve_filter_mode(args, config)
    sender_aware = config["sender_aware"] if args.sender_aware is None else args.sender_aware
    breaks = config["breaks"] if args.breaks is None else args.breaks

    filepath = args.file
    if not os.path.isfile(filepath):
        logger.error(f"File not found: {filepath}")
        sys.exit(1)

    logger.info(f"Parsing {os.path.basename(filepath)} (filter: {filter_mode.value})...")
    try:
        result = parse_sbp_json(filepath)
    except RecordParseError as e:
        logger.error(f"Invalid JSON in {filepath}, {e}")
        sys.exit(1)
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Could not read {filepath}: {e}")
        sys.exit(1)

    log_inventory(result)
    print_report(result, CodeFilter.from_mode(filter_mode), sender_aware, breaks)


if __name__ == "__main__":
    main()
