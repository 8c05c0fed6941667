"""
Command line for benchmarking and single queries.

Usage:
    gefp evaluate data/scans.txt --mode gfp --kernel-size 10 --kbest 10 --output out/results.jsonl
    gefp evaluate data/scans.txt --mode bow --weighting sublinear
    gefp query data/scans.txt --scan 42 --mode gfp --bag-of-distances

Settings not given on the command line fall back to GEFP_* environment
variables, then to the library defaults.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from gefp.config import EngineConfig, MatchMode, Representation, Weighting
from gefp.engine import DEFAULT_NUM_WORKERS, GefpEngine
from gefp.errors import GefpError
from gefp.metrics import summarize
from gefp.writer import JsonlResultWriter

logger = logging.getLogger(__name__)


def _add_engine_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("scan_file", help="Word-scan file, one scan per line")
    parser.add_argument(
        "--mode",
        choices=[m.value for m in MatchMode],
        default=MatchMode.GEOMETRIC_PHRASES.value,
        help="bow: bag-of-words, gfp: geometrical phrases (default: gfp)",
    )
    parser.add_argument("--kernel-size", type=int, default=None, help="Phrase window size")
    parser.add_argument("--kbest", type=int, default=None, help="Results kept per query")
    parser.add_argument(
        "--bag-of-distances",
        action="store_true",
        help="Index binned pairwise distances instead of word ids",
    )
    parser.add_argument(
        "--weighting",
        choices=[w.value for w in Weighting],
        default=None,
        help="TF-IDF variant (default: standard)",
    )
    parser.add_argument("--alpha", type=float, default=None, help="Length smoothing coefficient")
    parser.add_argument("--significance", type=float, default=None, help="Weak match threshold")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gefp",
        description="Place recognition over 2D range scans with geometrical FLIRT phrases",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    evaluate = subparsers.add_parser("evaluate", help="Match every scan against the whole dataset")
    _add_engine_arguments(evaluate)
    evaluate.add_argument("--output", default=None, help="JSONL file for the k-best results")
    evaluate.add_argument(
        "--num-workers",
        type=int,
        default=DEFAULT_NUM_WORKERS,
        help=f"Parallel query workers (default: {DEFAULT_NUM_WORKERS})",
    )

    query = subparsers.add_parser("query", help="Match one scan of the dataset")
    _add_engine_arguments(query)
    query.add_argument("--scan", type=int, required=True, help="Index of the query scan")
    return parser


def _config_from_args(args: argparse.Namespace) -> EngineConfig:
    representation = Representation.DISTANCES if args.bag_of_distances else None
    return EngineConfig.from_env(
        kernel_size=args.kernel_size,
        kbest=args.kbest,
        representation=representation,
        weighting=args.weighting,
        alpha=args.alpha,
        significance=args.significance,
    )


def _load_engine(args: argparse.Namespace) -> GefpEngine:
    engine = GefpEngine(_config_from_args(args))
    engine.read_wordscan_file(args.scan_file)
    engine.prepare()
    return engine


def run_evaluate(args: argparse.Namespace) -> int:
    engine = _load_engine(args)
    if args.output:
        with JsonlResultWriter(args.output) as writer:
            records = engine.run_evaluation(args.mode, writer, args.num_workers, show_progress=True)
        logger.info("Wrote %d records to %s", writer.count, args.output)
    else:
        records = engine.run_evaluation(args.mode, num_workers=args.num_workers, show_progress=True)
    print(json.dumps(summarize(records), indent=2))
    return 0


def run_query(args: argparse.Namespace) -> int:
    engine = _load_engine(args)
    if not 0 <= args.scan < len(engine):
        print(f"scan index {args.scan} out of range [0, {len(engine)})", file=sys.stderr)
        return 2
    scan = engine.corpus[args.scan]
    results = engine.query(args.mode, scan.words, scan.x, scan.y)
    for rank, entry in enumerate(results, start=1):
        print(f"{rank:3d}  scan {entry.scan_index:6d}  score {entry.score:.6f}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.command == "evaluate":
            return run_evaluate(args)
        return run_query(args)
    except (GefpError, OSError) as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
