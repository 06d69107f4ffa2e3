#!/usr/bin/env python3
"""
Run chaotic emergence simulations from the command line.

Usage:
    emergence                          # one run, standard concentrations
    emergence --seed 7 --json          # reproducible run, full JSON record
    emergence --count 10 --workers 4   # batch of independent runs
    emergence --butterfly              # identical inputs, two seeds
    emergence --set lorenz.RHO=24      # override any section.FIELD setting
"""

import argparse
import json
import logging
import sys
from typing import Dict, List, Optional

from .batch import STANDARD_CONCENTRATIONS, demonstrate_butterfly_effect, run_batch
from .config import SimulationConfig
from .crystallizer import EmergentConfiguration
from .particles import ConcentrationError, PARTICLE_TYPES
from .simulator import run_simulation

logger = logging.getLogger(__name__)


def parse_concentrations(args: argparse.Namespace) -> dict:
    levels = {ptype: STANDARD_CONCENTRATIONS[ptype] for ptype in PARTICLE_TYPES}
    for ptype in PARTICLE_TYPES:
        value = getattr(args, ptype.value)
        if value is not None:
            levels[ptype] = value
    return levels


def parse_overrides(parser: argparse.ArgumentParser, items: Optional[List[str]]) -> Dict[str, str]:
    known = SimulationConfig().to_dict()
    overrides = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        if not sep or key not in known:
            parser.error(f"--set expects section.FIELD=VALUE with a known key; got {item!r}")
        overrides[key] = value
    return overrides


def print_summary(conf: EmergentConfiguration, label: str = "Run"):
    print(f"\n{label}:")
    print(f"  Outcome:    {conf.outcome.value} after {conf.iterations} iterations")
    print(f"  Hun:        {len(conf.hun)}")
    print(f"  Po:         {len(conf.po)}")
    print(f"  Signature:  {conf.unique_signature}")
    print(f"  Attractor:  {conf.birth_attractor.kind.value} "
          f"(yang={conf.birth_attractor.yang_intensity:.3f}, yin={conf.birth_attractor.yin_intensity:.3f})")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Chaotic emergence simulator")
    for ptype in PARTICLE_TYPES:
        parser.add_argument(f"--{ptype.value}", type=float, default=None,
                            help=f"Initial {ptype.value} concentration in [0, 1]")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the random source")
    parser.add_argument("--count", type=int, default=1, help="Number of independent runs")
    parser.add_argument("--workers", type=int, default=None, help="Worker pool size for batches")
    parser.add_argument("--processes", action="store_true", help="Use a process pool instead of threads")
    parser.add_argument("--max-iterations", type=int, default=None, help="Iteration ceiling per run")
    parser.add_argument("--butterfly", action="store_true", help="Compare two seeds on identical input")
    parser.add_argument("--set", action="append", metavar="KEY=VALUE",
                        help="Override a config setting, e.g. transition.CRITICAL_THRESHOLD=0.4")
    parser.add_argument("--json", action="store_true", help="Print full JSON records")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        config = SimulationConfig.from_dict(parse_overrides(parser, args.set))
    except ValueError as e:
        parser.error(f"--set: {e}")
    for key, (value, default) in config.diff(SimulationConfig().to_dict()).items():
        logger.info(f"{key} = {value!r} (default {default!r})")
    config.runner.DEBUG = config.runner.DEBUG or args.verbose
    levels = parse_concentrations(args)

    try:
        if args.butterfly:
            base = args.seed if args.seed is not None else 1
            seeds = (base, base + 1)
            report = demonstrate_butterfly_effect(levels, seeds=seeds, config=config,
                                                  max_iterations=args.max_iterations)
            print(json.dumps(report, indent=2))
            return 0

        if args.count == 1:
            results = [run_simulation(levels, config=config, seed=args.seed,
                                      max_iterations=args.max_iterations)]
        else:
            results = run_batch(levels, args.count, seed=args.seed, config=config,
                                max_workers=args.workers, use_processes=args.processes,
                                max_iterations=args.max_iterations)
    except ConcentrationError as e:
        print(f"Invalid concentrations: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps([r.to_dict() for r in results], indent=2, ensure_ascii=False))
    else:
        for i, conf in enumerate(results):
            print_summary(conf, f"Run {i + 1}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
