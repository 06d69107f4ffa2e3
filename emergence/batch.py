"""
emergence.batch
===============

Independent runs over a worker pool, and the butterfly-effect comparison.

Each run gets its own child of one ``SeedSequence``; a batch is therefore
reproducible from a single seed while its members stay statistically
independent.
"""

import concurrent.futures
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np

from .config import SimulationConfig, resolve_config
from .crystallizer import EmergentConfiguration
from .particles import ConcentrationKey, ParticleType, validate_concentrations
from .simulator import run_simulation

logger = logging.getLogger(__name__)

STANDARD_CONCENTRATIONS: Dict[ParticleType, float] = {
    ParticleType.VITAL: 0.7,
    ParticleType.CONSCIOUS: 0.8,
    ParticleType.CREATIVE: 0.6,
    ParticleType.CONNECTIVE: 0.5,
    ParticleType.TRANSFORMATIVE: 0.4,
}


def _run_one(
    concentrations: Dict[ParticleType, float],
    config: SimulationConfig,
    seed: np.random.SeedSequence,
    max_iterations: Optional[int],
) -> EmergentConfiguration:
    return run_simulation(concentrations, config=config, seed=seed, max_iterations=max_iterations)


def run_batch(
    concentrations: Mapping[ConcentrationKey, float],
    count: int,
    seed: Optional[int] = None,
    config: Optional[SimulationConfig] = None,
    max_workers: Optional[int] = None,
    use_processes: Optional[bool] = None,
    max_iterations: Optional[int] = None,
) -> List[EmergentConfiguration]:
    """
    Run ``count`` simulations from the same concentrations.

    Results come back in submission order. Input is validated before any
    worker starts.
    """
    if count < 0:
        raise ValueError(f"count must be non-negative; got {count}")
    levels = validate_concentrations(concentrations)
    cfg = resolve_config(config)
    workers = max_workers or cfg.runner.MAX_WORKERS
    processes = cfg.runner.USE_PROCESSES if use_processes is None else use_processes

    seeds = np.random.SeedSequence(seed).spawn(count)
    results: List[Optional[EmergentConfiguration]] = [None] * count
    if count == 0:
        return []

    pool_cls = concurrent.futures.ProcessPoolExecutor if processes else concurrent.futures.ThreadPoolExecutor
    logger.info(f"Running {count} simulations on {workers} {'process' if processes else 'thread'} workers")

    with pool_cls(max_workers=workers) as executor:
        future_to_index = {
            executor.submit(_run_one, levels, cfg, seeds[i], max_iterations): i
            for i in range(count)
        }
        for future in concurrent.futures.as_completed(future_to_index):
            idx = future_to_index[future]
            results[idx] = future.result()

    forced = sum(1 for r in results if r.forced)
    if forced:
        logger.warning(f"{forced}/{count} runs were forced to crystallize (timeout or divergence)")
    return results


def compare_configurations(a: EmergentConfiguration, b: EmergentConfiguration) -> Dict[str, Any]:
    """Side-by-side summary of two runs."""
    return {
        "hun_counts": (len(a.hun), len(b.hun)),
        "po_counts": (len(a.po), len(b.po)),
        "signatures": (a.unique_signature, b.unique_signature),
        "outcomes": (a.outcome.value, b.outcome.value),
        "same_signature": a.unique_signature == b.unique_signature,
        "same_structure": len(a.hun) == len(b.hun) and len(a.po) == len(b.po),
    }


def demonstrate_butterfly_effect(
    concentrations: Optional[Mapping[ConcentrationKey, float]] = None,
    seeds: Sequence[int] = (1, 2),
    config: Optional[SimulationConfig] = None,
    max_iterations: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Run identical concentrations under two seeds and compare the results.

    Identical concentrations with different random sources yield different
    signatures; identical seeds yield identical ones.
    """
    if len(seeds) != 2:
        raise ValueError("Exactly two seeds are required")
    levels = concentrations if concentrations is not None else STANDARD_CONCENTRATIONS

    first = run_simulation(levels, config=config, seed=seeds[0], max_iterations=max_iterations)
    second = run_simulation(levels, config=config, seed=seeds[1], max_iterations=max_iterations)
    report = compare_configurations(first, second)

    for label, conf in (("Run 1", first), ("Run 2", second)):
        logger.info(
            f"{label}: {len(conf.hun)} hun, {len(conf.po)} po, "
            f"signature {conf.unique_signature} ({conf.outcome.value})"
        )
    return report
