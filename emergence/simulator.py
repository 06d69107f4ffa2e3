# emergence/simulator.py
import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Union

import numpy as np

from .config import SimulationConfig, resolve_config
from .crystallizer import EmergenceOutcome, EmergentConfiguration, crystallize
from .integrator import step
from .metrics import SystemMetrics, compute_metrics
from .particles import ConcentrationKey, ParticleSystem, validate_concentrations
from .transition import PhaseTransitionDetector, TransitionState

logger = logging.getLogger(__name__)

SeedLike = Union[None, int, np.random.SeedSequence, np.random.Generator]


class SimulationCancelled(RuntimeError):
    """Raised when a caller sets the cancel event mid-run."""


@dataclass
class SimulationSnapshot:
    metrics: SystemMetrics
    transition: TransitionState
    time: float
    iterations: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metrics": self.metrics.to_dict(),
            "transition": self.transition.to_dict(),
            "time": round(self.time, 6),
            "iterations": self.iterations,
        }


class ChaoticEmergenceSimulator:
    """
    One self-contained run: seed, evolve until crystallization or the
    iteration ceiling, crystallize.

    Holds no shared state; run independent simulators on separate threads or
    processes freely.
    """

    def __init__(
        self,
        concentrations: Mapping[ConcentrationKey, float],
        config: Optional[SimulationConfig] = None,
        seed: SeedLike = None,
    ):
        self.config = resolve_config(config)
        self.concentrations = validate_concentrations(concentrations)
        self.rng = np.random.default_rng(seed)
        self.system = ParticleSystem.seed(self.concentrations, self.rng, self.config.seeding)
        self.detector = PhaseTransitionDetector(
            critical_threshold=self.config.transition.CRITICAL_THRESHOLD,
            min_dwell=self.config.transition.MIN_DWELL_TIME,
        )
        self.metrics = SystemMetrics()
        self.time = 0.0
        self.iterations = 0

    @property
    def has_crystallized(self) -> bool:
        return self.detector.has_crystallized

    @property
    def has_diverged(self) -> bool:
        return self.detector.state.diverged_at is not None

    def evolve(self) -> None:
        """
        Advance one step: integrate, recompute metrics, check for transition.

        A step that leaves the bounded region is rolled back and the run is
        marked diverged; later calls do nothing.
        """
        if self.has_diverged:
            return
        cfg = self.config
        positions = self.system.positions.copy()
        velocities = self.system.velocities.copy()
        with np.errstate(over="ignore", invalid="ignore"):
            step(self.system, self.time, cfg.lorenz, cfg.integrator)
        if not self.system.is_bounded(cfg.integrator.DIVERGENCE_LIMIT):
            self.system.restore(positions, velocities)
            self.detector.mark_diverged(self.iterations + 1)
            logger.warning(
                f"State left the bounded region at iteration {self.iterations + 1} "
                f"(limit={cfg.integrator.DIVERGENCE_LIMIT:g}); keeping the last bounded state"
            )
            return

        self.metrics = compute_metrics(self.system.positions, self.system.velocities, cfg.metrics)
        self.iterations += 1

        if self.detector.update(self.metrics.order_parameter, cfg.integrator.DT, self.iterations):
            logger.info(
                f"Crystallized after {self.iterations} iterations "
                f"(t={self.time:.2f}, order={self.metrics.order_parameter:.3f})"
            )

        self.time += cfg.integrator.DT

    def snapshot(self) -> SimulationSnapshot:
        """Copy of metrics and transition state for monitoring."""
        return SimulationSnapshot(
            metrics=replace(self.metrics),
            transition=replace(self.detector.state),
            time=self.time,
            iterations=self.iterations,
        )

    def run(
        self,
        max_iterations: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> EmergentConfiguration:
        """
        Evolve until crystallization or ``max_iterations`` total steps.

        Hitting the ceiling forces crystallization: the result is tagged
        ``EmergenceOutcome.TIMEOUT`` and a warning is logged. A run whose
        state diverges stops early and crystallizes its last bounded state
        as ``EmergenceOutcome.DIVERGED``.
        """
        limit = self.config.transition.MAX_ITERATIONS if max_iterations is None else max_iterations
        runner = self.config.runner

        while not self.detector.has_crystallized and not self.has_diverged and self.iterations < limit:
            if cancel_event is not None and cancel_event.is_set():
                raise SimulationCancelled(f"Simulation cancelled after {self.iterations} iterations")
            self.evolve()
            if runner.DEBUG and runner.LOG_EVERY > 0 and self.iterations % runner.LOG_EVERY == 0:
                logger.debug(
                    f"iter={self.iterations} order={self.metrics.order_parameter:.3f} "
                    f"dwell={self.detector.state.dwell_time:.2f} entropy={self.metrics.entropy:.3f}"
                )

        if self.detector.has_crystallized:
            outcome = EmergenceOutcome.CRYSTALLIZED
        elif self.has_diverged:
            outcome = EmergenceOutcome.DIVERGED
        else:
            self.detector.mark_timeout()
            outcome = EmergenceOutcome.TIMEOUT
            logger.warning(
                f"No phase transition within {limit} iterations; forcing crystallization "
                f"(order={self.metrics.order_parameter:.3f})"
            )

        return crystallize(
            self.system,
            self.metrics,
            outcome=outcome,
            iterations=self.iterations,
            simulated_time=self.time,
        )


def run_simulation(
    concentrations: Mapping[ConcentrationKey, float],
    config: Optional[SimulationConfig] = None,
    seed: SeedLike = None,
    max_iterations: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
) -> EmergentConfiguration:
    """Run one simulation to completion and return its configuration."""
    simulator = ChaoticEmergenceSimulator(concentrations, config=config, seed=seed)
    return simulator.run(max_iterations=max_iterations, cancel_event=cancel_event)
