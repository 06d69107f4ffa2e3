"""
emergence.metrics
=================

System-level metrics recomputed from scratch on every step:

- entropy           : disorder proxy from mean squared speed
- order_parameter   : Kuramoto synchronization of velocity phases
- chaos_estimate    : divergence proxy from adjacent-pair spacing
- correlation_length: scalar multiple of the order parameter

None of these accumulate state between steps; each is a pure function of
the current positions and velocities.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np

from .config import MetricsConfig


@dataclass
class SystemMetrics:
    """
    Snapshot of the system-level metrics.

    Attributes
    ----------
    entropy : float
        In [0, 1]. 0 means every particle is at rest.
    order_parameter : float
        In [0, 1]. 1 means every velocity phase is aligned.
    chaos_estimate : float
        In (-1, 1). Positive reads as "more chaotic", negative as "more
        stable". This is a spacing heuristic, not a Lyapunov exponent.
    correlation_length : float
        ``order_parameter * scale``; not measured independently.
    """

    entropy: float = 0.8
    order_parameter: float = 0.0
    chaos_estimate: float = 0.0
    correlation_length: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entropy": round(self.entropy, 6),
            "order_parameter": round(self.order_parameter, 6),
            "chaos_estimate": round(self.chaos_estimate, 6),
            "correlation_length": round(self.correlation_length, 6),
        }


def _check_rows(arr: np.ndarray) -> np.ndarray:
    arr = np.asarray(arr, dtype=float)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"Expected an (n, 3) array of vectors; got shape {arr.shape!r}")
    if arr.shape[0] == 0:
        raise ValueError("Cannot compute metrics on an empty particle set.")
    return arr


def entropy(velocities: np.ndarray, scale: float = 100.0) -> float:
    """Mean squared speed over ``n * scale``, clamped to [0, 1]. NaN passes through."""
    v = _check_rows(velocities)
    total = (v * v).sum()
    return float(np.clip(total / (v.shape[0] * scale), 0.0, 1.0))


def order_parameter(velocities: np.ndarray) -> float:
    """
    Kuramoto order parameter ``|sum(exp(i * phi))| / n``.

    Bounded in [0, 1] by construction; the clip only absorbs rounding and
    leaves NaN from a non-finite velocity as NaN.
    """
    v = _check_rows(velocities)
    phases = np.arctan2(v[:, 1], v[:, 0])
    r = np.abs(np.exp(1j * phases).sum()) / v.shape[0]
    return float(np.clip(r, 0.0, 1.0))


def chaos_estimate(positions: np.ndarray, baseline: float = 5.0, offset: float = 2.0) -> float:
    """
    Crude divergence proxy.

    Sums ``| ||p_i - p_{i+1}|| - baseline |`` over adjacent pairs in storage
    order (not nearest neighbours), divides by particle count, subtracts
    ``offset`` and squashes with tanh. There is no formal link to a
    Lyapunov exponent.
    """
    p = _check_rows(positions)
    n = p.shape[0]
    if n < 2:
        return float(np.tanh(-offset))
    gaps = np.linalg.norm(p[1:] - p[:-1], axis=1)
    divergence = float(np.abs(gaps - baseline).sum())
    return float(np.tanh(divergence / n - offset))


def compute_metrics(
    positions: np.ndarray,
    velocities: np.ndarray,
    config: Optional[MetricsConfig] = None,
) -> SystemMetrics:
    cfg = config or MetricsConfig()
    order = order_parameter(velocities)
    return SystemMetrics(
        entropy=entropy(velocities, cfg.ENTROPY_SCALE),
        order_parameter=order,
        chaos_estimate=chaos_estimate(positions, cfg.BASELINE_DISTANCE, cfg.CHAOS_OFFSET),
        correlation_length=order * cfg.CORRELATION_SCALE,
    )
