# emergence/integrator.py
"""
One explicit-Euler step of the particle system.

Three forces are applied in sequence, each over all particles before the
next begins:

1. Lorenz flow on the velocity vector, then position update.
2. Phase coupling between every ordered pair of particles, row by row.
3. Pull toward each attractor basin, weighted by per-particle affinity.

Step size is fixed; there is no error control.
"""

import math

import numpy as np

from .attractors import attractor_field
from .config import IntegratorConfig, LorenzConfig
from .particles import ParticleSystem


def lorenz_flow(system: ParticleSystem, lorenz: LorenzConfig, dt: float) -> None:
    """Advance velocities through the Lorenz map, then integrate positions."""
    v = system.velocities
    x, y, z = v[:, 0], v[:, 1], v[:, 2]
    dv = np.column_stack((
        lorenz.SIGMA * (y - x),
        x * (lorenz.RHO - z) - y,
        x * y - lorenz.BETA * z,
    ))
    v += dv * dt
    system.positions += v * dt


def phase_coupling(system: ParticleSystem, dt: float, include_self: bool = True) -> None:
    """
    Kuramoto-style coupling, applied particle by particle in storage order.

    Row i fixes its own phase ``phi_i`` when the row starts, then for every j
    reads ``phi_j`` from the live velocity and adds
    ``M[i, j] * k_i * (sin, cos)(phi_j - phi_i) * dt`` to (vx_i, vy_i).
    Particles before i have already moved this step, and the self pair sees
    whatever row i has accumulated so far.
    """
    v = system.velocities
    n = len(system)
    for i in range(n):
        phase_i = math.atan2(v[i, 1], v[i, 0])
        k_i = float(system.coupling[i])
        for j in range(n):
            if j == i and not include_self:
                continue
            diff = math.atan2(v[j, 1], v[j, 0]) - phase_i
            weight = float(system.interaction[i, j]) * k_i
            v[i, 0] += weight * math.sin(diff) * dt
            v[i, 1] += weight * math.cos(diff) * dt


def simultaneous_phase_coupling(system: ParticleSystem, dt: float, include_self: bool = True) -> None:
    """
    Same coupling law with every phase read once at the start of the step,
    so the result does not depend on particle order.
    """
    phases = system.phases()
    diff = phases[np.newaxis, :] - phases[:, np.newaxis]  # [i, j] = phi_j - phi_i
    weights = system.interaction * system.coupling[:, np.newaxis]
    if not include_self:
        weights = weights.copy()
        np.fill_diagonal(weights, 0.0)

    system.velocities[:, 0] += (weights * np.sin(diff)).sum(axis=1) * dt
    system.velocities[:, 1] += (weights * np.cos(diff)).sum(axis=1) * dt


COUPLING_ORDERS = {
    "sequential": phase_coupling,
    "simultaneous": simultaneous_phase_coupling,
}


def attractor_pull(system: ParticleSystem, t: float, dt: float) -> None:
    """Pull every velocity toward each basin center at time ``t``."""
    centers, strengths = attractor_field(t)
    to_center = centers[np.newaxis, :, :] - system.positions[:, np.newaxis, :]  # (n, 4, 3)
    gain = system.affinities * strengths[np.newaxis, :]  # (n, 4)
    system.velocities += (to_center * gain[:, :, np.newaxis]).sum(axis=1) * dt


def step(system: ParticleSystem, t: float, lorenz: LorenzConfig, integrator: IntegratorConfig) -> None:
    try:
        couple = COUPLING_ORDERS[integrator.COUPLING_ORDER]
    except KeyError:
        raise ValueError(f"Unknown coupling order: {integrator.COUPLING_ORDER!r}") from None
    dt = integrator.DT
    lorenz_flow(system, lorenz, dt)
    couple(system, dt, include_self=integrator.INCLUDE_SELF_COUPLING)
    attractor_pull(system, t, dt)
