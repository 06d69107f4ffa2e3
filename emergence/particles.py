# emergence/particles.py
import math
import numbers
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple, Union

import numpy as np

from .attractors import AttractorKind, ATTRACTOR_KINDS
from .config import SeedingConfig


class ParticleType(Enum):
    VITAL = "vital"
    CONSCIOUS = "conscious"
    CREATIVE = "creative"
    CONNECTIVE = "connective"
    TRANSFORMATIVE = "transformative"


# Storage iteration order for every per-particle array
PARTICLE_TYPES: Tuple[ParticleType, ...] = tuple(ParticleType)


class ConcentrationError(ValueError):
    """Initial concentrations are missing, unknown or out of range."""


@dataclass
class ParticleState:
    type: ParticleType
    position: np.ndarray
    velocity: np.ndarray
    attractor_influence: Dict[AttractorKind, float] = field(default_factory=dict)
    coupling_strength: float = 0.5


@dataclass
class SeedVector:
    """Position/velocity snapshot of one particle at crystallization."""
    position: np.ndarray
    velocity: np.ndarray

    def to_dict(self) -> Dict[str, List[float]]:
        return {
            "position": [float(x) for x in self.position],
            "velocity": [float(x) for x in self.velocity],
        }


ConcentrationKey = Union[ParticleType, str]


def validate_concentrations(concentrations: Mapping[ConcentrationKey, float]) -> Dict[ParticleType, float]:
    """
    Normalize and check a concentration mapping.

    Keys may be ``ParticleType`` members or their string values. Every type
    must appear exactly once with a finite value in [0, 1].

    Raises
    ------
    ConcentrationError
        On unknown, duplicate or missing types, or non-finite / out-of-range
        values.
    """
    if not isinstance(concentrations, Mapping):
        raise ConcentrationError(
            f"Concentrations must be a mapping; got {type(concentrations).__name__}"
        )

    normalized: Dict[ParticleType, float] = {}
    for key, value in concentrations.items():
        try:
            ptype = key if isinstance(key, ParticleType) else ParticleType(key)
        except ValueError:
            raise ConcentrationError(f"Unknown particle type: {key!r}") from None
        if ptype in normalized:
            raise ConcentrationError(f"Duplicate particle type: {ptype.value}")
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise ConcentrationError(f"Concentration for {ptype.value} is not a number: {value!r}")
        value = float(value)
        if not math.isfinite(value):
            raise ConcentrationError(f"Concentration for {ptype.value} is not finite: {value!r}")
        if not 0.0 <= value <= 1.0:
            raise ConcentrationError(f"Concentration for {ptype.value} outside [0, 1]: {value}")
        normalized[ptype] = value

    missing = [p.value for p in PARTICLE_TYPES if p not in normalized]
    if missing:
        raise ConcentrationError(f"Missing concentrations for: {', '.join(missing)}")

    return {p: normalized[p] for p in PARTICLE_TYPES}


class ParticleSystem:
    """
    Phase-space state of one run.

    Rows of every array follow ``PARTICLE_TYPES`` order:
      - positions, velocities : (n, 3)
      - affinities            : (n, 4), columns in ``ATTRACTOR_KINDS`` order
      - coupling              : (n,)
      - interaction           : (n, n), [i, j] = influence of j on i
    """

    def __init__(
        self,
        positions: np.ndarray,
        velocities: np.ndarray,
        affinities: np.ndarray,
        coupling: np.ndarray,
        interaction: np.ndarray,
        types: Tuple[ParticleType, ...] = PARTICLE_TYPES,
    ):
        self.types = tuple(types)
        n = len(self.types)
        self.positions = np.array(positions, dtype=np.float64).reshape(n, 3)
        self.velocities = np.array(velocities, dtype=np.float64).reshape(n, 3)
        self.affinities = np.array(affinities, dtype=np.float64).reshape(n, len(ATTRACTOR_KINDS))
        self.coupling = np.array(coupling, dtype=np.float64).reshape(n)
        self.interaction = np.array(interaction, dtype=np.float64).reshape(n, n)

    def __len__(self) -> int:
        return len(self.types)

    @classmethod
    def seed(
        cls,
        concentrations: Mapping[ConcentrationKey, float],
        rng: np.random.Generator,
        config: Optional[SeedingConfig] = None,
    ) -> "ParticleSystem":
        """
        Seed a system from validated concentrations.

        Draw order is fixed (per particle: position noise, velocity,
        affinities, coupling; then the interaction matrix row by row), so a
        seeded generator reproduces the system bit for bit.
        """
        cfg = config or SeedingConfig()
        levels = validate_concentrations(concentrations)
        scale = np.array([cfg.POSITION_SCALE_X, cfg.POSITION_SCALE_Y, cfg.POSITION_SCALE_Z])

        n = len(PARTICLE_TYPES)
        positions = np.zeros((n, 3))
        velocities = np.zeros((n, 3))
        affinities = np.zeros((n, len(ATTRACTOR_KINDS)))
        coupling = np.zeros(n)

        for i, ptype in enumerate(PARTICLE_TYPES):
            c = levels[ptype]
            half_noise = cfg.POSITION_NOISE / 2.0
            half_vel = cfg.VELOCITY_NOISE / 2.0
            positions[i] = c * scale + rng.uniform(-half_noise, half_noise, size=3)
            velocities[i] = rng.uniform(-half_vel, half_vel, size=3)
            affinities[i] = rng.random(len(ATTRACTOR_KINDS))
            coupling[i] = rng.uniform(cfg.COUPLING_MIN, cfg.COUPLING_MAX)

        interaction = np.zeros((n, n))
        for i in range(n):
            for j in range(n):
                if i == j:
                    interaction[i, j] = rng.uniform(cfg.SELF_INFLUENCE_MIN, cfg.SELF_INFLUENCE_MAX)
                else:
                    interaction[i, j] = rng.uniform(-cfg.CROSS_INFLUENCE, cfg.CROSS_INFLUENCE)

        return cls(positions, velocities, affinities, coupling, interaction)

    # --- Views ---
    def index_of(self, ptype: ParticleType) -> int:
        return self.types.index(ptype)

    def particle(self, ptype: ParticleType) -> ParticleState:
        """Detached copy of one particle's state."""
        i = self.index_of(ptype)
        return ParticleState(
            type=ptype,
            position=self.positions[i].copy(),
            velocity=self.velocities[i].copy(),
            attractor_influence={
                kind: float(self.affinities[i, k]) for k, kind in enumerate(ATTRACTOR_KINDS)
            },
            coupling_strength=float(self.coupling[i]),
        )

    def states(self) -> Dict[ParticleType, ParticleState]:
        return {ptype: self.particle(ptype) for ptype in self.types}

    def seed_state(self) -> Dict[ParticleType, SeedVector]:
        return {
            ptype: SeedVector(self.positions[i].copy(), self.velocities[i].copy())
            for i, ptype in enumerate(self.types)
        }

    def phases(self) -> np.ndarray:
        """Velocity phase ``atan2(vy, vx)`` per particle."""
        return np.arctan2(self.velocities[:, 1], self.velocities[:, 0])

    def is_bounded(self, limit: float) -> bool:
        """True while every position and velocity component is finite and within ``limit``."""
        for arr in (self.positions, self.velocities):
            if not np.all(np.isfinite(arr)) or np.abs(arr).max() > limit:
                return False
        return True

    def restore(self, positions: np.ndarray, velocities: np.ndarray) -> None:
        """Overwrite positions and velocities in place."""
        self.positions[...] = positions
        self.velocities[...] = velocities
