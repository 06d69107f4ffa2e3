"""
emergence.attractors
====================

Geometry of the four attractor basins that pull particle velocities.

Three basins are static. The strange attractor orbits with simulation time
and its two polarity intensities oscillate in opposite phase. Everything
here is a pure function of ``(kind, t)``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple

import numpy as np

from .vectors import as_vector


class AttractorKind(Enum):
    YANG_SPIRAL = "yang-spiral"
    YIN_VORTEX = "yin-vortex"
    BALANCE_POINT = "balance-point"
    CHAOTIC_STRANGE = "chaotic-strange"


ATTRACTOR_KINDS: Tuple[AttractorKind, ...] = tuple(AttractorKind)


@dataclass
class AttractorGeometry:
    """
    Location, strength and polarity of a basin.

    ``yang_intensity`` and ``yin_intensity`` are computed independently and
    are not required to sum to 1.
    """
    kind: AttractorKind
    center: np.ndarray
    strength: float
    yang_intensity: float
    yin_intensity: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "center": [float(c) for c in self.center],
            "strength": round(float(self.strength), 6),
            "yang_intensity": round(float(self.yang_intensity), 6),
            "yin_intensity": round(float(self.yin_intensity), 6),
        }


# (center, strength, yang, yin) for the fixed basins
_STATIC_BASINS = {
    AttractorKind.YANG_SPIRAL: ((10.0, 10.0, 20.0), 0.05, 0.9, 0.1),
    AttractorKind.YIN_VORTEX: ((-10.0, -10.0, -20.0), 0.05, 0.1, 0.9),
    AttractorKind.BALANCE_POINT: ((0.0, 0.0, 0.0), 0.02, 0.5, 0.5),
}

STRANGE_STRENGTH = 0.03


def attractor_geometry(kind: AttractorKind, t: float) -> AttractorGeometry:
    """Geometry of ``kind`` at simulation time ``t``."""
    if kind is AttractorKind.CHAOTIC_STRANGE:
        swing = 0.3 * math.sin(0.2 * t)
        return AttractorGeometry(
            kind=kind,
            center=as_vector([
                5.0 * math.sin(0.1 * t),
                5.0 * math.cos(0.1 * t),
                10.0 * math.sin(0.05 * t),
            ]),
            strength=STRANGE_STRENGTH,
            yang_intensity=0.5 + swing,
            yin_intensity=0.5 - swing,
        )

    center, strength, yang, yin = _STATIC_BASINS[kind]
    return AttractorGeometry(
        kind=kind,
        center=as_vector(center),
        strength=strength,
        yang_intensity=yang,
        yin_intensity=yin,
    )


def attractor_field(t: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Stacked centers ``(4, 3)`` and strengths ``(4,)`` of every basin at ``t``,
    rows in ``ATTRACTOR_KINDS`` order.
    """
    basins = [attractor_geometry(kind, t) for kind in ATTRACTOR_KINDS]
    centers = np.stack([b.center for b in basins], axis=0)
    strengths = np.array([b.strength for b in basins])
    return centers, strengths
