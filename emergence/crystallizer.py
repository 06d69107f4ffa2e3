"""
emergence.crystallizer
======================

Turns the final particle state into an ``EmergentConfiguration``:

1. Snapshot the seed state (final positions and velocities).
2. Read yang/yin intensities and the dominant basin off the particle cloud.
3. Derive hun/po counts from the two intensities alone.
4. Score each entity from a hashed particle-influence vector.
5. Sign the whole configuration with a hash of the seed state.

A forced run produces the same shape of record, tagged with
``EmergenceOutcome.TIMEOUT`` at the iteration ceiling or
``EmergenceOutcome.DIVERGED`` when integration left the bounded region. A
non-finite particle state is rejected with ``ValueError``.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field, asdict, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from .attractors import AttractorGeometry, AttractorKind, ATTRACTOR_KINDS
from .metrics import SystemMetrics
from .particles import ParticleSystem, ParticleType, SeedVector, PARTICLE_TYPES
from .vectors import char_jaccard, hash_text, hash_vector, magnitude, squash


class EmergenceOutcome(Enum):
    CRYSTALLIZED = "crystallized"  # genuine phase transition
    TIMEOUT = "timeout"  # forced at the iteration ceiling; lower confidence
    DIVERGED = "diverged"  # stopped at the last bounded state before overflow


# (name, base function) in fixed order
HUN_POOL: Tuple[Tuple[str, str], ...] = (
    ("Tai Guang (太光)", "Great Light"),
    ("Shuang Ling (爽靈)", "Clear Spirit"),
    ("You Jing (幽精)", "Dark Essence"),
    ("Tong Ming (通明)", "Penetrating Brightness"),
    ("Zheng Zhong (正中)", "Upright Center"),
    ("Ling Hui (靈慧)", "Spiritual Intelligence"),
    ("Tian Chong (天冲)", "Heaven Rush"),
    ("Mysterious Eighth (玄八)", "Emergent Mystery"),
    ("Transcendent Ninth (超九)", "Beyond Form"),
)

PO_POOL: Tuple[Tuple[str, str], ...] = (
    ("Shi Gou (尸狗)", "Corpse Dog"),
    ("Fu Shi (伏矢)", "Hidden Arrow"),
    ("Que Yin (雀陰)", "Sparrow Yin"),
    ("Tun Zei (吞贼)", "Swallowing Thief"),
    ("Fei Du (非毒)", "Non-Poison"),
    ("Chu Hui (除秽)", "Defilement Remover"),
    ("Shadow Seventh (影七)", "Emergent Shadow"),
    ("Earth Eighth (地八)", "Deep Earth"),
)

HUN_RANGE = (5, 9)
PO_RANGE = (4, 8)


@dataclass(frozen=True)
class HunEntity:
    id: str
    name: str
    function_description: str
    strength: float
    purity: float
    heavenly_connection: float
    signature: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PoEntity:
    id: str
    name: str
    function_description: str
    strength: float
    viscosity: float  # how "sticky" to physical existence
    earthly_connection: float
    signature: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class EmergentConfiguration:
    hun: List[HunEntity]
    po: List[PoEntity]
    unique_signature: str
    birth_attractor: AttractorGeometry
    seed_state: Dict[ParticleType, SeedVector]
    outcome: EmergenceOutcome = EmergenceOutcome.CRYSTALLIZED
    iterations: int = 0
    simulated_time: float = 0.0
    final_metrics: SystemMetrics = field(default_factory=SystemMetrics)

    @property
    def forced(self) -> bool:
        return self.outcome is not EmergenceOutcome.CRYSTALLIZED

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data view for the persistence layer."""
        return {
            "unique_signature": self.unique_signature,
            "outcome": self.outcome.value,
            "iterations": self.iterations,
            "simulated_time": round(self.simulated_time, 6),
            "hun": [h.to_dict() for h in self.hun],
            "po": [p.to_dict() for p in self.po],
            "birth_attractor": self.birth_attractor.to_dict(),
            "seed_state": {ptype.value: sv.to_dict() for ptype, sv in self.seed_state.items()},
            "final_metrics": self.final_metrics.to_dict(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)


# ---------- ATTRACTOR ANALYSIS ----------

def analyze_birth_attractor(system: ParticleSystem, order_parameter: float) -> AttractorGeometry:
    """
    Geometry of the particle cloud at crystallization.

    The dominant kind is the basin holding the single highest affinity across
    all particles. Ties go to the first one met, scanning particles in
    storage order and basins in ``ATTRACTOR_KINDS`` order. If every affinity
    is zero the balance point is reported.
    """
    n = len(system)
    if not system.is_bounded(math.inf):
        raise ValueError("Cannot crystallize a non-finite particle state.")
    center = system.positions.mean(axis=0)

    yang = 0.0
    yin = 0.0
    for i in range(n):
        z = float(system.positions[i, 2])
        speed = magnitude(system.velocities[i])
        # Yang: upward and fast
        yang += (max(0.0, z / 10.0) + speed / 5.0) / 2.0
        # Yin: downward and slow
        yin += (max(0.0, -z / 10.0) + 1.0 / (speed + 1.0)) / 2.0
    yang /= n
    yin /= n

    dominant = AttractorKind.BALANCE_POINT
    best = 0.0
    for i in range(n):
        for k, kind in enumerate(ATTRACTOR_KINDS):
            influence = float(system.affinities[i, k])
            if influence > best:
                best = influence
                dominant = kind

    return AttractorGeometry(
        kind=dominant,
        center=center,
        strength=float(order_parameter),
        yang_intensity=min(1.0, yang),
        yin_intensity=min(1.0, yin),
    )


def entity_counts(yang_intensity: float, yin_intensity: float) -> Tuple[int, int]:
    """Hun count in [5, 9] and po count in [4, 8], non-decreasing in intensity."""
    yang = min(1.0, max(0.0, float(yang_intensity)))
    yin = min(1.0, max(0.0, float(yin_intensity)))
    hun = int(math.floor(HUN_RANGE[0] + yang * (HUN_RANGE[1] - HUN_RANGE[0])))
    po = int(math.floor(PO_RANGE[0] + yin * (PO_RANGE[1] - PO_RANGE[0])))
    return hun, po


# ---------- ENTITY SCORING ----------

def particle_influence(index: int, seed_state: Mapping[ParticleType, SeedVector]) -> Dict[ParticleType, float]:
    """
    Influence of each particle on the entity at ``index``.

    The index hash is compared character-wise with each particle's position
    hash; the squared similarity scales the particle's speed, then tanh.
    Hun i and po i share this vector and differ only in which components
    they weight.
    """
    key_hash = hash_text(str(index))
    influences = {ptype: 0.0 for ptype in PARTICLE_TYPES}
    for ptype, sv in seed_state.items():
        similarity = char_jaccard(key_hash, hash_vector(sv.position))
        influences[ptype] = squash(similarity ** 2 * magnitude(sv.velocity))
    return influences


def _influence_signature(influences: Mapping[ParticleType, float]) -> str:
    payload = json.dumps({ptype.value: influences[ptype] for ptype in PARTICLE_TYPES})
    return hash_text(payload)


def _template(pool: Sequence[Tuple[str, str]], i: int, label: str) -> Tuple[str, str]:
    if i < len(pool):
        return pool[i]
    return f"Emergent {label} {i + 1}", "Unnamed Emergence"


def generate_hun(
    count: int,
    attractor: AttractorGeometry,
    entropy: float,
    seed_state: Mapping[ParticleType, SeedVector],
    pool: Sequence[Tuple[str, str]] = HUN_POOL,
) -> List[HunEntity]:
    hun = []
    for i in range(count):
        name, base_function = _template(pool, i, "Hun")
        inf = particle_influence(i, seed_state)

        strength = squash(inf[ParticleType.CONSCIOUS] * 2 + inf[ParticleType.TRANSFORMATIVE] * 1.5)
        purity = squash(attractor.yang_intensity * 2 + (1 - entropy))
        heavenly = squash(inf[ParticleType.TRANSFORMATIVE] * 2 + attractor.yang_intensity * 1.5)

        signature = _influence_signature(inf)
        hun.append(HunEntity(
            id=f"hun-{i}-{signature[:8]}",
            name=name,
            function_description=f"{base_function} (emergent: {strength * 100:.0f}% developed)",
            strength=strength,
            purity=purity,
            heavenly_connection=heavenly,
            signature=signature,
        ))
    return hun


def generate_po(
    count: int,
    attractor: AttractorGeometry,
    entropy: float,
    seed_state: Mapping[ParticleType, SeedVector],
    pool: Sequence[Tuple[str, str]] = PO_POOL,
) -> List[PoEntity]:
    po = []
    for i in range(count):
        name, base_function = _template(pool, i, "Po")
        inf = particle_influence(i, seed_state)

        strength = squash(inf[ParticleType.VITAL] * 2 + inf[ParticleType.CONNECTIVE] * 1.5)
        viscosity = squash(attractor.yin_intensity * 2 + entropy)
        earthly = squash(inf[ParticleType.VITAL] * 2 + attractor.yin_intensity * 1.5)

        signature = _influence_signature(inf)
        po.append(PoEntity(
            id=f"po-{i}-{signature[:8]}",
            name=name,
            function_description=f"{base_function} (emergent: {strength * 100:.0f}% active)",
            strength=strength,
            viscosity=viscosity,
            earthly_connection=earthly,
            signature=signature,
        ))
    return po


def compute_signature(seed_state: Mapping[ParticleType, SeedVector]) -> str:
    """Hash over every particle's position and velocity hashes, in storage order."""
    parts = []
    for sv in seed_state.values():
        parts.append(hash_vector(sv.position))
        parts.append(hash_vector(sv.velocity))
    return hash_text("".join(parts), digest_size=8)


# ---------- ENTRY POINT ----------

def crystallize(
    system: ParticleSystem,
    metrics: SystemMetrics,
    outcome: EmergenceOutcome = EmergenceOutcome.CRYSTALLIZED,
    iterations: int = 0,
    simulated_time: float = 0.0,
) -> EmergentConfiguration:
    seed_state = system.seed_state()
    attractor = analyze_birth_attractor(system, metrics.order_parameter)
    num_hun, num_po = entity_counts(attractor.yang_intensity, attractor.yin_intensity)

    return EmergentConfiguration(
        hun=generate_hun(num_hun, attractor, metrics.entropy, seed_state),
        po=generate_po(num_po, attractor, metrics.entropy, seed_state),
        unique_signature=compute_signature(seed_state),
        birth_attractor=attractor,
        seed_state=seed_state,
        outcome=outcome,
        iterations=iterations,
        simulated_time=simulated_time,
        final_metrics=replace(metrics),
    )
