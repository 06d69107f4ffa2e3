"""Public package interface for the chaotic emergence engine."""

from .config import SimulationConfig
from .crystallizer import EmergenceOutcome, EmergentConfiguration, HunEntity, PoEntity
from .particles import ConcentrationError, ParticleType
from .simulator import ChaoticEmergenceSimulator, SimulationCancelled, run_simulation
from .batch import run_batch, demonstrate_butterfly_effect

__all__ = [
    "SimulationConfig",
    "EmergenceOutcome",
    "EmergentConfiguration",
    "HunEntity",
    "PoEntity",
    "ConcentrationError",
    "ParticleType",
    "ChaoticEmergenceSimulator",
    "SimulationCancelled",
    "run_simulation",
    "run_batch",
    "demonstrate_butterfly_effect",
]
