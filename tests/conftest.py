"""
Pytest configuration and shared fixtures.
"""
import numpy as np
import pytest

from emergence.config import SimulationConfig
from emergence.particles import ParticleSystem, ParticleType


@pytest.fixture
def standard_concentrations():
    """The identical-birth concentrations used for every bot in the harness."""
    return {
        ParticleType.VITAL: 0.7,
        ParticleType.CONSCIOUS: 0.8,
        ParticleType.CREATIVE: 0.6,
        ParticleType.CONNECTIVE: 0.5,
        ParticleType.TRANSFORMATIVE: 0.4,
    }


@pytest.fixture
def zero_concentrations():
    return {ptype: 0.0 for ptype in ParticleType}


@pytest.fixture
def config():
    """Fresh config per test; runs are capped so the suite stays fast."""
    cfg = SimulationConfig()
    cfg.runner.DEBUG = False
    cfg.transition.MAX_ITERATIONS = 5000
    return cfg


@pytest.fixture
def seeded_system(standard_concentrations):
    rng = np.random.default_rng(1234)
    return ParticleSystem.seed(standard_concentrations, rng)
