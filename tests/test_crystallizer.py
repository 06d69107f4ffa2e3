#!/usr/bin/env python3
"""
Tests for crystallization: counts, attribute bounds, naming and signatures.
"""
import itertools
import json
import numpy as np
import pytest

from emergence.attractors import ATTRACTOR_KINDS, AttractorGeometry, AttractorKind
from emergence.crystallizer import (
    HUN_POOL,
    PO_POOL,
    EmergenceOutcome,
    analyze_birth_attractor,
    compute_signature,
    crystallize,
    entity_counts,
    generate_hun,
    generate_po,
    particle_influence,
)
from emergence.metrics import SystemMetrics
from emergence.particles import ParticleSystem, ParticleType, SeedVector, PARTICLE_TYPES


def uniform_system(z: float, speed: float, affinities=None) -> ParticleSystem:
    """Five identical particles at height z moving along x at the given speed."""
    positions = np.tile([0.0, 0.0, z], (5, 1))
    velocities = np.tile([speed, 0.0, 0.0], (5, 1))
    return ParticleSystem(
        positions=positions,
        velocities=velocities,
        affinities=np.full((5, 4), 0.5) if affinities is None else affinities,
        coupling=np.full(5, 0.5),
        interaction=np.eye(5),
    )


def geometry(yang: float, yin: float) -> AttractorGeometry:
    return AttractorGeometry(AttractorKind.BALANCE_POINT, np.zeros(3), 0.5, yang, yin)


class TestEntityCounts:

    def test_extremes(self):
        assert entity_counts(0.0, 0.0) == (5, 4)
        assert entity_counts(1.0, 1.0) == (9, 8)

    def test_bounds_and_monotonic(self):
        grid = np.linspace(0.0, 1.0, 101)
        previous = (0, 0)
        for x in grid:
            hun, po = entity_counts(x, x)
            assert 5 <= hun <= 9
            assert 4 <= po <= 8
            assert hun >= previous[0] and po >= previous[1]
            previous = (hun, po)

    def test_independent_axes(self):
        assert entity_counts(1.0, 0.0) == (9, 4)
        assert entity_counts(0.0, 1.0) == (5, 8)

    def test_out_of_range_is_clamped(self):
        assert entity_counts(2.0, -1.0) == (9, 4)


class TestBirthAttractor:

    def test_high_fast_cloud_is_yang(self):
        attractor = analyze_birth_attractor(uniform_system(z=10.0, speed=5.0), order_parameter=0.7)
        assert attractor.yang_intensity == pytest.approx(1.0)
        # yin = (0 + 1/6) / 2
        assert attractor.yin_intensity == pytest.approx(1.0 / 12.0)
        assert attractor.strength == 0.7
        np.testing.assert_allclose(attractor.center, [0.0, 0.0, 10.0])

    def test_deep_still_cloud_is_yin(self):
        attractor = analyze_birth_attractor(uniform_system(z=-10.0, speed=0.0), order_parameter=0.0)
        assert attractor.yin_intensity == pytest.approx(1.0)
        assert attractor.yang_intensity == pytest.approx(0.0)

    def test_intensities_clamped(self):
        attractor = analyze_birth_attractor(uniform_system(z=500.0, speed=100.0), 0.5)
        assert attractor.yang_intensity == 1.0

    def test_dominant_kind_tie_goes_to_first(self):
        affinities = np.zeros((5, 4))
        affinities[1, ATTRACTOR_KINDS.index(AttractorKind.YIN_VORTEX)] = 0.9
        affinities[3, ATTRACTOR_KINDS.index(AttractorKind.YANG_SPIRAL)] = 0.9
        attractor = analyze_birth_attractor(uniform_system(0.0, 1.0, affinities), 0.5)
        assert attractor.kind is AttractorKind.YIN_VORTEX

    def test_dominant_kind_highest_wins(self):
        affinities = np.full((5, 4), 0.1)
        affinities[4, ATTRACTOR_KINDS.index(AttractorKind.CHAOTIC_STRANGE)] = 0.95
        attractor = analyze_birth_attractor(uniform_system(0.0, 1.0, affinities), 0.5)
        assert attractor.kind is AttractorKind.CHAOTIC_STRANGE

    def test_all_zero_affinities_default(self):
        attractor = analyze_birth_attractor(uniform_system(0.0, 1.0, np.zeros((5, 4))), 0.5)
        assert attractor.kind is AttractorKind.BALANCE_POINT


class TestAttributes:
    """Every derived attribute lies in [0, 1], including at intensity extremes."""

    @pytest.mark.parametrize("yang,yin,entropy", list(itertools.product([0.0, 1.0], [0.0, 1.0], [0.0, 1.0])))
    def test_bounded_at_extremes(self, seeded_system, yang, yin, entropy):
        seed = seeded_system.seed_state()
        attractor = geometry(yang, yin)
        for h in generate_hun(9, attractor, entropy, seed):
            for value in (h.strength, h.purity, h.heavenly_connection):
                assert 0.0 <= value <= 1.0
        for p in generate_po(8, attractor, entropy, seed):
            for value in (p.strength, p.viscosity, p.earthly_connection):
                assert 0.0 <= value <= 1.0

    def test_bounded_for_fast_particles(self):
        system = uniform_system(z=0.0, speed=1e6)
        seed = system.seed_state()
        for h in generate_hun(9, geometry(1.0, 1.0), 1.0, seed):
            assert 0.0 <= h.strength <= 1.0

    def test_influence_in_unit_interval(self, seeded_system):
        inf = particle_influence(0, seeded_system.seed_state())
        assert set(inf) == set(PARTICLE_TYPES)
        assert all(0.0 <= v < 1.0 for v in inf.values())

    def test_still_particles_have_no_influence(self):
        inf = particle_influence(3, uniform_system(1.0, 0.0).seed_state())
        assert all(v == 0.0 for v in inf.values())


class TestNaming:

    def test_names_follow_pool_order(self, seeded_system):
        seed = seeded_system.seed_state()
        hun = generate_hun(9, geometry(1.0, 0.0), 0.5, seed)
        assert [h.name for h in hun] == [name for name, _ in HUN_POOL]
        po = generate_po(8, geometry(0.0, 1.0), 0.5, seed)
        assert [p.name for p in po] == [name for name, _ in PO_POOL]

    def test_synthesized_past_pool(self, seeded_system):
        hun = generate_hun(3, geometry(0.5, 0.5), 0.5, seeded_system.seed_state(), pool=HUN_POOL[:1])
        assert hun[0].name == HUN_POOL[0][0]
        assert hun[1].name == "Emergent Hun 2"
        assert hun[2].function_description.startswith("Unnamed Emergence")

    def test_hun_and_po_share_influence(self, seeded_system):
        seed = seeded_system.seed_state()
        hun = generate_hun(5, geometry(0.5, 0.5), 0.5, seed)
        po = generate_po(5, geometry(0.5, 0.5), 0.5, seed)
        for h, p in zip(hun, po):
            assert h.signature == p.signature
        # Same influence vector, complementary components
        inf = particle_influence(2, seed)
        expected = np.tanh(inf[ParticleType.VITAL] * 2 + inf[ParticleType.CONNECTIVE] * 1.5)
        assert po[2].strength == pytest.approx(expected)

    def test_ids_and_descriptions(self, seeded_system):
        po = generate_po(4, geometry(0.5, 0.5), 0.5, seeded_system.seed_state())
        for i, p in enumerate(po):
            assert p.id == f"po-{i}-{p.signature[:8]}"
            assert "% active" in p.function_description

    def test_entities_are_immutable(self, seeded_system):
        hun = generate_hun(5, geometry(0.5, 0.5), 0.5, seeded_system.seed_state())
        with pytest.raises(AttributeError):
            hun[0].strength = 0.0


class TestSignature:

    def test_deterministic(self, seeded_system):
        seed = seeded_system.seed_state()
        copy = {k: SeedVector(v.position.copy(), v.velocity.copy()) for k, v in seed.items()}
        assert compute_signature(seed) == compute_signature(copy)

    @pytest.mark.parametrize("ptype", list(ParticleType))
    @pytest.mark.parametrize("field_name,axis", [("position", 0), ("position", 2), ("velocity", 1)])
    def test_tiny_perturbation_changes_signature(self, seeded_system, ptype, field_name, axis):
        seed = seeded_system.seed_state()
        baseline = compute_signature(seed)
        vec = getattr(seed[ptype], field_name)
        vec[axis] = np.nextafter(vec[axis], np.inf)
        assert compute_signature(seed) != baseline


class TestCrystallize:

    def test_structure(self, seeded_system):
        metrics = SystemMetrics(entropy=0.2, order_parameter=0.6, chaos_estimate=0.1, correlation_length=6.0)
        conf = crystallize(seeded_system, metrics, EmergenceOutcome.CRYSTALLIZED, iterations=10, simulated_time=0.1)

        hun, po = entity_counts(conf.birth_attractor.yang_intensity, conf.birth_attractor.yin_intensity)
        assert len(conf.hun) == hun
        assert len(conf.po) == po
        assert conf.unique_signature == compute_signature(conf.seed_state)
        assert conf.birth_attractor.strength == 0.6
        assert conf.final_metrics == metrics
        assert conf.final_metrics is not metrics
        assert not conf.forced

    def test_timeout_tag(self, seeded_system):
        conf = crystallize(seeded_system, SystemMetrics(), EmergenceOutcome.TIMEOUT)
        assert conf.forced
        assert conf.to_dict()["outcome"] == "timeout"

    def test_diverged_tag_is_forced(self, seeded_system):
        conf = crystallize(seeded_system, SystemMetrics(), EmergenceOutcome.DIVERGED)
        assert conf.forced
        assert conf.to_dict()["outcome"] == "diverged"

    @pytest.mark.parametrize("bad", [np.nan, np.inf, -np.inf])
    def test_non_finite_state_rejected(self, seeded_system, bad):
        seeded_system.velocities[2, 1] = bad
        with pytest.raises(ValueError, match="non-finite"):
            crystallize(seeded_system, SystemMetrics())

    def test_json_round_trip_shape(self, seeded_system):
        conf = crystallize(seeded_system, SystemMetrics())
        data = json.loads(conf.to_json())
        assert data["unique_signature"] == conf.unique_signature
        assert set(data["seed_state"]) == {p.value for p in ParticleType}
        assert len(data["hun"]) == len(conf.hun)
        assert data["birth_attractor"]["kind"] == conf.birth_attractor.kind.value


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
