"""
Tests for batch runs and the butterfly-effect comparison.
"""
import pytest

from emergence.batch import (
    STANDARD_CONCENTRATIONS,
    compare_configurations,
    demonstrate_butterfly_effect,
    run_batch,
)
from emergence.particles import ConcentrationError


class TestRunBatch:

    def test_batch_is_reproducible_and_ordered(self, config):
        a = run_batch(STANDARD_CONCENTRATIONS, 4, seed=5, config=config, max_workers=2, max_iterations=300)
        b = run_batch(STANDARD_CONCENTRATIONS, 4, seed=5, config=config, max_workers=3, max_iterations=300)
        assert [r.unique_signature for r in a] == [r.unique_signature for r in b]

    def test_members_differ(self, config):
        results = run_batch(STANDARD_CONCENTRATIONS, 3, seed=9, config=config, max_iterations=300)
        signatures = {r.unique_signature for r in results}
        assert len(signatures) == 3

    def test_empty_batch(self, config):
        assert run_batch(STANDARD_CONCENTRATIONS, 0, config=config) == []

    def test_negative_count(self, config):
        with pytest.raises(ValueError):
            run_batch(STANDARD_CONCENTRATIONS, -1, config=config)

    def test_invalid_input_rejected_up_front(self, config):
        with pytest.raises(ConcentrationError):
            run_batch({"vital": 3.0}, 2, config=config)

    def test_process_pool(self, config):
        threaded = run_batch(STANDARD_CONCENTRATIONS, 2, seed=1, config=config,
                             max_workers=2, max_iterations=100)
        forked = run_batch(STANDARD_CONCENTRATIONS, 2, seed=1, config=config,
                           max_workers=2, use_processes=True, max_iterations=100)
        assert [r.unique_signature for r in threaded] == [r.unique_signature for r in forked]


class TestButterfly:

    def test_different_seeds_diverge(self, config):
        report = demonstrate_butterfly_effect(seeds=(1, 2), config=config, max_iterations=300)
        assert report["same_signature"] is False
        assert report["signatures"][0] != report["signatures"][1]

    def test_same_seed_matches(self, config):
        report = demonstrate_butterfly_effect(seeds=(3, 3), config=config, max_iterations=300)
        assert report["same_signature"] is True
        assert report["same_structure"] is True

    def test_requires_two_seeds(self):
        with pytest.raises(ValueError):
            demonstrate_butterfly_effect(seeds=(1,))

    def test_compare_shape(self, config):
        a, b = run_batch(STANDARD_CONCENTRATIONS, 2, seed=2, config=config, max_iterations=50)
        report = compare_configurations(a, b)
        assert report["outcomes"] == ("timeout", "timeout")
        assert report["hun_counts"] == (len(a.hun), len(b.hun))
