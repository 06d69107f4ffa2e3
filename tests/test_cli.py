"""
Smoke tests for the command-line runner.
"""
import json

import pytest

from emergence.cli import main


def test_json_single_run(capsys):
    assert main(["--seed", "3", "--max-iterations", "50", "--json"]) == 0
    records = json.loads(capsys.readouterr().out)
    assert len(records) == 1
    assert records[0]["outcome"] == "timeout"
    assert records[0]["iterations"] == 50


def test_batch_summary(capsys):
    assert main(["--seed", "1", "--count", "2", "--workers", "2", "--max-iterations", "40"]) == 0
    out = capsys.readouterr().out
    assert "Run 1:" in out and "Run 2:" in out


def test_custom_concentration(capsys):
    assert main(["--vital", "0.1", "--creative", "0.9", "--seed", "2", "--max-iterations", "10", "--json"]) == 0
    record = json.loads(capsys.readouterr().out)[0]
    # Seeded position x tracks the concentration within the noise band
    assert abs(record["seed_state"]["creative"]["position"][0] - 0.9) < 1.0


def test_butterfly(capsys):
    assert main(["--butterfly", "--seed", "4", "--max-iterations", "30"]) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["same_signature"] is False


def test_invalid_concentration(capsys):
    assert main(["--vital", "1.5"]) == 2
    assert "Invalid concentrations" in capsys.readouterr().err


def test_config_override(capsys):
    argv = ["--seed", "5", "--max-iterations", "30", "--json",
            "--set", "integrator.COUPLING_ORDER=simultaneous",
            "--set", "transition.CRITICAL_THRESHOLD=1.0"]
    assert main(argv) == 0
    record = json.loads(capsys.readouterr().out)[0]
    assert record["outcome"] == "timeout"


@pytest.mark.parametrize("item", ["lorenz.GAMMA=1", "no-equals-sign", "lorenz.RHO=abc"])
def test_bad_override_rejected(item):
    with pytest.raises(SystemExit) as exc:
        main(["--set", item])
    assert exc.value.code == 2
