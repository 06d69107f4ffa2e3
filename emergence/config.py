import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional, Tuple


@dataclass
class LorenzConfig:
    # Standard chaotic regime
    SIGMA: float = 10.0
    RHO: float = 28.0
    BETA: float = 8.0 / 3.0


@dataclass
class SeedingConfig:
    # Full width of the uniform draws (noise is centered on zero)
    POSITION_NOISE: float = 0.001
    VELOCITY_NOISE: float = 0.1

    # Position = concentration * scale, per axis
    POSITION_SCALE_X: float = 1.0
    POSITION_SCALE_Y: float = 0.5
    POSITION_SCALE_Z: float = 0.3

    COUPLING_MIN: float = 0.3
    COUPLING_MAX: float = 0.8

    # Interaction matrix
    SELF_INFLUENCE_MIN: float = 0.2
    SELF_INFLUENCE_MAX: float = 1.0
    CROSS_INFLUENCE: float = 0.15  # off-diagonal in [-x, x)


@dataclass
class IntegratorConfig:
    DT: float = 0.01
    INCLUDE_SELF_COUPLING: bool = True
    # "sequential": row i sees this step's update of every particle before it.
    # "simultaneous": every row reads the phases as they stood at step start.
    COUPLING_ORDER: str = "sequential"
    # Any |position| or |velocity| component beyond this ends the run as diverged
    DIVERGENCE_LIMIT: float = 1e12


@dataclass
class MetricsConfig:
    ENTROPY_SCALE: float = 100.0
    BASELINE_DISTANCE: float = 5.0
    CHAOS_OFFSET: float = 2.0
    CORRELATION_SCALE: float = 10.0


@dataclass
class TransitionConfig:
    CRITICAL_THRESHOLD: float = 0.3
    MIN_DWELL_TIME: float = 1.0  # simulated time units above threshold
    MAX_ITERATIONS: int = 50000


# Runner fields that take their default from the environment. Physics
# sections never read the environment.
ENV_OVERRIDES = {
    "runner.DEBUG": "EMERGENCE_DEBUG",
    "runner.LOG_EVERY": "EMERGENCE_LOG_EVERY",
    "runner.MAX_WORKERS": "EMERGENCE_MAX_WORKERS",
}


@dataclass
class RunnerConfig:
    DEBUG: bool = field(default_factory=lambda: os.getenv("EMERGENCE_DEBUG", "0") == "1")
    LOG_EVERY: int = field(default_factory=lambda: int(os.getenv("EMERGENCE_LOG_EVERY", "1000")))
    MAX_WORKERS: int = field(
        default_factory=lambda: int(os.getenv("EMERGENCE_MAX_WORKERS", str(min(8, os.cpu_count() or 1))))
    )
    USE_PROCESSES: bool = False


SECTION_NAMES = ("lorenz", "seeding", "integrator", "metrics", "transition", "runner")


@dataclass
class SimulationConfig:
    """
    Explicit configuration for one simulation run.

    Every run receives its own instance; nothing is read from module state
    once the instance exists.
    """
    lorenz: LorenzConfig = field(default_factory=LorenzConfig)
    seeding: SeedingConfig = field(default_factory=SeedingConfig)
    integrator: IntegratorConfig = field(default_factory=IntegratorConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    transition: TransitionConfig = field(default_factory=TransitionConfig)
    runner: RunnerConfig = field(default_factory=RunnerConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize all config sections to a flat dictionary."""
        result = {}
        for section_name in SECTION_NAMES:
            section = getattr(self, section_name)
            for f in fields(section):
                key = f"{section_name}.{f.name}"
                result[key] = getattr(section, f.name)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any], apply_env_overrides: bool = True) -> "SimulationConfig":
        """
        Build a config from a flat dictionary of ``section.FIELD`` keys.

        Unknown keys are ignored and values are coerced to the field's type.
        With ``apply_env_overrides``, a runner field whose environment
        variable is set (see ``ENV_OVERRIDES``) keeps the environment value.
        """
        config = cls()
        for key, value in data.items():
            section_name, _, field_name = key.partition(".")
            if section_name not in SECTION_NAMES or not field_name:
                continue
            section = getattr(config, section_name)
            if not hasattr(section, field_name):
                continue
            env_key = ENV_OVERRIDES.get(key)
            if apply_env_overrides and env_key is not None and env_key in os.environ:
                continue
            setattr(section, field_name, _coerce(getattr(section, field_name), value))
        return config

    def diff(self, other: Dict[str, Any]) -> Dict[str, Tuple[Any, Any]]:
        """``{key: (ours, theirs)}`` for every flat key whose values differ."""
        ours = self.to_dict()
        keys = sorted(set(ours) | set(other))
        return {k: (ours.get(k), other.get(k)) for k in keys if ours.get(k) != other.get(k)}


def _coerce(current: Any, value: Any) -> Any:
    if isinstance(current, bool):
        return str(value).lower() in ("1", "true", "yes")
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    return value


def resolve_config(config: Optional[SimulationConfig]) -> SimulationConfig:
    return config if config is not None else SimulationConfig()
