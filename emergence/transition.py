# emergence/transition.py
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


@dataclass
class TransitionState:
    critical_threshold: float = 0.3
    has_crystallized: bool = False
    dwell_time: float = 0.0
    timed_out: bool = False  # forced crystallization at the iteration ceiling
    crystallized_at: Optional[int] = None  # iteration of the genuine transition
    diverged_at: Optional[int] = None  # step whose update left the bounded region

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PhaseTransitionDetector:
    """
    Two-state machine: subcritical -> crystallized (terminal).

    Dwell time accumulates while the order parameter is strictly above the
    threshold and resets to zero the moment it is not. Crystallization fires
    the first time dwell exceeds ``min_dwell``.
    """

    def __init__(self, critical_threshold: float = 0.3, min_dwell: float = 1.0):
        self.min_dwell = min_dwell
        self.state = TransitionState(critical_threshold=critical_threshold)

    @property
    def has_crystallized(self) -> bool:
        return self.state.has_crystallized

    def update(self, order_parameter: float, dt: float, iteration: Optional[int] = None) -> bool:
        """Feed one step. Returns True only on the step that crystallizes."""
        state = self.state
        if state.has_crystallized or state.timed_out or state.diverged_at is not None:
            return False

        if order_parameter > state.critical_threshold:
            state.dwell_time += dt
            if state.dwell_time > self.min_dwell:
                state.has_crystallized = True
                state.crystallized_at = iteration
                return True
        else:
            state.dwell_time = 0.0
        return False

    def mark_timeout(self) -> None:
        """Record a forced crystallization; ``has_crystallized`` stays False."""
        if not self.state.has_crystallized:
            self.state.timed_out = True

    def mark_diverged(self, iteration: int) -> None:
        """Record that the state left the bounded region; further updates are ignored."""
        if not self.state.has_crystallized and self.state.diverged_at is None:
            self.state.diverged_at = iteration

