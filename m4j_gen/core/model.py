"""Data structures for Markov4JMeter workload models.

This module defines dataclasses describing the probabilistic user
behavior a Test Plan is generated from: behavior models (Markov chains of
states with transition probabilities and think times), the behavior mix
across user types, and the workload intensity.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

# Name of the reserved state that ends a session
EXIT_STATE = "$"


@dataclass
class ThinkTime:
    """Think time between two requests of a session.

    Attributes:
        mean: Mean delay in milliseconds
        deviation: Standard deviation in milliseconds (0 = constant delay)
    """

    mean: float
    deviation: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"mean": self.mean, "deviation": self.deviation}


@dataclass
class ServiceRequest:
    """A service invocation issued when a state is entered.

    Attributes:
        name: Display name of the request
        method: HTTP method (default: GET)
        path: URL path
        parameters: Query or form parameters
        protocol: Protocol override (None = inherited from defaults)
        domain: Server override (None = inherited from defaults)
        port: Port override (None = inherited from defaults)
    """

    name: str
    method: str = "GET"
    path: str = "/"
    parameters: dict[str, Any] = field(default_factory=dict)
    protocol: Optional[str] = None
    domain: Optional[str] = None
    port: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "method": self.method,
            "path": self.path,
            "parameters": self.parameters,
            "protocol": self.protocol,
            "domain": self.domain,
            "port": self.port,
        }


@dataclass
class Transition:
    """Outgoing edge of a Markov state.

    Attributes:
        target: Name of the target state, or EXIT_STATE
        probability: Transition probability
        think_time: Think time before the target state is entered
        guard: Guard condition, recorded for documentation purposes
        action: Action expression, recorded for documentation purposes
    """

    target: str
    probability: float
    think_time: Optional[ThinkTime] = None
    guard: Optional[str] = None
    action: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "target": self.target,
            "probability": self.probability,
            "think_time": self.think_time.to_dict() if self.think_time else None,
            "guard": self.guard,
            "action": self.action,
        }


@dataclass
class MarkovState:
    """A state of a behavior model.

    Attributes:
        name: State name, unique within its behavior model
        requests: Service requests issued in this state
        think_time: Think time before the requests of the state are issued
        transitions: Outgoing edges in declaration order
    """

    name: str
    requests: list[ServiceRequest] = field(default_factory=list)
    think_time: Optional[ThinkTime] = None
    transitions: list[Transition] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "requests": [r.to_dict() for r in self.requests],
            "think_time": self.think_time.to_dict() if self.think_time else None,
            "transitions": [t.to_dict() for t in self.transitions],
        }


@dataclass
class BehaviorModel:
    """Markov chain describing the sessions of one user type.

    Attributes:
        name: Behavior model name
        states: States in declaration order
        initial_state: Name of the state every session starts in
                       (None = first declared state)
    """

    name: str
    states: list[MarkovState] = field(default_factory=list)
    initial_state: Optional[str] = None

    @property
    def entry_state(self) -> Optional[str]:
        """Name of the state a session starts in."""
        if self.initial_state:
            return self.initial_state
        return self.states[0].name if self.states else None

    def get_state(self, name: str) -> Optional[MarkovState]:
        """Return the state with the given name, if declared."""
        for state in self.states:
            if state.name == name:
                return state
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "initial_state": self.initial_state,
            "states": [s.to_dict() for s in self.states],
        }


@dataclass
class BehaviorMixEntry:
    """Relative frequency of one user type.

    Attributes:
        behavior_model: Name of the behavior model
        frequency: Relative frequency of sessions of that type
    """

    behavior_model: str
    frequency: float

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"behavior_model": self.behavior_model, "frequency": self.frequency}


@dataclass
class WorkloadIntensity:
    """Number of concurrent sessions.

    Attributes:
        type: Intensity type (only "constant" can be mapped)
        formula: Formula yielding the number of sessions
    """

    type: str = "constant"
    formula: str = "1"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"type": self.type, "formula": self.formula}


@dataclass
class WorkloadModel:
    """Complete workload model a Test Plan is generated for.

    Attributes:
        name: Workload model name, used as Test Plan name
        behavior_models: Behavior models in declaration order
        behavior_mix: Relative frequencies of the behavior models
                      (empty = all models equally frequent)
        workload_intensity: Number of concurrent sessions
        base_url: Target system URL (None = taken from Test Plan defaults)
        variables: User defined variables of the Test Plan
    """

    name: str
    behavior_models: list[BehaviorModel] = field(default_factory=list)
    behavior_mix: list[BehaviorMixEntry] = field(default_factory=list)
    workload_intensity: WorkloadIntensity = field(default_factory=WorkloadIntensity)
    base_url: Optional[str] = None
    variables: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "name": self.name,
            "base_url": self.base_url,
            "variables": self.variables,
            "workload_intensity": self.workload_intensity.to_dict(),
            "behavior_mix": [e.to_dict() for e in self.behavior_mix],
            "behavior_models": [b.to_dict() for b in self.behavior_models],
        }
