"""Transformation of workload models into Test Plan trees.

A transformer walks the behavior models of a workload model, maps every
construct onto Test Plan elements created by a TestPlanElementFactory and
finally applies a chain of filters to the assembled tree.
"""

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union
from urllib.parse import urlparse

from m4j_gen.core.element_factory import TestPlanElementFactory
from m4j_gen.core.filters import AbstractFilter
from m4j_gen.core.model import (
    EXIT_STATE,
    BehaviorModel,
    MarkovState,
    ServiceRequest,
    ThinkTime,
    Transition,
    WorkloadModel,
)
from m4j_gen.core.test_plan import TestPlanElement, TestPlanTree
from m4j_gen.exceptions import (
    InconsistentProbabilityWeightsException,
    TransformationException,
    UnmappableConstructException,
)

if TYPE_CHECKING:
    from m4j_gen.core.behavior_csv import BehaviorModelCSVWriter

logger = logging.getLogger(__name__)

# JMeter variable holding the index of the current state ("$" = exit)
STATE_VARIABLE = "m4j_state"

# Loop condition of a session: run until the exit state is reached
SESSION_CONDITION = '${__jexl3("${' + STATE_VARIABLE + '}" != "' + EXIT_STATE + '")}'

# Switch value selecting the request controller of the current state
STATE_DISPATCH_VALUE = "${" + STATE_VARIABLE + "}"


def normalize_weights(
    probabilities: Sequence[float],
    behavior_model: Optional[str] = None,
    state: Optional[str] = None,
) -> list[float]:
    """Turn probabilities (or frequencies) into weights summing up to 1.0.

    Each weight is ``p / sum(p)``, so rounding drift in the input (e.g.
    0.33 + 0.33 + 0.33) is distributed proportionally instead of being
    cut off. Zero probabilities are kept as zero weights.

    Args:
        probabilities: Non-negative numbers, at least one of them positive
        behavior_model: Behavior model name for error context
        state: State name for error context

    Returns:
        Weights in the order of the input

    Raises:
        InconsistentProbabilityWeightsException: Empty input, negative or
            non-finite values, or a sum of zero
    """
    values = [float(p) for p in probabilities]
    if not values:
        raise InconsistentProbabilityWeightsException(
            "No probabilities to normalize", behavior_model=behavior_model, state=state
        )

    invalid = [p for p in values if not math.isfinite(p) or p < 0]
    if invalid:
        raise InconsistentProbabilityWeightsException(
            f"Probabilities must be finite and non-negative, got {values}",
            behavior_model=behavior_model,
            state=state,
        )

    total = math.fsum(values)
    if total <= 0:
        raise InconsistentProbabilityWeightsException(
            f"Probabilities sum up to zero: {values}", behavior_model=behavior_model, state=state
        )

    return [p / total for p in values]


class AbstractTestPlanTransformer(ABC):
    """Base class of transformation strategies.

    Subclasses implement ``_build`` to assemble the raw tree; ``transform``
    takes care of error wrapping and of running the filter chain.
    """

    def transform(
        self,
        workload_model: WorkloadModel,
        factory: TestPlanElementFactory,
        filters: Sequence[AbstractFilter] = (),
    ) -> TestPlanTree:
        """Transform a workload model into a filtered Test Plan tree.

        Filters run strictly in the given order; the output of filter i is
        the input of filter i+1. Filters whose effects overlap (e.g. both
        set the same property) are not arbitrated: the later one wins.

        Args:
            workload_model: Workload model to transform
            factory: Factory creating all Test Plan elements
            filters: Filters applied after assembly, in order

        Returns:
            Assembled and filtered Test Plan tree

        Raises:
            TransformationException: Any construct could not be mapped or
                any filter failed; no partial tree is returned
        """
        try:
            tree = self._build(workload_model, factory)
        except Exception as e:
            if isinstance(e, TransformationException):
                raise
            raise UnmappableConstructException(
                f"Could not transform workload model '{workload_model.name}': {e}"
            ) from e

        logger.debug(
            "Assembled test plan '%s' with %d elements", workload_model.name, tree.count()
        )

        for test_plan_filter in filters:
            tree = test_plan_filter.apply(tree, factory)
            logger.debug("Applied filter %s", test_plan_filter.name)

        return tree

    @abstractmethod
    def _build(self, workload_model: WorkloadModel, factory: TestPlanElementFactory) -> TestPlanTree:
        """Assemble the unfiltered Test Plan tree."""


class SimpleTestPlanTransformer(AbstractTestPlanTransformer):
    """Maps every behavior model onto one flat session controller hierarchy.

    Resulting structure::

        Test Plan
        ├── User Defined Variables (if the model has variables)
        ├── HTTP Request Defaults, HTTP Cookie Manager
        ├── View Results Tree, Aggregate Report
        └── Thread Group (threads = constant workload intensity)
            └── Behavior Mix (weighted selection, one branch per behavior model)
                └── <behavior model> (session controller)
                    ├── Enter <initial state> (sets m4j_state)
                    └── Session (while m4j_state != "$")
                        └── Current State (switch on m4j_state)
                            └── <state> (request controller)
                                ├── <state> Think Time (if given)
                                ├── HTTP samplers
                                └── <state> Transitions (weighted selection)
                                    └── <state> -> <target>
                                        └── Go to <target> (sets m4j_state)

    Behavior models, states, requests and transitions are traversed in
    declaration order, so identical input always yields identical trees.
    ``m4j_state`` holds the index of the current state in its behavior
    model's declaration order; the switch controller picks its child by
    that index.

    With a CSV writer, every behavior model is also exported as a
    transition matrix into ``behavior_models_output_path`` (default: the
    current directory) once the tree is complete.
    """

    def __init__(
        self,
        csv_writer: Optional["BehaviorModelCSVWriter"] = None,
        behavior_models_output_path: Optional[Union[str, Path]] = None,
    ) -> None:
        self.csv_writer = csv_writer
        self.behavior_models_output_path = Path(behavior_models_output_path or ".")

    def transform(
        self,
        workload_model: WorkloadModel,
        factory: TestPlanElementFactory,
        filters: Sequence[AbstractFilter] = (),
    ) -> TestPlanTree:
        """Transform, then export the behavior models if a writer is set.

        Raises:
            TransformationException: See AbstractTestPlanTransformer
            OutputUnwritableException: A behavior model file cannot be written
        """
        tree = super().transform(workload_model, factory, filters)

        if self.csv_writer is not None:
            paths = self.csv_writer.write_all(
                workload_model.behavior_models, self.behavior_models_output_path
            )
            logger.info("%d behavior model(s) written to %s", len(paths), self.behavior_models_output_path)

        return tree

    def _build(self, workload_model: WorkloadModel, factory: TestPlanElementFactory) -> TestPlanTree:
        test_plan = factory.create_test_plan(name=workload_model.name)
        tree = TestPlanTree(test_plan)

        if workload_model.variables:
            test_plan.add_child(
                factory.create_arguments(workload_model.variables, name="User Defined Variables")
            )

        test_plan.add_child(self._create_request_defaults(workload_model, factory))
        test_plan.add_child(factory.create_cookie_manager())
        test_plan.add_child(factory.create_view_results_tree())
        test_plan.add_child(factory.create_aggregate_report())

        thread_group = test_plan.add_child(
            factory.create_thread_group(num_threads=self._number_of_sessions(workload_model))
        )
        thread_group.add_child(self._map_behavior_mix(workload_model, factory))

        return tree

    def _create_request_defaults(
        self, workload_model: WorkloadModel, factory: TestPlanElementFactory
    ) -> TestPlanElement:
        """Create HTTP Request Defaults, using the model's base URL if set."""
        if not workload_model.base_url:
            return factory.create_http_request_defaults()

        parsed = urlparse(workload_model.base_url)
        if not parsed.hostname:
            raise UnmappableConstructException(
                f"Base URL '{workload_model.base_url}' has no host"
            )

        return factory.create_http_request_defaults(
            domain=parsed.hostname,
            port=str(parsed.port) if parsed.port else "",
            protocol=parsed.scheme or "http",
            path=parsed.path,
        )

    def _number_of_sessions(self, workload_model: WorkloadModel) -> str:
        """Map a constant workload intensity onto the number of threads."""
        intensity = workload_model.workload_intensity
        if intensity.type != "constant":
            raise UnmappableConstructException(
                f"Workload intensity type '{intensity.type}' is not supported, only 'constant'"
            )

        try:
            sessions = int(intensity.formula.strip())
        except ValueError as e:
            raise UnmappableConstructException(
                f"Workload intensity formula '{intensity.formula}' is not a constant number of sessions"
            ) from e

        if sessions < 0:
            raise UnmappableConstructException(
                f"Workload intensity must not be negative, got {sessions}"
            )
        return str(sessions)

    def _map_behavior_mix(
        self, workload_model: WorkloadModel, factory: TestPlanElementFactory
    ) -> TestPlanElement:
        """Create the weighted selection between all behavior models."""
        names = [model.name for model in workload_model.behavior_models]
        duplicates = _duplicates(names)
        if duplicates:
            raise UnmappableConstructException(
                f"Behavior model names must be unique, duplicated: {', '.join(duplicates)}"
            )

        if workload_model.behavior_mix:
            frequencies: dict[str, float] = {}
            for entry in workload_model.behavior_mix:
                if entry.behavior_model not in names:
                    raise UnmappableConstructException(
                        "Behavior mix names an undeclared behavior model",
                        behavior_model=entry.behavior_model,
                    )
                if entry.behavior_model in frequencies:
                    raise UnmappableConstructException(
                        "Behavior model is listed twice in the behavior mix",
                        behavior_model=entry.behavior_model,
                    )
                frequencies[entry.behavior_model] = entry.frequency

            for name in names:
                if name not in frequencies:
                    raise UnmappableConstructException(
                        "Behavior model is missing in the behavior mix", behavior_model=name
                    )
            weights = normalize_weights([frequencies[name] for name in names])
        else:
            # No mix given: all behavior models are equally likely
            weights = normalize_weights([1.0] * len(names))

        mix = factory.create_selection_controller(weights, name="Behavior Mix")
        for behavior_model in workload_model.behavior_models:
            mix.add_child(self._map_behavior_model(behavior_model, factory))
        return mix

    def _map_behavior_model(
        self, behavior_model: BehaviorModel, factory: TestPlanElementFactory
    ) -> TestPlanElement:
        """Create the session controller of one behavior model."""
        try:
            state_names = [state.name for state in behavior_model.states]
            duplicates = _duplicates(state_names)
            if duplicates:
                raise UnmappableConstructException(
                    f"State names must be unique, duplicated: {', '.join(duplicates)}",
                    behavior_model=behavior_model.name,
                )
            state_indexes = {name: str(index) for index, name in enumerate(state_names)}

            entry_state = behavior_model.entry_state
            if entry_state not in state_indexes:
                raise UnmappableConstructException(
                    f"Initial state '{entry_state}' is not declared",
                    behavior_model=behavior_model.name,
                )

            session = factory.create_session_controller(name=behavior_model.name)
            session.add_child(
                self._create_assignment(factory, f"Enter {entry_state}", state_indexes[entry_state])
            )
            loop = session.add_child(
                factory.create_while_controller(name="Session", condition=SESSION_CONDITION)
            )
            dispatcher = loop.add_child(
                factory.create_switch_controller(name="Current State", value=STATE_DISPATCH_VALUE)
            )
            for state in behavior_model.states:
                dispatcher.add_child(self._map_state(behavior_model, state, state_indexes, factory))
            return session

        except Exception as e:
            if isinstance(e, TransformationException):
                raise
            raise UnmappableConstructException(
                f"Could not map behavior model: {e}", behavior_model=behavior_model.name
            ) from e

    def _map_state(
        self,
        behavior_model: BehaviorModel,
        state: MarkovState,
        state_indexes: dict[str, str],
        factory: TestPlanElementFactory,
    ) -> TestPlanElement:
        """Create the request controller of one state."""
        try:
            controller = factory.create_request_controller(name=state.name)

            if state.think_time is not None:
                pause = controller.add_child(
                    factory.create_flow_control_action(name=f"{state.name} Think Time")
                )
                pause.add_child(self._create_timer(factory, state.think_time, f"{state.name} Think Time"))

            for request in state.requests:
                controller.add_child(self._create_sampler(factory, request))

            if state.transitions:
                controller.add_child(
                    self._map_transitions(behavior_model, state, state_indexes, factory)
                )
            else:
                # No outgoing edges: the session ends after this state
                controller.add_child(self._create_assignment(factory, "Exit", EXIT_STATE))
            return controller

        except Exception as e:
            if isinstance(e, TransformationException):
                raise
            raise UnmappableConstructException(
                f"Could not map state: {e}",
                behavior_model=behavior_model.name,
                state=state.name,
            ) from e

    def _map_transitions(
        self,
        behavior_model: BehaviorModel,
        state: MarkovState,
        state_indexes: dict[str, str],
        factory: TestPlanElementFactory,
    ) -> TestPlanElement:
        """Create the weighted selection over the outgoing edges of a state."""
        weights = normalize_weights(
            [transition.probability for transition in state.transitions],
            behavior_model=behavior_model.name,
            state=state.name,
        )

        selection = factory.create_selection_controller(weights, name=f"{state.name} Transitions")
        for transition in state.transitions:
            target_value = self._target_value(behavior_model, state, transition, state_indexes)
            branch = selection.add_child(
                factory.create_generic_controller(
                    name=f"{state.name} -> {transition.target}",
                    comment=_transition_comment(transition),
                )
            )
            branch.add_child(
                self._create_assignment(
                    factory, f"Go to {transition.target}", target_value, transition.think_time
                )
            )
        return selection

    def _target_value(
        self,
        behavior_model: BehaviorModel,
        state: MarkovState,
        transition: Transition,
        state_indexes: dict[str, str],
    ) -> str:
        if transition.target == EXIT_STATE:
            return EXIT_STATE
        if transition.target not in state_indexes:
            raise UnmappableConstructException(
                f"Transition targets undeclared state '{transition.target}'",
                behavior_model=behavior_model.name,
                state=state.name,
            )
        return state_indexes[transition.target]

    def _create_assignment(
        self,
        factory: TestPlanElementFactory,
        name: str,
        value: str,
        think_time: Optional[ThinkTime] = None,
    ) -> TestPlanElement:
        """Create a Flow Control Action that sets the state variable."""
        action = factory.create_flow_control_action(name=name)
        if think_time is not None:
            action.add_child(self._create_timer(factory, think_time, f"{name} Think Time"))
        action.add_child(
            factory.create_user_parameters({STATE_VARIABLE: value}, name=f"Set {STATE_VARIABLE}")
        )
        return action

    def _create_timer(
        self, factory: TestPlanElementFactory, think_time: ThinkTime, name: str
    ) -> TestPlanElement:
        delay = str(round(think_time.mean))
        if think_time.deviation > 0:
            return factory.create_gaussian_random_timer(
                name=name, delay=delay, range=str(round(think_time.deviation))
            )
        return factory.create_constant_timer(name=name, delay=delay)

    def _create_sampler(self, factory: TestPlanElementFactory, request: ServiceRequest) -> TestPlanElement:
        return factory.create_http_sampler(
            request.parameters,
            name=request.name,
            method=request.method,
            path=request.path,
            domain=request.domain,
            port=request.port,
            protocol=request.protocol,
        )


def _duplicates(names: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    duplicates: list[str] = []
    for name in names:
        if name in seen and name not in duplicates:
            duplicates.append(name)
        seen.add(name)
    return duplicates


def _transition_comment(transition: Transition) -> Optional[str]:
    """Guards and actions have no runtime counterpart; keep them as comment."""
    parts = []
    if transition.guard:
        parts.append(f"guard: {transition.guard}")
    if transition.action:
        parts.append(f"action: {transition.action}")
    return "; ".join(parts) or None
