"""Factory for fully configured Test Plan elements.

This module provides the TestPlanElementFactory class which creates
typed Test Plan elements (controllers, samplers, timers, config elements,
listeners) whose properties are resolved from explicit overrides and the
Test Plan default properties.

Every element kind is described by an ElementTemplate. A template
property "thread_group.num_threads" is resolved as follows:

1. an explicit override ``num_threads=...`` passed by the caller wins;
2. otherwise the value of key "thread_group.num_threads" in the defaults;
3. otherwise, in forced-argument mode, UndefinedRequiredPropertyException;
4. otherwise the neutral value of the property: "" / False / 0 by type,
   unless the template declares its own (thread group loops "-1",
   flow control action 1 = pause with duration "0").
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from m4j_gen.core.configuration import FALSE_VALUES, TRUE_VALUES, Configuration
from m4j_gen.core.test_plan import ElementKind, PropertyValue, TestPlanElement
from m4j_gen.exceptions import (
    FactoryException,
    UndefinedRequiredPropertyException,
    UnknownPropertyException,
)

# Tolerance for weights passed to create_selection_controller()
WEIGHT_EPSILON = 1e-9

# Property holding the comment of every element
COMMENT_PROPERTY = "TestPlan.comments"


class PropertyType(str, Enum):
    """Value type of a template property."""

    STRING = "string"
    BOOLEAN = "boolean"
    INTEGER = "integer"
    DOUBLE = "double"


_NEUTRAL_VALUES: dict[PropertyType, Any] = {
    PropertyType.STRING: "",
    PropertyType.BOOLEAN: False,
    PropertyType.INTEGER: 0,
    PropertyType.DOUBLE: 0.0,
}


@dataclass(frozen=True)
class PropertySpec:
    """A configurable property of an element template.

    Attributes:
        key: Override name and suffix of the defaults key
        name: JMeter property name (None = consumed by the factory itself)
        type: Value type
        neutral: Value used in lenient mode (None = neutral value of type)
    """

    key: str
    name: Optional[str]
    type: PropertyType = PropertyType.STRING
    neutral: Any = None

    @property
    def neutral_value(self) -> Any:
        return _NEUTRAL_VALUES[self.type] if self.neutral is None else self.neutral


# Properties every element has
_COMMON_PROPERTIES = (
    PropertySpec("name", None),
    PropertySpec("comment", COMMENT_PROPERTY),
    PropertySpec("enabled", None, PropertyType.BOOLEAN, neutral=True),
)


@dataclass(frozen=True)
class ElementTemplate:
    """Description of one element type.

    Attributes:
        prefix: Prefix of the defaults keys (e.g. "thread_group")
        kind: Element kind
        test_class: JMeter test element class
        gui_class: JMeter GUI class
        properties: Configurable properties (besides name/comment/enabled)
        structured: Names of collection/element properties set by the factory
    """

    prefix: str
    kind: ElementKind
    test_class: str
    gui_class: str
    properties: tuple[PropertySpec, ...] = ()
    structured: tuple[str, ...] = ()

    @property
    def all_properties(self) -> tuple[PropertySpec, ...]:
        return _COMMON_PROPERTIES + self.properties

    @property
    def allowed_properties(self) -> frozenset[str]:
        names = {spec.name for spec in self.all_properties if spec.name is not None}
        return frozenset(names) | frozenset(self.structured)


_S, _B, _I = PropertyType.STRING, PropertyType.BOOLEAN, PropertyType.INTEGER

TEST_PLAN = ElementTemplate(
    "test_plan", ElementKind.TEST_PLAN, "TestPlan", "TestPlanGui",
    (
        PropertySpec("functional_mode", "TestPlan.functional_mode", _B),
        PropertySpec("serialize_threadgroups", "TestPlan.serialize_threadgroups", _B),
        PropertySpec("teardown_on_shutdown", "TestPlan.tearDown_on_shutdown", _B),
        PropertySpec("user_define_classpath", "TestPlan.user_define_classpath", _S),
    ),
    structured=("TestPlan.user_defined_variables",),
)

ARGUMENTS = ElementTemplate(
    "arguments", ElementKind.ARGUMENTS, "Arguments", "ArgumentsPanel",
    structured=("Arguments.arguments",),
)

THREAD_GROUP = ElementTemplate(
    "thread_group", ElementKind.THREAD_GROUP, "ThreadGroup", "ThreadGroupGui",
    (
        PropertySpec("num_threads", "ThreadGroup.num_threads", _S),
        PropertySpec("ramp_time", "ThreadGroup.ramp_time", _S),
        PropertySpec("on_sample_error", "ThreadGroup.on_sample_error", _S),
        PropertySpec("scheduler", "ThreadGroup.scheduler", _B),
        PropertySpec("duration", "ThreadGroup.duration", _S),
        PropertySpec("delay", "ThreadGroup.delay", _S),
        PropertySpec("same_user_on_next_iteration", "ThreadGroup.same_user_on_next_iteration", _B),
        # -1 = loop until the scheduler ends the run
        PropertySpec("loops", None, _S, neutral="-1"),
        PropertySpec("continue_forever", None, _B),
    ),
    structured=("ThreadGroup.main_controller",),
)

SESSION_CONTROLLER = ElementTemplate(
    "session_controller", ElementKind.SESSION_CONTROLLER, "GenericController", "LogicControllerGui",
)

REQUEST_CONTROLLER = ElementTemplate(
    "request_controller", ElementKind.REQUEST_CONTROLLER,
    "TransactionController", "TransactionControllerGui",
    (
        PropertySpec("include_timers", "TransactionController.includeTimers", _B),
        PropertySpec("parent", "TransactionController.parent", _B),
    ),
)

SELECTION_CONTROLLER = ElementTemplate(
    "selection_controller", ElementKind.SELECTION_CONTROLLER, "SwitchController", "SwitchControllerGui",
    structured=("SwitchController.value", "SwitchController.weights"),
)

GENERIC_CONTROLLER = ElementTemplate(
    "generic_controller", ElementKind.LOGIC_CONTROLLER, "GenericController", "LogicControllerGui",
)

LOOP_CONTROLLER = ElementTemplate(
    "loop_controller", ElementKind.LOGIC_CONTROLLER, "LoopController", "LoopControlPanel",
    (
        PropertySpec("loops", "LoopController.loops", _S),
        PropertySpec("continue_forever", "LoopController.continue_forever", _B),
    ),
)

WHILE_CONTROLLER = ElementTemplate(
    "while_controller", ElementKind.LOGIC_CONTROLLER, "WhileController", "WhileControllerGui",
    (PropertySpec("condition", "WhileController.condition", _S),),
)

IF_CONTROLLER = ElementTemplate(
    "if_controller", ElementKind.LOGIC_CONTROLLER, "IfController", "IfControllerPanel",
    (
        PropertySpec("condition", "IfController.condition", _S),
        PropertySpec("evaluate_all", "IfController.evaluateAll", _B),
        PropertySpec("use_expression", "IfController.useExpression", _B),
    ),
)

SWITCH_CONTROLLER = ElementTemplate(
    "switch_controller", ElementKind.LOGIC_CONTROLLER, "SwitchController", "SwitchControllerGui",
    (PropertySpec("value", "SwitchController.value", _S),),
)

HTTP_SAMPLER = ElementTemplate(
    "http_sampler", ElementKind.SAMPLER, "HTTPSamplerProxy", "HttpTestSampleGui",
    (
        PropertySpec("domain", "HTTPSampler.domain", _S),
        PropertySpec("port", "HTTPSampler.port", _S),
        PropertySpec("protocol", "HTTPSampler.protocol", _S),
        PropertySpec("content_encoding", "HTTPSampler.contentEncoding", _S),
        PropertySpec("path", "HTTPSampler.path", _S),
        PropertySpec("method", "HTTPSampler.method", _S),
        PropertySpec("follow_redirects", "HTTPSampler.follow_redirects", _B),
        PropertySpec("auto_redirects", "HTTPSampler.auto_redirects", _B),
        PropertySpec("use_keepalive", "HTTPSampler.use_keepalive", _B),
        PropertySpec("do_multipart_post", "HTTPSampler.DO_MULTIPART_POST", _B),
    ),
    structured=("HTTPsampler.Arguments",),
)

FLOW_CONTROL_ACTION = ElementTemplate(
    "flow_control_action", ElementKind.SAMPLER, "TestAction", "TestActionGui",
    (
        # 1 = pause; 0 would stop the thread
        PropertySpec("action", "ActionProcessor.action", _I, neutral=1),
        PropertySpec("target", "ActionProcessor.target", _I),
        PropertySpec("duration", "ActionProcessor.duration", _S, neutral="0"),
    ),
)

USER_PARAMETERS = ElementTemplate(
    "user_parameters", ElementKind.PRE_PROCESSOR, "UserParameters", "UserParametersGui",
    (PropertySpec("per_iteration", "UserParameters.per_iteration", _B),),
    structured=("UserParameters.names", "UserParameters.thread_values"),
)

CONSTANT_TIMER = ElementTemplate(
    "constant_timer", ElementKind.TIMER, "ConstantTimer", "ConstantTimerGui",
    (PropertySpec("delay", "ConstantTimer.delay", _S),),
)

GAUSSIAN_RANDOM_TIMER = ElementTemplate(
    "gaussian_random_timer", ElementKind.TIMER, "GaussianRandomTimer", "GaussianRandomTimerGui",
    (
        PropertySpec("delay", "ConstantTimer.delay", _S),
        PropertySpec("range", "RandomTimer.range", _S),
    ),
)

HEADER_MANAGER = ElementTemplate(
    "header_manager", ElementKind.CONFIG_ELEMENT, "HeaderManager", "HeaderPanel",
    structured=("HeaderManager.headers",),
)

COOKIE_MANAGER = ElementTemplate(
    "cookie_manager", ElementKind.CONFIG_ELEMENT, "CookieManager", "CookiePanel",
    (
        PropertySpec("clear_each_iteration", "CookieManager.clearEachIteration", _B),
        PropertySpec("policy", "CookieManager.policy", _S),
    ),
    structured=("CookieManager.cookies",),
)

HTTP_REQUEST_DEFAULTS = ElementTemplate(
    "http_request_defaults", ElementKind.CONFIG_ELEMENT, "ConfigTestElement", "HttpDefaultsGui",
    (
        PropertySpec("domain", "HTTPSampler.domain", _S),
        PropertySpec("port", "HTTPSampler.port", _S),
        PropertySpec("protocol", "HTTPSampler.protocol", _S),
        PropertySpec("content_encoding", "HTTPSampler.contentEncoding", _S),
        PropertySpec("path", "HTTPSampler.path", _S),
    ),
    structured=("HTTPsampler.Arguments",),
)

COUNTER_CONFIG = ElementTemplate(
    "counter_config", ElementKind.CONFIG_ELEMENT, "CounterConfig", "CounterConfigGui",
    (
        PropertySpec("start", "CounterConfig.start", _S),
        PropertySpec("end", "CounterConfig.end", _S),
        PropertySpec("increment", "CounterConfig.incr", _S),
        PropertySpec("variable_name", "CounterConfig.name", _S),
        PropertySpec("format", "CounterConfig.format", _S),
        PropertySpec("per_user", "CounterConfig.per_user", _B),
    ),
)

VIEW_RESULTS_TREE = ElementTemplate(
    "view_results_tree", ElementKind.LISTENER, "ResultCollector", "ViewResultsFullVisualizer",
    (
        PropertySpec("error_logging", "ResultCollector.error_logging", _B),
        PropertySpec("filename", "filename", _S),
    ),
)

AGGREGATE_REPORT = ElementTemplate(
    "aggregate_report", ElementKind.LISTENER, "ResultCollector", "StatVisualizer",
    (
        PropertySpec("error_logging", "ResultCollector.error_logging", _B),
        PropertySpec("filename", "filename", _S),
    ),
)

TEMPLATES: tuple[ElementTemplate, ...] = (
    TEST_PLAN, ARGUMENTS, THREAD_GROUP, SESSION_CONTROLLER, REQUEST_CONTROLLER,
    SELECTION_CONTROLLER, GENERIC_CONTROLLER, LOOP_CONTROLLER, WHILE_CONTROLLER,
    IF_CONTROLLER, SWITCH_CONTROLLER, HTTP_SAMPLER, FLOW_CONTROL_ACTION,
    USER_PARAMETERS, CONSTANT_TIMER, GAUSSIAN_RANDOM_TIMER, HEADER_MANAGER,
    COOKIE_MANAGER, HTTP_REQUEST_DEFAULTS, COUNTER_CONFIG, VIEW_RESULTS_TREE,
    AGGREGATE_REPORT,
)


class TestPlanElementFactory:
    """Creates Test Plan elements from the Test Plan default properties.

    The factory is immutable once created and can be shared by concurrent
    generation runs. It never returns a partially configured element: all
    properties are resolved before the element is built.

    Example:
        >>> defaults = Configuration.load("testplan.default.properties")
        >>> factory = TestPlanElementFactory(defaults, forced=True)
        >>> thread_group = factory.create_thread_group(num_threads=10)
    """

    __test__ = False

    def __init__(self, configuration: Configuration, forced: bool = False) -> None:
        """Initialize factory.

        Args:
            configuration: Test Plan default properties
            forced: Whether an unresolvable property is an error
        """
        self._configuration = configuration
        self._forced = forced

    @property
    def configuration(self) -> Configuration:
        """Test Plan default properties."""
        return self._configuration

    @property
    def forced(self) -> bool:
        """Whether an unresolvable property is an error."""
        return self._forced

    # === Test Plan and Thread Group ===

    def create_test_plan(
        self, variables: Optional[Mapping[str, Any]] = None, **overrides: Any
    ) -> TestPlanElement:
        """Create the Test Plan root element.

        Args:
            variables: User defined variables of the Test Plan
            **overrides: Explicit property values
        """
        values = self._resolve(TEST_PLAN, overrides)
        user_defined_variables = self._entry(
            "Arguments", "TestPlan.user_defined_variables",
            {"Arguments.arguments": self._argument_entries(variables or {})},
        )
        return self._assemble(
            TEST_PLAN, values, {"TestPlan.user_defined_variables": user_defined_variables}
        )

    def create_arguments(
        self, variables: Optional[Mapping[str, Any]] = None, **overrides: Any
    ) -> TestPlanElement:
        """Create a User Defined Variables element."""
        values = self._resolve(ARGUMENTS, overrides)
        return self._assemble(
            ARGUMENTS, values, {"Arguments.arguments": self._argument_entries(variables or {})}
        )

    def create_thread_group(self, **overrides: Any) -> TestPlanElement:
        """Create a Thread Group with its main Loop Controller."""
        values = self._resolve(THREAD_GROUP, overrides)
        main_controller = self.create_loop_controller(
            loops=values["loops"], continue_forever=values["continue_forever"]
        )
        return self._assemble(THREAD_GROUP, values, {"ThreadGroup.main_controller": main_controller})

    # === Controllers ===

    def create_session_controller(self, **overrides: Any) -> TestPlanElement:
        """Create the top-level controller of one user type's sessions."""
        return self._assemble(SESSION_CONTROLLER, self._resolve(SESSION_CONTROLLER, overrides))

    def create_request_controller(self, **overrides: Any) -> TestPlanElement:
        """Create a Transaction Controller grouping the requests of one state."""
        return self._assemble(REQUEST_CONTROLLER, self._resolve(REQUEST_CONTROLLER, overrides))

    def create_selection_controller(self, weights: Sequence[float], **overrides: Any) -> TestPlanElement:
        """Create a controller running one child chosen at random by weight.

        The i-th weight belongs to the i-th child added afterwards. The
        choice is evaluated by JMeter each time the controller is entered.

        Args:
            weights: Normalized, non-negative weights summing up to 1.0
            **overrides: Explicit property values

        Raises:
            FactoryException: Weights are empty, negative or not normalized
        """
        weights = [float(w) for w in weights]
        if not weights:
            raise FactoryException("A selection controller needs at least one weight")
        if any(not math.isfinite(w) or w < 0 for w in weights):
            raise FactoryException(f"Selection weights must be non-negative numbers: {weights}")
        if abs(math.fsum(weights) - 1.0) > WEIGHT_EPSILON:
            raise FactoryException(f"Selection weights must sum up to 1.0: {weights}")

        values = self._resolve(SELECTION_CONTROLLER, overrides)
        return self._assemble(
            SELECTION_CONTROLLER,
            values,
            {
                "SwitchController.value": self._selection_expression(weights),
                "SwitchController.weights": weights,
            },
        )

    def create_generic_controller(self, **overrides: Any) -> TestPlanElement:
        """Create a Simple Controller."""
        return self._assemble(GENERIC_CONTROLLER, self._resolve(GENERIC_CONTROLLER, overrides))

    def create_loop_controller(self, **overrides: Any) -> TestPlanElement:
        """Create a Loop Controller."""
        return self._assemble(LOOP_CONTROLLER, self._resolve(LOOP_CONTROLLER, overrides))

    def create_while_controller(self, **overrides: Any) -> TestPlanElement:
        """Create a While Controller."""
        return self._assemble(WHILE_CONTROLLER, self._resolve(WHILE_CONTROLLER, overrides))

    def create_if_controller(self, **overrides: Any) -> TestPlanElement:
        """Create an If Controller."""
        return self._assemble(IF_CONTROLLER, self._resolve(IF_CONTROLLER, overrides))

    def create_switch_controller(self, **overrides: Any) -> TestPlanElement:
        """Create a Switch Controller selecting a child by index or name."""
        return self._assemble(SWITCH_CONTROLLER, self._resolve(SWITCH_CONTROLLER, overrides))

    # === Samplers and Pre-Processors ===

    def create_http_sampler(
        self, parameters: Optional[Mapping[str, Any]] = None, **overrides: Any
    ) -> TestPlanElement:
        """Create an HTTP Request sampler.

        Args:
            parameters: Request parameters (name -> value)
            **overrides: Explicit property values
        """
        values = self._resolve(HTTP_SAMPLER, overrides)
        return self._assemble(
            HTTP_SAMPLER, values, {"HTTPsampler.Arguments": self._http_arguments(parameters or {})}
        )

    def create_flow_control_action(self, **overrides: Any) -> TestPlanElement:
        """Create a Flow Control Action sampler (produces no sample result)."""
        return self._assemble(FLOW_CONTROL_ACTION, self._resolve(FLOW_CONTROL_ACTION, overrides))

    def create_user_parameters(self, variables: Mapping[str, Any], **overrides: Any) -> TestPlanElement:
        """Create a User Parameters pre-processor assigning variables.

        Args:
            variables: Variable name -> value assigned for every thread
            **overrides: Explicit property values
        """
        values = self._resolve(USER_PARAMETERS, overrides)
        return self._assemble(
            USER_PARAMETERS,
            values,
            {
                "UserParameters.names": [str(name) for name in variables],
                "UserParameters.thread_values": [[str(v) for v in variables.values()]],
            },
        )

    # === Timers ===

    def create_constant_timer(self, **overrides: Any) -> TestPlanElement:
        """Create a Constant Timer (delay in milliseconds)."""
        return self._assemble(CONSTANT_TIMER, self._resolve(CONSTANT_TIMER, overrides))

    def create_gaussian_random_timer(self, **overrides: Any) -> TestPlanElement:
        """Create a Gaussian Random Timer (delay offset and deviation range in ms)."""
        return self._assemble(GAUSSIAN_RANDOM_TIMER, self._resolve(GAUSSIAN_RANDOM_TIMER, overrides))

    # === Config Elements ===

    def create_header_manager(
        self, headers: Optional[Mapping[str, str]] = None, **overrides: Any
    ) -> TestPlanElement:
        """Create an HTTP Header Manager.

        Args:
            headers: Header name -> value, in insertion order
            **overrides: Explicit property values
        """
        values = self._resolve(HEADER_MANAGER, overrides)
        entries = [
            self._entry("Header", "", {"Header.name": str(name), "Header.value": str(value)})
            for name, value in (headers or {}).items()
        ]
        return self._assemble(HEADER_MANAGER, values, {"HeaderManager.headers": entries})

    def create_cookie_manager(self, **overrides: Any) -> TestPlanElement:
        """Create an HTTP Cookie Manager."""
        values = self._resolve(COOKIE_MANAGER, overrides)
        return self._assemble(COOKIE_MANAGER, values, {"CookieManager.cookies": []})

    def create_http_request_defaults(self, **overrides: Any) -> TestPlanElement:
        """Create HTTP Request Defaults inherited by all HTTP samplers in scope."""
        values = self._resolve(HTTP_REQUEST_DEFAULTS, overrides)
        return self._assemble(
            HTTP_REQUEST_DEFAULTS, values, {"HTTPsampler.Arguments": self._http_arguments({})}
        )

    def create_counter_config(self, **overrides: Any) -> TestPlanElement:
        """Create a Counter config element."""
        return self._assemble(COUNTER_CONFIG, self._resolve(COUNTER_CONFIG, overrides))

    # === Listeners ===

    def create_view_results_tree(self, **overrides: Any) -> TestPlanElement:
        """Create a View Results Tree listener."""
        return self._assemble(VIEW_RESULTS_TREE, self._resolve(VIEW_RESULTS_TREE, overrides))

    def create_aggregate_report(self, **overrides: Any) -> TestPlanElement:
        """Create an Aggregate Report listener."""
        return self._assemble(AGGREGATE_REPORT, self._resolve(AGGREGATE_REPORT, overrides))

    # === Resolution ===

    def _resolve(self, template: ElementTemplate, overrides: Mapping[str, Any]) -> dict[str, Any]:
        """Resolve every template property to a typed value.

        Raises:
            UnknownPropertyException: An override is not a template property
            UndefinedRequiredPropertyException: Unresolvable in forced mode
        """
        specs = template.all_properties
        unknown = set(overrides) - {spec.key for spec in specs}
        if unknown:
            raise UnknownPropertyException(
                f"Unknown {template.prefix} properties: {', '.join(sorted(unknown))}"
            )

        values: dict[str, Any] = {}
        for spec in specs:
            value = overrides.get(spec.key)
            if value is None:
                value = self._default(template, spec)
            values[spec.key] = self._convert(value, spec, template)
        return values

    def _default(self, template: ElementTemplate, spec: PropertySpec) -> Any:
        key = f"{template.prefix}.{spec.key}"
        raw = self._configuration.get(key)

        # Empty values only count as defined for string properties
        if raw is not None and (spec.type is PropertyType.STRING or raw.strip()):
            return raw
        if self._forced:
            raise UndefinedRequiredPropertyException(key)
        return spec.neutral_value

    def _convert(self, value: Any, spec: PropertySpec, template: ElementTemplate) -> Any:
        try:
            if spec.type is PropertyType.STRING:
                return _to_string(value)
            if spec.type is PropertyType.BOOLEAN:
                return _to_bool(value)
            if spec.type is PropertyType.INTEGER:
                return int(value)
            return float(value)
        except (TypeError, ValueError) as e:
            raise FactoryException(
                f"Invalid value '{value}' for {template.prefix}.{spec.key}: {e}"
            ) from e

    def _assemble(
        self,
        template: ElementTemplate,
        values: Mapping[str, Any],
        structured: Optional[Mapping[str, PropertyValue]] = None,
    ) -> TestPlanElement:
        properties: dict[str, PropertyValue] = {
            spec.name: values[spec.key] for spec in template.all_properties if spec.name is not None
        }
        properties.update(structured or {})

        return TestPlanElement(
            kind=template.kind,
            test_class=template.test_class,
            gui_class=template.gui_class,
            name=values["name"],
            properties=properties,
            enabled=values["enabled"],
            allowed_properties=template.allowed_properties,
        )

    # === Nested entries ===

    def _entry(self, element_type: str, name: str, properties: dict[str, PropertyValue]) -> TestPlanElement:
        """Create a nested property element (no GUI class, not a tree node)."""
        return TestPlanElement(
            kind=ElementKind.ARGUMENTS,
            test_class=element_type,
            gui_class="",
            name=name,
            properties=properties,
            allowed_properties=frozenset(properties),
        )

    def _argument_entries(self, variables: Mapping[str, Any]) -> list[TestPlanElement]:
        return [
            self._entry(
                "Argument",
                str(name),
                {
                    "Argument.name": str(name),
                    "Argument.value": _to_string(value),
                    "Argument.metadata": "=",
                },
            )
            for name, value in variables.items()
        ]

    def _http_arguments(self, parameters: Mapping[str, Any]) -> TestPlanElement:
        entries = [
            self._entry(
                "HTTPArgument",
                str(name),
                {
                    "HTTPArgument.always_encode": False,
                    "Argument.name": str(name),
                    "Argument.value": _to_string(value),
                    "Argument.metadata": "=",
                    "HTTPArgument.use_equals": True,
                },
            )
            for name, value in parameters.items()
        ]
        arguments = self._entry("Arguments", "HTTPsampler.Arguments", {"Arguments.arguments": entries})
        return arguments

    @staticmethod
    def _selection_expression(weights: Sequence[float]) -> str:
        """Build the JMeter expression choosing a child index by weight.

        Cumulative thresholds are compared against a uniform random number
        in [0, 1); the last threshold is pinned to 1 so that rounding can
        never leave the random number without a matching child.
        """
        thresholds = [f"{math.fsum(weights[: i + 1]):.10g}" for i in range(len(weights) - 1)]
        thresholds.append("1")
        # Commas inside JMeter function arguments are escaped
        return "${__groovy(def r = Math.random(); [" + "\\,".join(thresholds) + "].findIndexOf { r < it })}"


def _to_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError("not a boolean")
