"""Core modules for the Markov4JMeter Test Plan Generator."""

from m4j_gen.core.behavior_csv import BehaviorModelCSVWriter, LineBreakType
from m4j_gen.core.configuration import Configuration
from m4j_gen.core.element_factory import ElementTemplate, PropertySpec, TestPlanElementFactory
from m4j_gen.core.engine_gateway import JMeterEngineGateway
from m4j_gen.core.filters import (
    AbstractFilter,
    GaussianThinkTimeDistributionFilter,
    HeaderDefaultsFilter,
    create_filters,
)
from m4j_gen.core.jmx_writer import TestPlanWriter, WriteResult
from m4j_gen.core.model_visualizer import ModelVisualizer
from m4j_gen.core.test_plan import ElementKind, TestPlanElement, TestPlanTree
from m4j_gen.core.test_plan_generator import (
    GenerationResult,
    GenerationStatus,
    GeneratorState,
    TestPlanGenerator,
)
from m4j_gen.core.transformer import (
    AbstractTestPlanTransformer,
    SimpleTestPlanTransformer,
    normalize_weights,
)
from m4j_gen.core.workload_model_parser import WorkloadModelParser

# Workload model data structures
from m4j_gen.core.model import (
    EXIT_STATE,
    BehaviorMixEntry,
    BehaviorModel,
    MarkovState,
    ServiceRequest,
    ThinkTime,
    Transition,
    WorkloadIntensity,
    WorkloadModel,
)

__all__ = [
    # pipeline
    "Configuration",
    "TestPlanElementFactory",
    "ElementTemplate",
    "PropertySpec",
    "AbstractTestPlanTransformer",
    "SimpleTestPlanTransformer",
    "normalize_weights",
    "AbstractFilter",
    "HeaderDefaultsFilter",
    "GaussianThinkTimeDistributionFilter",
    "create_filters",
    "TestPlanWriter",
    "WriteResult",
    "BehaviorModelCSVWriter",
    "LineBreakType",
    "TestPlanGenerator",
    "GeneratorState",
    "GenerationResult",
    "GenerationStatus",
    "JMeterEngineGateway",
    "WorkloadModelParser",
    "ModelVisualizer",
    # Test Plan tree
    "ElementKind",
    "TestPlanElement",
    "TestPlanTree",
    # workload model
    "EXIT_STATE",
    "ThinkTime",
    "ServiceRequest",
    "Transition",
    "MarkovState",
    "BehaviorModel",
    "BehaviorMixEntry",
    "WorkloadIntensity",
    "WorkloadModel",
]
