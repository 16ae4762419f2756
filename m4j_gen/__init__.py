"""Markov4JMeter Test Plan Generator - Generate JMX files from workload models."""

__version__ = "1.0.0"

from m4j_gen.core.configuration import Configuration
from m4j_gen.core.element_factory import TestPlanElementFactory
from m4j_gen.core.test_plan_generator import TestPlanGenerator
from m4j_gen.core.transformer import SimpleTestPlanTransformer
from m4j_gen.core.workload_model_parser import WorkloadModelParser

__all__ = [
    "Configuration",
    "TestPlanElementFactory",
    "TestPlanGenerator",
    "SimpleTestPlanTransformer",
    "WorkloadModelParser",
]
