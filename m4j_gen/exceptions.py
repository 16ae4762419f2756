"""Custom exceptions for the Markov4JMeter Test Plan Generator.

This module defines the exception hierarchy for the generator.
All custom exceptions inherit from M4JGenException base class. Every
exception family carries a ``category`` label which the generator uses
when reporting a failure to the user.
"""

from typing import Optional


class M4JGenException(Exception):
    """Base exception for all Test Plan Generator errors.

    All custom exceptions in the generator inherit from this base class
    to allow catching all tool-specific errors.
    """

    category = "GeneratorError"


class GeneratorStateException(M4JGenException):
    """Raised when the generator is used before it has been initialized."""

    pass


# Configuration Exceptions


class ConfigException(M4JGenException):
    """Base exception for configuration errors.

    This exception is raised when a properties source cannot be turned
    into a Configuration, or a required key cannot be resolved.
    """

    category = "ConfigError"


class ConfigUndefinedException(ConfigException):
    """Raised when no configuration source path has been given at all."""

    pass


class ConfigNotFoundException(ConfigException):
    """Raised when a configuration file does not exist."""

    pass


class ConfigUnreadableException(ConfigException):
    """Raised when a configuration file exists but cannot be read.

    This exception is raised when:
    - The path denotes a directory
    - Permissions do not allow reading
    - The file is not valid UTF-8
    """

    pass


class ConfigMalformedException(ConfigException):
    """Raised when configuration content cannot be interpreted.

    This exception is raised when:
    - YAML syntax is invalid or the document is not a mapping
    - A properties line holds an invalid unicode escape
    - A value cannot be converted to the requested type
    """

    pass


class MissingKeyException(ConfigException):
    """Raised in forced-argument mode when a requested key is absent.

    Attributes:
        key: The configuration key that could not be resolved
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Undefined configuration key '{key}'")


# Factory Exceptions


class FactoryException(M4JGenException):
    """Base exception for Test Plan element construction errors."""

    category = "FactoryError"


class UndefinedRequiredPropertyException(FactoryException):
    """Raised in forced-argument mode when a property has no value.

    The property was neither passed as an explicit override nor defined
    in the Test Plan default properties.

    Attributes:
        key: Default-properties key of the missing value
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Undefined required property '{key}'")


class UnknownPropertyException(FactoryException):
    """Raised when an override names a property the element does not have."""

    pass


class TestPlanStructureException(M4JGenException):
    """Raised when an element would break the Test Plan structure.

    This exception is raised when:
    - A child kind is not allowed below its parent kind
    - A property key is not legal for the element's kind
    """

    __test__ = False  # keep pytest from collecting this class


# Transformation Exceptions


class TransformationException(M4JGenException):
    """Base exception for workload model transformation errors.

    Attributes:
        behavior_model: Name of the behavior model being mapped, if any
        state: Name of the state being mapped, if any
        filter_name: Name of the filter being applied, if any
    """

    category = "TransformationError"

    def __init__(
        self,
        message: str,
        behavior_model: Optional[str] = None,
        state: Optional[str] = None,
        filter_name: Optional[str] = None,
    ) -> None:
        self.behavior_model = behavior_model
        self.state = state
        self.filter_name = filter_name

        context = []
        if behavior_model is not None:
            context.append(f"behavior model '{behavior_model}'")
        if state is not None:
            context.append(f"state '{state}'")
        if filter_name is not None:
            context.append(f"filter '{filter_name}'")

        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


class UnmappableConstructException(TransformationException):
    """Raised when a model construct has no Test Plan counterpart.

    This exception is raised when:
    - A transition targets an undeclared state
    - State names are not unique within a behavior model
    - The workload intensity formula is not a constant
    - An element for the construct cannot be created
    """

    pass


class FilterFailureException(TransformationException):
    """Raised when a filter cannot rewrite the Test Plan."""

    pass


class InconsistentProbabilityWeightsException(TransformationException):
    """Raised when probabilities cannot be normalized into weights.

    This exception is raised when:
    - A probability is negative, NaN or infinite
    - All probabilities of a selection sum up to zero
    """

    pass


# I/O Exceptions


class TestPlanIOException(M4JGenException):
    """Base exception for reading and writing files."""

    __test__ = False

    category = "IOError"


class InputUnreadableException(TestPlanIOException):
    """Raised when the workload model file cannot be read."""

    pass


class OutputUnwritableException(TestPlanIOException):
    """Raised when the Test Plan file cannot be written.

    This exception is raised when:
    - The output file cannot be opened (missing directory, permissions)
    - Serializing the tree into the opened file fails
    - A behavior model CSV file cannot be written
    """

    pass


class ResourceCloseFailure(TestPlanIOException):
    """Describes a file that was written but could not be closed.

    Never raised out of the writer; the write itself still counts as
    successful and this is reported as a warning only.
    """

    pass


# Model Exceptions


class ModelLoadException(M4JGenException):
    """Raised when a workload model file has invalid content.

    This exception is raised when:
    - YAML syntax is invalid
    - Required fields are missing
    - Field values have the wrong type
    """

    category = "ModelLoadError"


# Engine Exceptions


class EngineException(M4JGenException):
    """Raised when the JMeter engine cannot be set up or started.

    This exception is raised when:
    - The JMeter home directory has no bin/jmeter launcher
    - The JMeter properties file does not exist
    - A test run is requested but no JMeter home is configured
    - The JMeter process cannot be started
    """

    category = "EngineError"
