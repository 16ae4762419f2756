"""Filters rewriting assembled Test Plan trees.

A filter is applied after the transformer has assembled the tree. Each
filter works on its own copy of the input tree and returns that copy only
if the whole rewrite succeeded, so a failing filter never leaves a
half-modified tree behind.
"""

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from m4j_gen.core.test_plan import ElementKind, TestPlanTree
from m4j_gen.exceptions import FilterFailureException

if TYPE_CHECKING:
    from m4j_gen.core.element_factory import TestPlanElementFactory

logger = logging.getLogger(__name__)

# Prefix of the Test Plan default properties holding default request headers
HEADER_DEFAULTS_PREFIX = "header_defaults"

# Test class of the samplers that receive think time timers
HTTP_SAMPLER = "HTTPSamplerProxy"

# Activation flags accepted by create_filters()
FILTER_FLAGS = {
    "H": "header defaults",
    "G": "gaussian think time distribution",
}


class AbstractFilter(ABC):
    """Base class of all Test Plan filters.

    Filters are stateless apart from the configuration captured when they
    are created, so one instance may be applied to any number of trees.
    """

    @property
    def name(self) -> str:
        """Name used in log and error messages."""
        return type(self).__name__

    def apply(self, tree: TestPlanTree, factory: "TestPlanElementFactory") -> TestPlanTree:
        """Return a rewritten copy of tree.

        Args:
            tree: Input tree, left unchanged
            factory: Factory for any element the filter adds

        Returns:
            The rewritten copy

        Raises:
            FilterFailureException: The rewrite failed
        """
        working_copy = tree.copy()
        try:
            self._modify(working_copy, factory)
        except Exception as e:
            if isinstance(e, FilterFailureException):
                raise
            raise FilterFailureException(f"Filter failed: {e}", filter_name=self.name) from e
        return working_copy

    @abstractmethod
    def _modify(self, tree: TestPlanTree, factory: "TestPlanElementFactory") -> None:
        """Rewrite tree in place. Only ever called on a private copy."""


class HeaderDefaultsFilter(AbstractFilter):
    """Adds an HTTP Header Manager with the default request headers.

    Headers are read from the "header_defaults.<Header-Name>" entries of
    the Test Plan default properties. The Header Manager is placed at Test
    Plan level, right before the first Thread Group, so it applies to every
    sampler. Without any such entries the tree is left as it is.
    """

    def _modify(self, tree: TestPlanTree, factory: "TestPlanElementFactory") -> None:
        headers = factory.configuration.get_section(HEADER_DEFAULTS_PREFIX)
        if not headers:
            logger.debug("No default headers configured")
            return

        root = tree.root
        position = next(
            (i for i, child in enumerate(root.children) if child.kind is ElementKind.THREAD_GROUP),
            len(root.children),
        )
        root.add_child(factory.create_header_manager(headers), index=position)
        logger.debug("Added %d default headers", len(headers))


class GaussianThinkTimeDistributionFilter(AbstractFilter):
    """Adds a Gaussian Random Timer to every HTTP sampler.

    Each timer is a child of its sampler, so it delays only that request
    by ``mean`` plus a normally distributed offset with standard deviation
    ``deviation`` (both in milliseconds). The flow control actions that
    move a session between states stay undelayed.
    """

    def __init__(
        self,
        name: str = "Think Time",
        comment: str = "",
        enabled: bool = True,
        mean: float = 300,
        deviation: float = 100,
    ) -> None:
        """Initialize filter.

        Args:
            name: Name of the added timers
            comment: Comment of the added timers
            enabled: Whether the added timers are enabled
            mean: Constant delay offset in milliseconds
            deviation: Deviation in milliseconds

        Raises:
            ValueError: Mean or deviation is negative
        """
        if mean < 0 or deviation < 0:
            raise ValueError(f"Think time must be non-negative, got mean={mean}, deviation={deviation}")

        self.timer_name = name
        self.comment = comment
        self.enabled = enabled
        self.mean = mean
        self.deviation = deviation

    def _modify(self, tree: TestPlanTree, factory: "TestPlanElementFactory") -> None:
        samplers = tree.find_all(test_class=HTTP_SAMPLER)
        for sampler in samplers:
            timer = factory.create_gaussian_random_timer(
                name=self.timer_name,
                comment=self.comment,
                enabled=self.enabled,
                delay=str(round(self.mean)),
                range=str(round(self.deviation)),
            )
            sampler.add_child(timer, index=0)
        logger.debug("Added think time timers to %d HTTP samplers", len(samplers))


def create_filters(
    flags: str,
    think_time_mean: float = 300,
    think_time_deviation: float = 100,
) -> list[AbstractFilter]:
    """Create the filters activated by flags, in flag order.

    Args:
        flags: Activation flags, e.g. "HG" (case-insensitive, repeats ignored)
        think_time_mean: Mean of the gaussian think time filter (ms)
        think_time_deviation: Deviation of the gaussian think time filter (ms)

    Returns:
        List of filters

    Raises:
        ValueError: Unknown flag
    """
    filters: list[AbstractFilter] = []
    seen: set[str] = set()

    for flag in flags.upper():
        if flag in seen:
            continue
        seen.add(flag)

        if flag == "H":
            filters.append(HeaderDefaultsFilter())
        elif flag == "G":
            filters.append(
                GaussianThinkTimeDistributionFilter(
                    mean=think_time_mean, deviation=think_time_deviation
                )
            )
        else:
            raise ValueError(
                f"Unknown filter flag '{flag}'. Expected one of: {', '.join(FILTER_FLAGS)}"
            )

    return filters
