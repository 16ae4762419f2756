"""Shared pytest fixtures for all tests."""

import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
import yaml

from m4j_gen.core.configuration import Configuration
from m4j_gen.core.element_factory import TestPlanElementFactory
from m4j_gen.core.model import WorkloadModel
from m4j_gen.core.workload_model_parser import WorkloadModelParser

CONFIGURATION_DIR = Path(__file__).parent.parent / "m4j_gen" / "configuration"

SHOP_MODEL = """name: Shop Workload
base_url: http://shop.example.com:8080
workload_intensity:
  type: constant
  formula: "5"
behavior_mix:
  - behavior_model: Browser
    frequency: 0.7
  - behavior_model: Buyer
    frequency: 0.3
variables:
  category: books
behavior_models:
  - name: Browser
    initial_state: Home
    states:
      - name: Home
        requests: ["GET /home"]
        transitions:
          - {to: Search, probability: 0.5, think_time: {mean: 1000, deviation: 200}}
          - {to: $, probability: 0.5}
      - name: Search
        request:
          method: GET
          path: /search
          parameters: {q: "${category}"}
        think_time: 500
        transitions:
          - {to: Home, probability: 0.33}
          - {to: Search, probability: 0.33}
          - {to: $, probability: 0.33}
  - name: Buyer
    states:
      - name: Login
        requests:
          - POST /login
          - GET /account
        transitions:
          - {to: Checkout, probability: 1.0, guard: "loggedIn", action: "cart = []"}
      - name: Checkout
        requests: ["POST /checkout"]
"""

TWO_EDGE_MODEL = """name: Two Edges
workload_intensity: 1
behavior_models:
  - name: Visitor
    states:
      - name: Home
        requests: ["GET /"]
        transitions:
          - {to: Home, probability: 0.7}
          - {to: $, probability: 0.3}
"""


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing.

    Yields:
        Path object pointing to temporary directory
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def shop_model_file(temp_dir: Path) -> Path:
    """Write the shop workload model (two behavior models) to a file."""
    path = temp_dir / "shop.yaml"
    path.write_text(SHOP_MODEL, encoding="utf-8")
    return path


@pytest.fixture
def shop_model() -> WorkloadModel:
    """Parsed shop workload model."""
    return WorkloadModelParser().parse_dict(yaml.safe_load(SHOP_MODEL), "shop")


@pytest.fixture
def two_edge_model() -> WorkloadModel:
    """One user type, one state with two edges of probability 0.7/0.3."""
    return WorkloadModelParser().parse_dict(yaml.safe_load(TWO_EDGE_MODEL), "two-edges")


@pytest.fixture
def testplan_properties() -> Path:
    """Bundled Test Plan default properties."""
    return CONFIGURATION_DIR / "testplan.default.properties"


@pytest.fixture
def generator_properties(temp_dir: Path) -> Path:
    """Generator properties in forced-argument mode, without JMeter home."""
    path = temp_dir / "generator.properties"
    path.write_text(
        "useForcedArguments = true\n"
        "jmeter_home =\n"
        "jmeter_properties =\n"
        "jmeter_languageTag = en\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def forced_factory(testplan_properties: Path) -> TestPlanElementFactory:
    """Factory in forced-argument mode with all defaults defined."""
    return TestPlanElementFactory(Configuration.load(testplan_properties), forced=True)


@pytest.fixture
def lenient_factory() -> TestPlanElementFactory:
    """Factory in lenient mode without any defaults."""
    return TestPlanElementFactory(Configuration(), forced=False)
