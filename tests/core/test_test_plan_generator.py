"""Unit tests for TestPlanGenerator."""

import logging
import threading
from pathlib import Path

import pytest

from m4j_gen.core.filters import HeaderDefaultsFilter
from m4j_gen.core.test_plan_generator import GenerationStatus, GeneratorState, TestPlanGenerator
from m4j_gen.core.transformer import SimpleTestPlanTransformer
from m4j_gen.exceptions import ModelLoadException


@pytest.fixture
def generator():
    return TestPlanGenerator()


@pytest.fixture
def initialized(generator, generator_properties, testplan_properties):
    """Generator initialized with the bundled Test Plan defaults."""
    assert generator.init(generator_properties, testplan_properties) is True
    return generator


def _errors(caplog) -> list[str]:
    return [r.getMessage() for r in caplog.records if r.levelno == logging.ERROR]


class TestInit:
    """Tests for TestPlanGenerator.init()."""

    def test_init_success(self, generator, generator_properties, testplan_properties, caplog):
        """Test a complete configuration."""
        caplog.set_level(logging.INFO)

        assert generator.is_initialized() is False
        assert generator.init(generator_properties, testplan_properties) is True

        assert generator.is_initialized() is True
        assert generator.state is GeneratorState.INITIALIZED
        assert generator.element_factory.forced is True
        assert generator.engine.enabled is False
        assert "successfully initialized" in caplog.text

    def test_missing_generator_properties(self, generator, temp_dir: Path, testplan_properties, caplog):
        """Test init fails without generator properties and keeps nothing."""
        assert generator.init(temp_dir / "missing.properties", testplan_properties) is False

        assert generator.is_initialized() is False
        assert generator.element_factory is None
        assert generator.configuration is None
        assert len(_errors(caplog)) == 1
        assert _errors(caplog)[0].startswith("[ConfigError]")

    def test_missing_testplan_properties(self, generator, generator_properties, temp_dir: Path, caplog):
        assert generator.init(generator_properties, temp_dir / "missing.properties") is False

        assert generator.is_initialized() is False
        assert "Could not find configuration file" in caplog.text

    def test_undefined_paths(self, generator):
        assert generator.init(None, None) is False

    def test_forced_mode_requires_generator_keys(self, generator, temp_dir: Path, testplan_properties, caplog):
        """Test forced mode needs every generator property."""
        path = temp_dir / "generator.properties"
        path.write_text("useForcedArguments = true\n", encoding="utf-8")

        assert generator.init(path, testplan_properties) is False
        assert "jmeter_home" in caplog.text

    def test_lenient_mode(self, generator, temp_dir: Path, testplan_properties):
        """Test lenient mode accepts missing generator keys."""
        path = temp_dir / "generator.properties"
        path.write_text("useForcedArguments = false\n", encoding="utf-8")

        assert generator.init(path, testplan_properties) is True
        assert generator.element_factory.forced is False

    def test_bad_jmeter_home(self, generator, temp_dir: Path, testplan_properties, caplog):
        path = temp_dir / "generator.properties"
        path.write_text(
            f"useForcedArguments = false\njmeter_home = {temp_dir / 'nowhere'}\n",
            encoding="utf-8",
        )

        assert generator.init(path, testplan_properties) is False
        assert "[EngineError]" in caplog.text

    def test_failed_reinit_discards_previous(self, initialized, temp_dir: Path, testplan_properties):
        """Test a failed init() leaves the generator uninitialized."""
        assert initialized.init(temp_dir / "missing.properties", testplan_properties) is False

        assert initialized.is_initialized() is False
        assert initialized.state is GeneratorState.UNINITIALIZED


class TestGenerate:
    """Tests for TestPlanGenerator.generate() and generate_from_file()."""

    def test_generate(self, initialized, shop_model, temp_dir: Path):
        """Test a complete generation."""
        output = temp_dir / "shop.jmx"

        tree = initialized.generate(shop_model, SimpleTestPlanTransformer(), [HeaderDefaultsFilter()], output)

        assert tree is not None
        assert output.exists()
        assert tree.find_all(test_class="HeaderManager")
        assert initialized.state is GeneratorState.INITIALIZED

    def test_generate_uninitialized(self, generator, shop_model, temp_dir: Path, caplog):
        """Test generation before init() is reported."""
        tree = generator.generate(shop_model, SimpleTestPlanTransformer(), [], temp_dir / "out.jmx")

        assert tree is None
        assert _errors(caplog) == ["[GeneratorError] Test Plan Generator has not been initialized"]
        assert not (temp_dir / "out.jmx").exists()

    def test_unwritable_output(self, initialized, two_edge_model, temp_dir: Path, caplog):
        """Test exactly one IOError report, and the generator stays usable."""
        transformer = SimpleTestPlanTransformer()

        tree = initialized.generate(two_edge_model, transformer, [], temp_dir / "missing" / "out.jmx")

        errors = _errors(caplog)
        assert tree is None
        assert len(errors) == 1
        assert errors[0].startswith("[IOError]")
        assert "Could not open output file" in errors[0]

        assert initialized.generate(two_edge_model, transformer, [], temp_dir / "out.jmx") is not None

    def test_transformation_failure(self, initialized, temp_dir: Path, caplog):
        """Test unmappable models are reported as TransformationError."""
        model = initialized._parser.parse_dict(  # noqa: SLF001
            {
                "name": "Broken",
                "behavior_models": [
                    {"name": "U", "states": [{"name": "A", "transitions": [{"to": "B", "probability": 1}]}]}
                ],
            }
        )

        assert initialized.generate(model, SimpleTestPlanTransformer(), [], temp_dir / "out.jmx") is None
        assert _errors(caplog)[0].startswith("[TransformationError]")
        assert not (temp_dir / "out.jmx").exists()

    def test_repeated_calls_are_independent(self, initialized, two_edge_model, temp_dir: Path):
        """Test each call builds its own tree."""
        transformer = SimpleTestPlanTransformer()

        first = initialized.generate(two_edge_model, transformer, [], temp_dir / "a.jmx")
        second = initialized.generate(two_edge_model, transformer, [], temp_dir / "b.jmx")

        assert first == second
        assert first is not second
        assert (temp_dir / "a.jmx").read_bytes() == (temp_dir / "b.jmx").read_bytes()

    def test_generate_from_file(self, initialized, shop_model_file: Path, temp_dir: Path):
        output = temp_dir / "shop.jmx"

        tree = initialized.generate_from_file(shop_model_file, output, SimpleTestPlanTransformer(), [])

        assert tree is not None
        assert tree.root.name == "Shop Workload"
        assert output.exists()

    def test_generate_from_missing_file(self, initialized, temp_dir: Path, caplog):
        """Test an unreadable input file is reported, not raised."""
        tree = initialized.generate_from_file(
            temp_dir / "missing.yaml", temp_dir / "out.jmx", SimpleTestPlanTransformer(), []
        )

        assert tree is None
        assert _errors(caplog)[0].startswith("[IOError]")

    def test_generate_from_invalid_model(self, initialized, temp_dir: Path):
        """Test invalid model content propagates."""
        path = temp_dir / "model.yaml"
        path.write_text("name: Broken\n", encoding="utf-8")

        with pytest.raises(ModelLoadException):
            initialized.generate_from_file(path, temp_dir / "out.jmx", SimpleTestPlanTransformer(), [])

    def test_generate_from_file_uninitialized(self, generator, shop_model_file: Path, temp_dir: Path):
        tree = generator.generate_from_file(
            shop_model_file, temp_dir / "out.jmx", SimpleTestPlanTransformer(), []
        )

        assert tree is None
        assert generator.state is GeneratorState.UNINITIALIZED


class TestExecute:
    """Tests for the per-call GenerationResult."""

    def test_success_result(self, initialized, two_edge_model, temp_dir: Path):
        output = temp_dir / "out.jmx"

        result = initialized.execute(two_edge_model, SimpleTestPlanTransformer(), [], output)

        assert result.success is True
        assert result.status is GenerationStatus.GENERATED
        assert result.path == output
        assert result.error is None
        assert result.to_dict()["elements"] == result.tree.count()

    def test_failure_result(self, initialized, two_edge_model, temp_dir: Path):
        result = initialized.execute(
            two_edge_model, SimpleTestPlanTransformer(), [], temp_dir / "missing" / "out.jmx"
        )

        assert result.success is False
        assert result.tree is None
        assert result.error.category == "IOError"
        assert result.to_dict()["error"].startswith("[IOError] Could not open output file")

    def test_failure_does_not_touch_generator(self, initialized, two_edge_model, temp_dir: Path):
        """Test a failed call leaves the generator initialized."""
        initialized.execute(two_edge_model, SimpleTestPlanTransformer(), [], temp_dir / "missing" / "out.jmx")

        assert initialized.state is GeneratorState.INITIALIZED

    def test_execute_file_missing_input(self, initialized, temp_dir: Path):
        result = initialized.execute_file(
            temp_dir / "missing.yaml", temp_dir / "out.jmx", SimpleTestPlanTransformer(), []
        )

        assert result.status is GenerationStatus.FAILED
        assert result.error.category == "IOError"

    def test_execute_uninitialized(self, generator, two_edge_model, temp_dir: Path):
        result = generator.execute(two_edge_model, SimpleTestPlanTransformer(), [], temp_dir / "out.jmx")

        assert result.status is GenerationStatus.FAILED
        assert result.error.category == "GeneratorError"
        assert generator.state is GeneratorState.UNINITIALIZED

    def test_concurrent_calls_keep_own_outcome(self, initialized, two_edge_model, shop_model, temp_dir: Path):
        """Test a failing call and a succeeding call on one generator in parallel."""
        barrier = threading.Barrier(2)
        results = {}

        def run(key, model, output):
            barrier.wait()
            for _ in range(20):
                results.setdefault(key, []).append(
                    initialized.execute(model, SimpleTestPlanTransformer(), [], output)
                )

        threads = [
            threading.Thread(target=run, args=("bad", two_edge_model, temp_dir / "missing" / "out.jmx")),
            threading.Thread(target=run, args=("good", shop_model, temp_dir / "shop.jmx")),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert all(r.status is GenerationStatus.FAILED for r in results["bad"])
        assert all(r.status is GenerationStatus.GENERATED for r in results["good"])
        assert all(r.tree.root.name == "Shop Workload" for r in results["good"])
        assert initialized.state is GeneratorState.INITIALIZED
