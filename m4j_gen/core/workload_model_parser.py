"""Parser for workload model files.

This module reads workload models (behavior models, behavior mix and
workload intensity) from YAML files and converts them into the
dataclasses of ``m4j_gen.core.model``. Probabilities are taken as they
are; checking that they form valid distributions is up to the producer
of the model.
"""

import math
from pathlib import Path
from typing import Any, Optional

import yaml

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
from m4j_gen.exceptions import InputUnreadableException, ModelLoadException

# Supported HTTP methods for "METHOD /path" request shorthand
HTTP_METHODS = {"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"}


class WorkloadModelParser:
    """Parse workload model YAML files.

    Example:
        >>> parser = WorkloadModelParser()
        >>> model = parser.parse("workload.yaml")
        >>> print(model.behavior_models[0].name)
        'Browser'

    File layout::

        name: Shop Workload
        base_url: http://localhost:8080
        workload_intensity: {type: constant, formula: "10"}
        behavior_mix:
          - {behavior_model: Browser, frequency: 0.7}
        behavior_models:
          - name: Browser
            initial_state: Home
            states:
              - name: Home
                requests: ["GET /home"]
                transitions:
                  - {to: Home, probability: 0.4, think_time: {mean: 300}}
                  - {to: $, probability: 0.6}
    """

    def __init__(self) -> None:
        """Initialize workload model parser."""
        pass

    def parse(self, model_path: str) -> WorkloadModel:
        """Parse workload model file and return structured data.

        Args:
            model_path: Path to the YAML workload model

        Returns:
            WorkloadModel instance with all model data

        Raises:
            InputUnreadableException: File is missing or cannot be read
            ModelLoadException: YAML parsing fails or fields are invalid
        """
        path = Path(model_path)

        if not path.is_file():
            raise InputUnreadableException(f"Workload model file not found: {model_path}")

        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, UnicodeDecodeError) as e:
            raise InputUnreadableException(
                f"Could not read workload model file {model_path}: {e}"
            ) from e
        except yaml.YAMLError as e:
            raise ModelLoadException(f"Invalid YAML syntax in {model_path}: {e}") from e

        if not isinstance(data, dict):
            raise ModelLoadException(
                f"Invalid workload model format in {model_path}: expected dictionary"
            )

        return self.parse_dict(data, model_path)

    def parse_dict(self, data: dict[str, Any], source: str = "<dict>") -> WorkloadModel:
        """Build a WorkloadModel from already loaded data.

        Args:
            data: Mapping in workload model file layout
            source: Name of the origin, used in error messages

        Returns:
            WorkloadModel instance

        Raises:
            ModelLoadException: Required fields are missing or invalid
        """
        if "name" not in data:
            raise ModelLoadException(f"Missing required field 'name' in {source}")

        models_data = data.get("behavior_models")
        if not isinstance(models_data, list) or not models_data:
            raise ModelLoadException(
                f"Invalid 'behavior_models' in {source}: expected non-empty list"
            )

        variables = data.get("variables", {})
        if not isinstance(variables, dict):
            raise ModelLoadException(f"Invalid 'variables' in {source}: expected dictionary")

        base_url = data.get("base_url")

        return WorkloadModel(
            name=str(data["name"]),
            behavior_models=[
                self._parse_behavior_model(m, i, source) for i, m in enumerate(models_data, start=1)
            ],
            behavior_mix=self._parse_behavior_mix(data.get("behavior_mix", []), source),
            workload_intensity=self._parse_intensity(data.get("workload_intensity"), source),
            base_url=str(base_url) if base_url else None,
            variables=variables,
        )

    def _parse_intensity(self, intensity_data: Any, source: str) -> WorkloadIntensity:
        """Parse workload intensity section."""
        if intensity_data is None:
            return WorkloadIntensity()

        # Shorthand: a plain number of sessions
        if isinstance(intensity_data, (int, str)) and not isinstance(intensity_data, bool):
            return WorkloadIntensity(formula=str(intensity_data))

        if not isinstance(intensity_data, dict):
            raise ModelLoadException(
                f"Invalid 'workload_intensity' in {source}: expected dictionary or number"
            )

        return WorkloadIntensity(
            type=str(intensity_data.get("type", "constant")),
            formula=str(intensity_data.get("formula", "1")),
        )

    def _parse_behavior_mix(self, mix_data: Any, source: str) -> list[BehaviorMixEntry]:
        """Parse behavior mix section (list of entries or name -> frequency map)."""
        if not mix_data:
            return []

        if isinstance(mix_data, dict):
            mix_data = [
                {"behavior_model": name, "frequency": frequency}
                for name, frequency in mix_data.items()
            ]

        if not isinstance(mix_data, list):
            raise ModelLoadException(f"Invalid 'behavior_mix' in {source}: expected list")

        entries = []
        for i, entry in enumerate(mix_data, start=1):
            if not isinstance(entry, dict) or "behavior_model" not in entry:
                raise ModelLoadException(
                    f"Invalid behavior mix entry {i} in {source}: 'behavior_model' required"
                )
            entries.append(
                BehaviorMixEntry(
                    behavior_model=str(entry["behavior_model"]),
                    frequency=self._parse_number(
                        entry.get("frequency"), f"behavior mix entry {i}", source
                    ),
                )
            )
        return entries

    def _parse_behavior_model(self, model_data: Any, index: int, source: str) -> BehaviorModel:
        """Parse a single behavior model."""
        if not isinstance(model_data, dict):
            raise ModelLoadException(
                f"Invalid behavior model {index} in {source}: expected dictionary"
            )

        if "name" not in model_data:
            raise ModelLoadException(f"Missing 'name' in behavior model {index} of {source}")

        name = str(model_data["name"])
        states_data = model_data.get("states")
        if not isinstance(states_data, list) or not states_data:
            raise ModelLoadException(
                f"Behavior model '{name}' in {source} must have non-empty 'states' list"
            )

        initial_state = model_data.get("initial_state")

        return BehaviorModel(
            name=name,
            states=[self._parse_state(s, name, source) for s in states_data],
            initial_state=str(initial_state) if initial_state is not None else None,
        )

    def _parse_state(self, state_data: Any, model_name: str, source: str) -> MarkovState:
        """Parse a single state including its requests and transitions."""
        if not isinstance(state_data, dict) or "name" not in state_data:
            raise ModelLoadException(
                f"Invalid state in behavior model '{model_name}' of {source}: "
                f"expected dictionary with 'name'"
            )

        name = str(state_data["name"])
        if name == EXIT_STATE:
            raise ModelLoadException(
                f"State name '{EXIT_STATE}' is reserved for the exit state "
                f"(behavior model '{model_name}' in {source})"
            )

        where = f"state '{name}' of behavior model '{model_name}'"

        requests_data = state_data.get("requests", [])
        if "request" in state_data:
            requests_data = [state_data["request"]]
        if not isinstance(requests_data, list):
            raise ModelLoadException(f"Invalid 'requests' in {where}: expected list")

        transitions_data = state_data.get("transitions", [])
        if not isinstance(transitions_data, list):
            raise ModelLoadException(f"Invalid 'transitions' in {where}: expected list")

        return MarkovState(
            name=name,
            requests=[
                self._parse_request(r, name, i, where)
                for i, r in enumerate(requests_data, start=1)
            ],
            think_time=self._parse_think_time(state_data.get("think_time"), where),
            transitions=[self._parse_transition(t, where, source) for t in transitions_data],
        )

    def _parse_request(self, request_data: Any, state_name: str, index: int, where: str) -> ServiceRequest:
        """Parse a service request given as "METHOD /path" or dictionary."""
        # Requests after the first get a numbered name
        default_name = state_name if index == 1 else f"{state_name} {index}"

        if isinstance(request_data, str):
            method, path = self._parse_endpoint(request_data, where)
            return ServiceRequest(name=default_name, method=method, path=path)

        if not isinstance(request_data, dict):
            raise ModelLoadException(f"Invalid request {index} in {where}")

        method = str(request_data.get("method", "GET")).upper()
        if method not in HTTP_METHODS:
            raise ModelLoadException(
                f"Invalid HTTP method '{method}' in {where}. "
                f"Expected one of: {', '.join(sorted(HTTP_METHODS))}"
            )

        parameters = request_data.get("parameters", {})
        if not isinstance(parameters, dict):
            raise ModelLoadException(f"Invalid 'parameters' of request {index} in {where}")

        port = request_data.get("port")

        return ServiceRequest(
            name=str(request_data.get("name", default_name)),
            method=method,
            path=str(request_data.get("path", "/")),
            parameters=parameters,
            protocol=request_data.get("protocol"),
            domain=request_data.get("domain"),
            port=str(port) if port is not None else None,
        )

    def _parse_endpoint(self, endpoint: str, where: str) -> tuple[str, str]:
        """Split "METHOD /path" into method and path."""
        parts = endpoint.split(" ", 1)

        if len(parts) != 2:
            raise ModelLoadException(
                f"Invalid request '{endpoint}' in {where}: expected 'METHOD /path'"
            )

        method = parts[0].upper()
        path = parts[1].strip()

        if method not in HTTP_METHODS:
            raise ModelLoadException(
                f"Invalid request '{endpoint}' in {where}: "
                f"'{method}' is not a valid HTTP method. "
                f"Expected one of: {', '.join(sorted(HTTP_METHODS))}"
            )
        if not path.startswith("/"):
            raise ModelLoadException(
                f"Invalid path in request '{endpoint}' in {where}: path must start with '/'"
            )
        return method, path

    def _parse_transition(self, transition_data: Any, where: str, source: str) -> Transition:
        """Parse a single outgoing edge."""
        if not isinstance(transition_data, dict) or "to" not in transition_data:
            raise ModelLoadException(
                f"Invalid transition in {where} of {source}: expected dictionary with 'to'"
            )

        guard = transition_data.get("guard")
        action = transition_data.get("action")

        return Transition(
            target=str(transition_data["to"]),
            probability=self._parse_number(
                transition_data.get("probability"), f"transition of {where}", source
            ),
            think_time=self._parse_think_time(transition_data.get("think_time"), where),
            guard=str(guard) if guard is not None else None,
            action=str(action) if action is not None else None,
        )

    def _parse_think_time(self, think_time_data: Any, where: str) -> Optional[ThinkTime]:
        """Parse think time given in milliseconds or as {mean, deviation}."""
        if think_time_data is None:
            return None

        if isinstance(think_time_data, (int, float)) and not isinstance(think_time_data, bool):
            mean, deviation = think_time_data, 0
        elif isinstance(think_time_data, dict) and "mean" in think_time_data:
            mean = think_time_data["mean"]
            deviation = think_time_data.get("deviation", 0)
        else:
            raise ModelLoadException(
                f"Invalid think_time in {where}: expected milliseconds or {{mean, deviation}}"
            )

        try:
            mean, deviation = float(mean), float(deviation)
        except (TypeError, ValueError) as e:
            raise ModelLoadException(f"Invalid think_time in {where}: {e}") from e

        if mean < 0 or deviation < 0:
            raise ModelLoadException(f"Invalid think_time in {where}: must be non-negative")

        return ThinkTime(mean=mean, deviation=deviation)

    def _parse_number(self, value: Any, where: str, source: str) -> float:
        """Convert a probability or frequency to float."""
        if value is None or isinstance(value, bool):
            raise ModelLoadException(f"Missing or invalid number in {where} of {source}")
        try:
            number = float(value)
        except (TypeError, ValueError) as e:
            raise ModelLoadException(f"Invalid number '{value}' in {where} of {source}") from e
        if math.isnan(number):
            raise ModelLoadException(f"Invalid number '{value}' in {where} of {source}")
        return number
