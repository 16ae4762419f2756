"""Export of behavior models as Markov4JMeter CSV matrices.

Every behavior model becomes one ``<name>.csv`` file holding its
transition matrix. The first row lists the target states, the initial
state marked with ``*`` and the exit state ``$`` last; every following
row starts with a source state and holds one ``p; n(mean deviation)``
cell per target::

    ,Home*,Search,$
    Home,0; n(0 0),0.7; n(300 100),0.3; n(0 0)
    Search,0.5; n(0 0),0; n(0 0),0.5; n(0 0)
"""

import csv
import logging
import re
from collections.abc import Sequence
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from m4j_gen.core.model import EXIT_STATE, BehaviorModel, ThinkTime
from m4j_gen.core.transformer import normalize_weights
from m4j_gen.exceptions import OutputUnwritableException

logger = logging.getLogger(__name__)

# Marks the initial state in the header row
INITIAL_STATE_MARKER = "*"

# Characters kept in file names derived from behavior model names
_UNSAFE_FILE_NAME_CHARACTERS = re.compile(r"[^A-Za-z0-9._-]+")


class LineBreakType(str, Enum):
    """Line break written after every CSV row."""

    UNIX = "unix"
    WINDOWS = "windows"
    MAC = "mac"

    @property
    def terminator(self) -> str:
        return {"unix": "\n", "windows": "\r\n", "mac": "\r"}[self.value]


def behavior_file_name(behavior_model: BehaviorModel) -> str:
    """Return the CSV file name of a behavior model."""
    stem = _UNSAFE_FILE_NAME_CHARACTERS.sub("_", behavior_model.name).strip("_") or "behavior_model"
    return f"{stem}.csv"


class BehaviorModelCSVWriter:
    """Write behavior models as transition matrices.

    Probabilities are normalized per state like the weights of the
    generated selection controllers; edges to the same target are summed
    and keep the think time of the first of them. A state without
    outgoing edges moves to ``$`` with probability 1.

    Example:
        >>> writer = BehaviorModelCSVWriter(LineBreakType.WINDOWS)
        >>> paths = writer.write_all(workload_model.behavior_models, "out/")
    """

    def __init__(self, line_break_type: Union[LineBreakType, str] = LineBreakType.UNIX) -> None:
        self.line_break_type = LineBreakType(line_break_type)

    def rows(self, behavior_model: BehaviorModel) -> list[list[str]]:
        """Build the matrix of a behavior model, header row first."""
        names = [state.name for state in behavior_model.states]
        header = [""] + [
            name + INITIAL_STATE_MARKER if name == behavior_model.entry_state else name
            for name in names
        ] + [EXIT_STATE]

        rows = [header]
        for state in behavior_model.states:
            cells: dict[str, tuple[float, Optional[ThinkTime]]] = {}
            if state.transitions:
                weights = normalize_weights(
                    [t.probability for t in state.transitions],
                    behavior_model=behavior_model.name,
                    state=state.name,
                )
                for transition, weight in zip(state.transitions, weights):
                    previous, think_time = cells.get(transition.target, (0.0, transition.think_time))
                    cells[transition.target] = (previous + weight, think_time)
            else:
                cells[EXIT_STATE] = (1.0, None)

            rows.append(
                [state.name] + [_cell(*cells.get(target, (0.0, None))) for target in names + [EXIT_STATE]]
            )

        return rows

    def write(self, behavior_model: BehaviorModel, destination: Union[str, Path]) -> Path:
        """Write the matrix of one behavior model to destination.

        Raises:
            OutputUnwritableException: The file cannot be written
        """
        path = Path(destination)
        rows = self.rows(behavior_model)
        try:
            with open(path, "w", encoding="utf-8", newline="") as stream:
                csv.writer(stream, lineterminator=self.line_break_type.terminator).writerows(rows)
        except OSError as e:
            raise OutputUnwritableException(
                f'Could not write behavior model "{behavior_model.name}" to "{path}": {e}'
            ) from e

        logger.debug("Behavior model '%s' written to %s", behavior_model.name, path)
        return path

    def write_all(
        self, behavior_models: Sequence[BehaviorModel], directory: Union[str, Path]
    ) -> list[Path]:
        """Write one file per behavior model into an existing directory.

        Raises:
            OutputUnwritableException: The directory does not exist, two
                models map onto the same file name, or a file cannot be
                written
        """
        directory = Path(directory)
        if not directory.is_dir():
            raise OutputUnwritableException(f'Behavior models output path "{directory}" is not a directory')

        targets: dict[str, BehaviorModel] = {}
        for behavior_model in behavior_models:
            file_name = behavior_file_name(behavior_model)
            if file_name in targets:
                raise OutputUnwritableException(
                    f"Behavior models '{targets[file_name].name}' and '{behavior_model.name}' "
                    f'would both be written to "{file_name}"'
                )
            targets[file_name] = behavior_model

        return [self.write(model, directory / file_name) for file_name, model in targets.items()]


def _cell(probability: float, think_time: Optional[ThinkTime]) -> str:
    mean, deviation = (think_time.mean, think_time.deviation) if think_time else (0, 0)
    return f"{_number(probability)}; n({_number(mean)} {_number(deviation)})"


def _number(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)
