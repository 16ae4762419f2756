"""Writer for JMeter JMX files.

This module serializes Test Plan trees into the JMeter save format:
every element is followed by a ``hashTree`` sibling holding its children,
and properties become typed ``stringProp``/``boolProp``/``intProp``/
``doubleProp``/``collectionProp``/``elementProp`` entries.
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Union
from xml.dom import minidom

from m4j_gen.core.test_plan import PropertyValue, TestPlanElement, TestPlanTree
from m4j_gen.exceptions import OutputUnwritableException, ResourceCloseFailure

logger = logging.getLogger(__name__)

# Attributes of the jmeterTestPlan root element
JMX_ROOT_ATTRIBUTES = {"version": "1.2", "properties": "5.0", "jmeter": "5.0"}


@dataclass
class WriteResult:
    """Outcome of a successful write.

    Attributes:
        path: Written file
        warnings: Non-fatal problems (e.g. the file could not be closed)
    """

    path: Path
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"path": str(self.path), "warnings": list(self.warnings)}


class TestPlanWriter:
    """Serialize Test Plan trees into JMX files.

    Output is deterministic: identical trees produce byte-identical files.

    Example:
        >>> writer = TestPlanWriter()
        >>> result = writer.write(tree, "testplan.jmx")
        >>> print(result.path)
    """

    __test__ = False

    def write(self, tree: TestPlanTree, destination: Union[str, Path]) -> WriteResult:
        """Write tree to destination.

        The parent directory must exist. The file is closed on every path;
        a failure to close it after a complete write is only a warning.

        Args:
            tree: Test Plan tree to write
            destination: Output file path

        Returns:
            WriteResult with the path and any warnings

        Raises:
            OutputUnwritableException: The file cannot be opened or the
                tree cannot be serialized into it
        """
        path = Path(destination)
        result = WriteResult(path=path)

        try:
            stream = open(path, "w", encoding="utf-8")
        except OSError as e:
            raise OutputUnwritableException(f'Could not open output file "{path}": {e}') from e

        try:
            self._serialize(tree, stream)
        except Exception as e:
            raise OutputUnwritableException(
                f'Could not write test plan to "{path}": {e}'
            ) from e
        finally:
            warning = self._close(stream, path)

        if warning:
            result.warnings.append(warning)
        return result

    def _close(self, stream: IO[str], path: Path) -> str:
        """Close stream, returning a warning message if that fails."""
        try:
            stream.close()
        except OSError as e:
            failure = ResourceCloseFailure(f'Could not close file-output stream for "{path}": {e}')
            logger.warning("[%s] %s", failure.category, failure)
            return str(failure)
        return ""

    def _serialize(self, tree: TestPlanTree, stream: IO[str]) -> None:
        root = ET.Element("jmeterTestPlan", JMX_ROOT_ATTRIBUTES)
        hash_tree = ET.SubElement(root, "hashTree")
        self._add_element(hash_tree, tree.root)

        document = minidom.parseString(ET.tostring(root, encoding="unicode"))
        document.writexml(stream, addindent="  ", newl="\n", encoding="UTF-8")

    def _add_element(self, hash_tree: ET.Element, element: TestPlanElement) -> None:
        """Append element and its hashTree of children to hash_tree."""
        node = ET.SubElement(
            hash_tree,
            element.test_class,
            {
                "guiclass": element.gui_class,
                "testclass": element.test_class,
                "testname": element.name,
                "enabled": _bool_text(element.enabled),
            },
        )
        for name, value in element.properties.items():
            self._add_property(node, name, value)

        children_tree = ET.SubElement(hash_tree, "hashTree")
        for child in element.children:
            self._add_element(children_tree, child)

    def _add_property(self, parent: ET.Element, name: str, value: PropertyValue) -> None:
        # bool first: bool is a subclass of int
        if isinstance(value, bool):
            ET.SubElement(parent, "boolProp", {"name": name}).text = _bool_text(value)
        elif isinstance(value, int):
            ET.SubElement(parent, "intProp", {"name": name}).text = str(value)
        elif isinstance(value, float):
            double = ET.SubElement(parent, "doubleProp")
            ET.SubElement(double, "name").text = name
            ET.SubElement(double, "value").text = repr(value)
            ET.SubElement(double, "savedValue").text = "0.0"
        elif isinstance(value, str):
            ET.SubElement(parent, "stringProp", {"name": name}).text = value
        elif isinstance(value, list):
            collection = ET.SubElement(parent, "collectionProp", {"name": name})
            for item in value:
                self._add_collection_item(collection, item)
        elif isinstance(value, TestPlanElement):
            self._add_element_property(parent, name, value)
        else:
            raise TypeError(f"Unsupported value type {type(value).__name__} of property '{name}'")

    def _add_collection_item(self, collection: ET.Element, item: PropertyValue) -> None:
        """Add a collection entry, named the way JMeter names them."""
        if isinstance(item, TestPlanElement):
            self._add_element_property(collection, item.name, item)
        elif isinstance(item, list):
            self._add_property(collection, str(_java_list_hash(item)), item)
        else:
            self._add_property(collection, str(_java_hash(_item_text(item))), item)

    def _add_element_property(self, parent: ET.Element, name: str, element: TestPlanElement) -> None:
        attributes = {"name": name, "elementType": element.test_class}
        if element.gui_class:
            attributes.update(
                {
                    "guiclass": element.gui_class,
                    "testclass": element.test_class,
                    "testname": element.name,
                    "enabled": _bool_text(element.enabled),
                }
            )
        node = ET.SubElement(parent, "elementProp", attributes)
        for property_name, value in element.properties.items():
            self._add_property(node, property_name, value)


def _bool_text(value: bool) -> str:
    return "true" if value else "false"


def _item_text(item: PropertyValue) -> str:
    if isinstance(item, bool):
        return _bool_text(item)
    return repr(item) if isinstance(item, float) else str(item)


def _java_hash(text: str) -> int:
    """Java String.hashCode() of text (signed 32 bit)."""
    data = text.encode("utf-16-be")
    h = 0
    for i in range(0, len(data), 2):
        h = (31 * h + int.from_bytes(data[i:i + 2], "big")) & 0xFFFFFFFF
    return h - (1 << 32) if h >= (1 << 31) else h


def _java_list_hash(items: list) -> int:
    """Java List.hashCode() of a list of strings and nested lists."""
    h = 1
    for item in items:
        item_hash = _java_list_hash(item) if isinstance(item, list) else _java_hash(_item_text(item))
        h = (31 * h + item_hash) & 0xFFFFFFFF
    return h - (1 << 32) if h >= (1 << 31) else h
