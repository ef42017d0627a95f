"""
Reconcile heat.exe output with the caller's WiX tree.

heat.exe invents its own identifiers (filXXXX, cmpXXXX, dirXXXX) and uses them
both as Id attributes and inside formatted values such as "[#filXXXX]". Before
the harvested registry entries can be moved into the caller's document, every
occurrence must be renamed to the Id the build already assigned.
"""

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from comreg.errors import ReconcileError
from comreg.utils.wix import (
    TargetContext,
    find_child,
    find_first,
    parent_map,
    requalify,
)

logger = logging.getLogger(__name__)


@dataclass
class ExtractionResult:
    """Registry content harvested for one file, already renamed to the caller's ids."""

    file_children: List[ET.Element] = field(default_factory=list)
    component_children: List[ET.Element] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.file_children and not self.component_children


def rename_identifiers(element: ET.Element, mapping: Dict[str, str]) -> int:
    """
    Rename identifiers throughout a subtree, in place.

    Every attribute value and text node under `element` is rewritten in a single
    pass. Longer identifiers are matched first and replaced text is never
    rescanned, so one generated id being a substring of another (or of a
    caller id) cannot corrupt the result.

    Returns:
        Number of substitutions made
    """
    identifiers = sorted(
        (old for old, new in mapping.items() if old and old != new),
        key=len,
        reverse=True,
    )
    if not identifiers:
        return 0

    pattern = re.compile("|".join(re.escape(old) for old in identifiers))
    count = 0

    def substitute(value: str) -> str:
        nonlocal count
        renamed, n = pattern.subn(lambda m: mapping[m.group(0)], value)
        count += n
        return renamed

    for node in element.iter():
        for name, value in list(node.attrib.items()):
            node.set(name, substitute(value))
        if node.text:
            node.text = substitute(node.text)
        if node.tail:
            node.tail = substitute(node.tail)

    return count


def _detached(children: List[ET.Element], namespace: Optional[str]) -> List[ET.Element]:
    for child in children:
        child.tail = None
        requalify(child, namespace)
    return children


def reconcile(output_path: Path, target: TargetContext) -> ExtractionResult:
    """
    Read a heat.exe fragment and extract its registry content for `target`.

    The first Component in document order is used; its parent is the generated
    Directory and its File child the generated File.

    Raises:
        ReconcileError: Output is not XML, or lacks the Component/File structure
    """
    try:
        root = ET.parse(str(output_path)).getroot()
    except (ET.ParseError, OSError) as e:
        raise ReconcileError(f"Cannot read heat.exe output {output_path}: {e}")

    component = find_first(root, "Component")
    if component is None:
        raise ReconcileError(f"No Component element in heat.exe output {output_path}")

    directory = parent_map(root).get(component)
    if directory is None:
        raise ReconcileError(f"Component has no parent element in {output_path}")

    file = find_child(component, "File")
    if file is None:
        raise ReconcileError(f"Component has no File element in {output_path}")

    mapping: Dict[str, str] = {}
    for generated, assigned in (
        (file.get("Id"), target.file_id),
        (component.get("Id"), target.component_id),
        (directory.get("Id"), target.directory_id),
    ):
        if generated:
            mapping.setdefault(generated, assigned)

    renamed = rename_identifiers(directory, mapping)
    logger.debug("Renamed %d heat.exe identifier occurrences: %s", renamed, mapping)

    component.remove(file)

    return ExtractionResult(
        file_children=_detached(list(file), target.namespace),
        component_children=_detached(list(component), target.namespace),
    )
