"""
WiX element tree helpers.

heat.exe emits WiX v3 XML in the http://schemas.microsoft.com/wix/2006/wi
namespace, while the caller's document may use the same namespace, the v4
namespace, or none at all. Lookups here therefore match on local names only.

Usage:
    tree = load_document(Path("Product.wxs"))
    target = TargetContext.from_file_id(tree.getroot(), "CSScriptLibrary.dll")
"""

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional

from comreg.errors import TargetTreeError

logger = logging.getLogger(__name__)

WIX_V3_NAMESPACE = "http://schemas.microsoft.com/wix/2006/wi"


def local_name(tag: str) -> str:
    """Strip the '{namespace}' prefix from an element tag."""
    if isinstance(tag, str) and tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def namespace_of(tag: str) -> Optional[str]:
    """Return the namespace URI of a tag, or None if unqualified."""
    if isinstance(tag, str) and tag.startswith("{"):
        return tag[1:].split("}", 1)[0]
    return None


def qualify(name: str, namespace: Optional[str]) -> str:
    return f"{{{namespace}}}{name}" if namespace else name


def iter_named(element: ET.Element, name: str) -> Iterator[ET.Element]:
    """Yield descendants (and element itself) whose local name is `name`, in document order."""
    for node in element.iter():
        if local_name(node.tag) == name:
            yield node


def find_first(element: ET.Element, name: str) -> Optional[ET.Element]:
    return next(iter_named(element, name), None)


def find_child(element: ET.Element, name: str) -> Optional[ET.Element]:
    """Return the first direct child with the given local name."""
    for child in element:
        if local_name(child.tag) == name:
            return child
    return None


def parent_map(root: ET.Element) -> Dict[ET.Element, ET.Element]:
    return {child: parent for parent in root.iter() for child in parent}


def requalify(element: ET.Element, namespace: Optional[str]) -> ET.Element:
    """Move element and its descendants into `namespace` (in place)."""
    for node in element.iter():
        if isinstance(node.tag, str):
            node.tag = qualify(local_name(node.tag), namespace)
    return element


def load_document(path: Path) -> ET.ElementTree:
    """Parse a .wxs file, keeping its default namespace unprefixed on write."""
    namespace = None
    with open(path, "rb") as f:
        for _, (prefix, uri) in ET.iterparse(f, events=["start-ns"]):
            if prefix == "":
                namespace = uri
                break
    if namespace:
        ET.register_namespace("", namespace)
    return ET.parse(str(path))


def save_document(tree: ET.ElementTree, path: Path) -> None:
    ET.indent(tree, space="    ")
    tree.write(str(path), encoding="utf-8", xml_declaration=True)
    logger.debug("Wrote %s", path)


@dataclass(frozen=True)
class TargetContext:
    """The caller's File element, its Component and that Component's Directory."""

    file: ET.Element
    component: ET.Element
    directory: ET.Element

    @property
    def file_id(self) -> str:
        return self.file.get("Id")

    @property
    def component_id(self) -> str:
        return self.component.get("Id")

    @property
    def directory_id(self) -> str:
        return self.directory.get("Id")

    @property
    def source(self) -> Optional[str]:
        return self.file.get("Source")

    @property
    def namespace(self) -> Optional[str]:
        return namespace_of(self.file.tag)

    @classmethod
    def from_file_element(cls, root: ET.Element, file: ET.Element) -> "TargetContext":
        """Build a context from a File element inside the document rooted at `root`."""
        parents = parent_map(root)

        component = parents.get(file)
        if component is None or local_name(component.tag) != "Component":
            raise TargetTreeError(
                f"File '{file.get('Id')}' is not a direct child of a Component element"
            )
        directory = parents.get(component)
        if directory is None:
            raise TargetTreeError(
                f"Component '{component.get('Id')}' has no parent Directory element"
            )

        context = cls(file=file, component=component, directory=directory)
        for label, value in (
            ("File", context.file_id),
            ("Component", context.component_id),
            (local_name(directory.tag), context.directory_id),
        ):
            if not value:
                raise TargetTreeError(f"{label} element has no Id attribute")
        return context

    @classmethod
    def from_file_id(cls, root: ET.Element, file_id: str) -> "TargetContext":
        for file in iter_named(root, "File"):
            if file.get("Id") == file_id:
                return cls.from_file_element(root, file)
        raise TargetTreeError(f"No File element with Id '{file_id}'")
