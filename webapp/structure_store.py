"""Persist a WebappStructure between runs as a small XML document."""

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import List, Optional

from loguru import logger
from pydantic import ValidationError

from model.project import Artifact
from webapp.paths import PathSet
from webapp.structure import WebappStructure, dependency_fingerprint

FORMAT_VERSION = "1"

_DEPENDENCY_ATTRIBUTES = {
    "groupId": "group_id",
    "artifactId": "artifact_id",
    "version": "version",
    "type": "type",
    "classifier": "classifier",
    "scope": "scope",
}


class WebappStructureSerializer:
    """Reads and writes the structure cache file.

    A cache whose dependency fingerprint does not match the current dependency
    set keeps its dependency records, so removed libraries can still be
    cleaned up. Its paths are kept aside in ``previous_files`` so the files of
    removed overlays can be deleted, but are not registered: ownership recorded
    against another dependency set is never trusted.
    """

    def to_xml(self, structure: WebappStructure, cache_file: Path) -> None:
        root = ET.Element(
            "webapp-structure",
            {"version": FORMAT_VERSION, "fingerprint": structure.fingerprint},
        )

        dependencies = ET.SubElement(root, "dependencies")
        for info in structure.dependencies_info:
            attributes = {}
            for attribute, field in _DEPENDENCY_ATTRIBUTES.items():
                value = getattr(info.dependency, field)
                if value is not None:
                    attributes[attribute] = str(value)
            attributes["optional"] = str(info.dependency.optional).lower()
            if info.target_file_name:
                attributes["targetFileName"] = info.target_file_name
            ET.SubElement(dependencies, "dependency", attributes)

        registered = ET.SubElement(root, "registered-files")
        for owner in structure.owners:
            owner_element = ET.SubElement(registered, "owner", {"id": owner})
            for path in structure.get_structure(owner):
                ET.SubElement(owner_element, "path").text = path

        tree = ET.ElementTree(root)
        ET.indent(tree)
        cache_file = Path(cache_file)
        cache_file.parent.mkdir(parents=True, exist_ok=True)
        tree.write(cache_file, encoding="utf-8", xml_declaration=True)
        logger.debug(f"Webapp structure saved to {cache_file}")

    def from_xml(self, cache_file: Path, current_dependencies: List[Artifact]) -> Optional[WebappStructure]:
        """Load the cache, or None when it is missing or unreadable."""
        cache_file = Path(cache_file)
        if not cache_file.is_file():
            return None

        try:
            root = ET.parse(cache_file).getroot()
        except ET.ParseError as e:
            logger.debug(f"Ignoring unreadable webapp cache {cache_file}: {e}")
            return None
        if root.tag != "webapp-structure" or root.get("version") != FORMAT_VERSION:
            logger.debug(f"Ignoring webapp cache {cache_file} with unknown format")
            return None

        try:
            structure = WebappStructure(self._read_dependencies(root))
        except ValidationError as e:
            logger.debug(f"Ignoring webapp cache {cache_file} with invalid dependencies: {e}")
            return None
        for element, info in zip(root.iterfind("dependencies/dependency"), structure.dependencies_info):
            info.target_file_name = element.get("targetFileName")

        trusted = root.get("fingerprint") == dependency_fingerprint(current_dependencies)
        if not trusted:
            logger.debug("Dependencies changed since the cache was written, keeping cached paths for cleanup only")

        for owner_element in root.iterfind("registered-files/owner"):
            owner = owner_element.get("id")
            paths = [element.text for element in owner_element.iterfind("path") if element.text]
            if not trusted:
                structure.previous_files[owner] = PathSet(paths)
                continue
            structure.get_structure(owner)
            for path in paths:
                structure.register_path(owner, path)
        return structure

    def _read_dependencies(self, root: ET.Element) -> List[Artifact]:
        return [self._read_dependency(element) for element in root.iterfind("dependencies/dependency")]

    def _read_dependency(self, element: ET.Element) -> Artifact:
        values = {
            field: element.get(attribute)
            for attribute, field in _DEPENDENCY_ATTRIBUTES.items()
            if element.get(attribute) is not None
        }
        values["optional"] = element.get("optional") == "true"
        return Artifact(**values)
