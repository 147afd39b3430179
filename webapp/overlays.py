"""Resolves the ordered list of overlays applied to the webapp."""

from typing import List, Optional

from loguru import logger

from model.overlay import CURRENT_BUILD, Overlay
from model.project import Artifact, MavenProject
from webapp.errors import OverlayConfigurationError

# Dependency types unpacked into the webapp.
ARCHIVE_OVERLAY_TYPES = ("war", "zip")

# Dependency types copied as libraries, with the directory they land in.
LIBRARY_DIRECTORIES = {
    "jar": "WEB-INF/lib/",
    "ejb": "WEB-INF/lib/",
    "ejb-client": "WEB-INF/lib/",
    "test-jar": "WEB-INF/lib/",
    "par": "WEB-INF/lib/",
    "tld": "WEB-INF/tld/",
    "aar": "WEB-INF/services/",
}


def is_overlay_candidate(artifact: Artifact) -> bool:
    """Whether a dependency becomes an implicit overlay when nobody configured it."""
    if not artifact.is_bundled:
        return False
    return artifact.type in ARCHIVE_OVERLAY_TYPES or artifact.type in LIBRARY_DIRECTORIES


class OverlayManager:
    """
    Computes the final overlay order for one packaging run.

    Configured overlays keep their configured order. The current project keeps
    its configured position, or goes first when it is not configured. Every
    bundled war/zip/library dependency not covered by a configured overlay is
    appended as an implicit overlay, in dependency order. Implicit overlays use
    the dependent war patterns, which leave out META-INF by default.
    """

    def __init__(
        self,
        overlays: Optional[List[Overlay]],
        project: MavenProject,
        current_project_overlay: Optional[Overlay] = None,
        dependent_war_includes: Optional[List[str]] = None,
        dependent_war_excludes: Optional[List[str]] = None,
    ):
        self.project = project
        self.dependent_war_includes = dependent_war_includes
        self.dependent_war_excludes = dependent_war_excludes
        self.current_project_overlay = current_project_overlay or Overlay.current_project_instance()
        self._overlays = self._resolve(list(overlays or []))

    @property
    def overlays(self) -> List[Overlay]:
        return list(self._overlays)

    @property
    def overlay_ids(self) -> List[str]:
        return [overlay.get_id() for overlay in self._overlays]

    def _resolve(self, configured: List[Overlay]) -> List[Overlay]:
        self._validate_ids(configured)

        resolved: List[Overlay] = []
        matched: List[Artifact] = []
        current_configured = False
        for overlay in configured:
            if overlay.is_current_project:
                resolved.append(self.current_project_overlay)
                current_configured = True
                continue
            artifact = self._associated_artifact(overlay)
            matched.append(artifact)
            resolved.append(overlay.model_copy(update={"artifact": artifact}))

        if not current_configured:
            resolved.insert(0, self.current_project_overlay)

        for artifact in self.project.artifacts:
            if not is_overlay_candidate(artifact):
                continue
            if any(artifact is other for other in matched):
                continue
            implicit = Overlay.for_artifact(
                artifact, self.dependent_war_includes, self.dependent_war_excludes
            )
            logger.debug(f"Adding implicit {implicit}")
            resolved.append(implicit)

        self._validate_ids(resolved)
        logger.debug(f"Resolved overlays: {[overlay.get_id() for overlay in resolved]}")
        return resolved

    def _validate_ids(self, overlays: List[Overlay]) -> None:
        seen = set()
        for overlay in overlays:
            if overlay is None:
                raise OverlayConfigurationError("Overlay could not be null.", error_code="NULL_OVERLAY")
            overlay_id = overlay.get_id()
            if overlay_id == CURRENT_BUILD and not overlay.is_current_project:
                raise OverlayConfigurationError(
                    f"Overlay id [{CURRENT_BUILD}] is reserved for the current project, "
                    f"it cannot be used by {overlay}.",
                    suggestions=["Pick another id for this overlay or drop the id to use its coordinates"],
                    owner_id=overlay_id,
                    error_code="RESERVED_OVERLAY_ID",
                )
            if overlay_id in seen:
                raise OverlayConfigurationError(
                    f"Found two overlays with the same id [{overlay_id}].",
                    suggestions=["Give each overlay a unique id"],
                    owner_id=overlay_id,
                    error_code="DUPLICATE_OVERLAY_ID",
                )
            seen.add(overlay_id)

    def _associated_artifact(self, overlay: Overlay) -> Artifact:
        if overlay.group_id is None or overlay.artifact_id is None:
            raise OverlayConfigurationError(
                f"Overlay [{overlay.get_id()}] must define both groupId and artifactId "
                f"(groupId={overlay.group_id}, artifactId={overlay.artifact_id}).",
                suggestions=["Set both coordinates, or neither to refer to the current project"],
                owner_id=overlay.get_id(),
                error_code="MISSING_COORDINATES",
            )
        for artifact in self.project.artifacts:
            if overlay.matches(artifact):
                return artifact
        raise OverlayConfigurationError(
            f"Overlay {overlay} is not a dependency of the project.",
            suggestions=[
                "Declare the overlay artifact as a dependency of the project",
                "Check the overlay's type and classifier",
            ],
            owner_id=overlay.get_id(),
            error_code="UNKNOWN_OVERLAY_ARTIFACT",
        )
