"""Overlay: one source of webapp content merged into the assembled directory."""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from model.project import Artifact
from webapp.paths import split_patterns

CURRENT_BUILD = "currentBuild"

DEFAULT_INCLUDES = ["**/**"]
DEFAULT_EXCLUDES = ["META-INF/MANIFEST.MF"]

# Patterns of implicit war/zip overlays.
DEPENDENT_WAR_INCLUDES = ["**/**"]
DEPENDENT_WAR_EXCLUDES = ["META-INF/**"]


class Overlay(BaseModel):
    """
    Describes the current project or a dependency archive merged into the webapp.

    An overlay without ``group_id`` and ``artifact_id`` stands for the project
    being built. Dependency overlays are matched against the project's
    artifacts by group, artifact, type and classifier.
    """

    id: Optional[str] = Field(default=None)
    group_id: Optional[str] = Field(default=None)
    artifact_id: Optional[str] = Field(default=None)
    classifier: Optional[str] = Field(default=None)
    type: str = Field(default="war")
    includes: List[str] = Field(default_factory=lambda: list(DEFAULT_INCLUDES))
    excludes: List[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDES))
    filtered: bool = Field(default=False)
    skip: bool = Field(default=False)
    target_path: Optional[str] = Field(default=None)

    # Set during resolution
    artifact: Optional[Artifact] = Field(default=None)
    implicit: bool = Field(default=False)

    @field_validator("includes", "excludes", mode="before")
    @classmethod
    def _split_patterns(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return split_patterns(value)
        return value

    @property
    def is_current_project(self) -> bool:
        return self.group_id is None and self.artifact_id is None

    def get_id(self) -> str:
        """Configured id, else groupId:artifactId[:classifier], else the current build id."""
        if self.id:
            return self.id
        if self.is_current_project:
            return CURRENT_BUILD
        result = f"{self.group_id}:{self.artifact_id}"
        if self.classifier:
            result += f":{self.classifier}"
        return result

    def normalized_target_path(self) -> Optional[str]:
        """Target path as a ``dir/`` prefix, or None for the webapp root."""
        if not self.target_path:
            return None
        target = self.target_path.replace("\\", "/").strip("/")
        if target in ("", "."):
            return None
        return target + "/"

    def matches(self, artifact: Artifact) -> bool:
        return (
            self.group_id == artifact.group_id
            and self.artifact_id == artifact.artifact_id
            and self.type == artifact.type
            and (self.classifier or None) == (artifact.classifier or None)
        )

    @classmethod
    def current_project_instance(cls) -> "Overlay":
        return cls(id=CURRENT_BUILD)

    @classmethod
    def for_artifact(
        cls,
        artifact: Artifact,
        includes: Optional[List[str]] = None,
        excludes: Optional[List[str]] = None,
    ) -> "Overlay":
        """Implicit overlay for a dependency nobody configured.

        Archive content is filtered with *includes* and *excludes*, which default
        to everything but META-INF.
        """
        overlay_id = None
        if artifact.type != "war":
            # keeps a library and a war of the same coordinates apart
            overlay_id = f"{artifact.group_id}:{artifact.artifact_id}"
            if artifact.classifier:
                overlay_id += f":{artifact.classifier}"
            overlay_id += f":{artifact.type}"
        return cls(
            id=overlay_id,
            group_id=artifact.group_id,
            artifact_id=artifact.artifact_id,
            classifier=artifact.classifier,
            type=artifact.type,
            includes=list(DEPENDENT_WAR_INCLUDES if includes is None else includes),
            excludes=list(DEPENDENT_WAR_EXCLUDES if excludes is None else excludes),
            artifact=artifact,
            implicit=True,
        )

    def __str__(self) -> str:
        if self.is_current_project:
            return f"overlay[{CURRENT_BUILD}]"
        parts = [self.type, str(self.group_id), str(self.artifact_id)]
        if self.classifier:
            parts.append(self.classifier)
        if self.artifact is not None:
            parts.append(self.artifact.version)
        return f"overlay[{self.get_id()}] " + ":".join(parts)
