"""Project model handed over by the build: coordinates, resolved artifacts, resources."""

import json
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from webapp.paths import split_patterns

SCOPE_COMPILE = "compile"
SCOPE_PROVIDED = "provided"
SCOPE_RUNTIME = "runtime"
SCOPE_TEST = "test"
SCOPE_SYSTEM = "system"

# Archive extension used for each dependency type.
TYPE_EXTENSIONS = {
    "ejb": "jar",
    "ejb-client": "jar",
    "test-jar": "jar",
    "java-source": "jar",
    "javadoc": "jar",
}


class Artifact(BaseModel):
    """A resolved dependency artifact with its local file."""

    group_id: str
    artifact_id: str
    version: str
    type: str = Field(default="jar")
    classifier: Optional[str] = Field(default=None)
    scope: str = Field(default=SCOPE_COMPILE)
    optional: bool = Field(default=False)
    file: Optional[Path] = Field(default=None)

    @property
    def extension(self) -> str:
        return TYPE_EXTENSIONS.get(self.type, self.type)

    @property
    def key(self) -> str:
        """groupId:artifactId:type[:classifier], the identity used for overlay matching."""
        key = f"{self.group_id}:{self.artifact_id}:{self.type}"
        if self.classifier:
            key += f":{self.classifier}"
        return key

    @property
    def is_bundled(self) -> bool:
        """Whether the artifact ends up inside the webapp at all."""
        return self.scope not in (SCOPE_PROVIDED, SCOPE_TEST) and not self.optional

    def is_related(self, other: "Artifact") -> bool:
        """Same group, artifact, type and classifier; version and scope may differ."""
        return (
            self.group_id == other.group_id
            and self.artifact_id == other.artifact_id
            and self.type == other.type
            and (self.classifier or None) == (other.classifier or None)
        )

    def default_file_name(self) -> str:
        name = f"{self.artifact_id}-{self.version}"
        if self.classifier and self.classifier.strip():
            name += f"-{self.classifier}"
        return f"{name}.{self.extension}"

    def __str__(self) -> str:
        parts = [self.group_id, self.artifact_id, self.type]
        if self.classifier:
            parts.append(self.classifier)
        parts.extend([self.version, self.scope])
        return ":".join(parts)


class Resource(BaseModel):
    """A web resource directory copied into the webapp."""

    directory: Path
    includes: List[str] = Field(default_factory=list)
    excludes: List[str] = Field(default_factory=list)
    target_path: Optional[str] = Field(default=None)
    filtering: bool = Field(default=False)

    @field_validator("includes", "excludes", mode="before")
    @classmethod
    def _split_patterns(cls, value):
        if isinstance(value, str):
            return split_patterns(value)
        return value or []


class MavenProject(BaseModel):
    """The already-resolved project the webapp is assembled for."""

    group_id: str
    artifact_id: str
    version: str
    name: Optional[str] = Field(default=None)
    basedir: Path = Field(default_factory=Path.cwd)
    final_name: Optional[str] = Field(default=None)
    properties: Dict[str, str] = Field(default_factory=dict)
    filters: List[Path] = Field(default_factory=list)
    artifacts: List[Artifact] = Field(default_factory=list)

    @property
    def build_directory(self) -> Path:
        return self.basedir / "target"

    @property
    def build_final_name(self) -> str:
        return self.final_name or f"{self.artifact_id}-{self.version}"

    def resolve_path(self, path: Path) -> Path:
        """Resolve a possibly relative path against the project base directory."""
        path = Path(path)
        return path if path.is_absolute() else self.basedir / path

    def filter_values(self) -> Dict[str, str]:
        """Built-in values available to resource filtering."""
        values = {
            "project.groupId": self.group_id,
            "project.artifactId": self.artifact_id,
            "project.version": self.version,
            "project.name": self.name or self.artifact_id,
            "project.basedir": str(self.basedir),
            "project.build.finalName": self.build_final_name,
            "basedir": str(self.basedir),
        }
        values.update(self.properties)
        return values

    @classmethod
    def from_file(cls, path: Path) -> "MavenProject":
        """Load a project from a JSON descriptor, accepting a ``project`` envelope."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        data = dict(data.get("project", data))
        basedir = Path(data.get("basedir", "."))
        if not basedir.is_absolute():
            basedir = Path(path).resolve().parent / basedir
        data["basedir"] = str(basedir)

        project = cls.model_validate(data)
        for artifact in project.artifacts:
            if artifact.file is not None:
                artifact.file = project.resolve_path(artifact.file)
        project.filters = [project.resolve_path(f) for f in project.filters]
        return project
