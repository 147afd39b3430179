"""Configuration settings for warpack."""

import json
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from model.overlay import Overlay
from model.project import MavenProject, Resource
from webapp.paths import split_patterns

from .models import LogLevel

WEB_XML_EXCLUDE = "**/WEB-INF/web.xml"


class Config(BaseModel):
    """Runtime configuration: logging and defaults that are not per-project."""

    # Logging configuration
    log_level: LogLevel = Field(default=LogLevel.INFO)
    log_file: Optional[str] = Field(default=None)
    log_dir: Optional[str] = Field(default=None)  # Session log files, off when unset
    verbose: bool = Field(default=False)  # Show DEBUG output on the console
    log_rotation: str = Field(default="50 MB")  # Log file rotation size
    log_retention: str = Field(default="30 days")  # Log file retention period

    # Packaging defaults
    use_cache: bool = Field(default=False)

    @classmethod
    def from_env(cls) -> "Config":
        """Create configuration from environment variables."""
        # Load .env file if it exists
        env_file = Path(".env")
        if env_file.exists():
            load_dotenv(env_file)

        return cls(
            log_level=LogLevel(os.getenv("WARPACK_LOG_LEVEL", "INFO").upper()),
            log_file=os.getenv("WARPACK_LOG_FILE") or None,
            log_dir=os.getenv("WARPACK_LOG_DIR") or None,
            verbose=os.getenv("WARPACK_VERBOSE", "false").lower() in ("true", "1", "yes"),
            log_rotation=os.getenv("WARPACK_LOG_ROTATION", "50 MB"),
            log_retention=os.getenv("WARPACK_LOG_RETENTION", "30 days"),
            use_cache=os.getenv("WARPACK_USE_CACHE", "false").lower() in ("true", "1", "yes"),
        )


class WarSettings(BaseModel):
    """Packaging parameters of one webapp, with build-layout defaults."""

    # Directories (relative paths resolve against the project basedir)
    webapp_directory: Optional[Path] = Field(default=None)  # target/<finalName>
    war_source_directory: Path = Field(default=Path("src/main/webapp"))
    classes_directory: Optional[Path] = Field(default=None)  # target/classes
    work_directory: Optional[Path] = Field(default=None)  # target/war/work
    cache_file: Optional[Path] = Field(default=None)  # <work>/webapp-cache.xml
    output_directory: Optional[Path] = Field(default=None)  # target
    war_name: Optional[str] = Field(default=None)  # project final name

    # Structure cache
    use_cache: bool = Field(default=False)

    # Project content
    web_resources: List[Resource] = Field(default_factory=list)
    webxml: Optional[Path] = Field(default=None)
    container_config_xml: Optional[Path] = Field(default=None)
    war_source_includes: str = Field(default="**")
    war_source_excludes: Optional[str] = Field(default=None)
    overlays: List[Overlay] = Field(default_factory=list)
    dependent_war_includes: str = Field(default="**/**")  # implicit war/zip overlays
    dependent_war_excludes: str = Field(default="META-INF/**")

    # Filtering
    filters: Optional[List[Path]] = Field(default=None)  # None: the project's filters
    delimiters: List[str] = Field(default_factory=list)
    use_default_delimiters: bool = Field(default=True)
    escape_string: Optional[str] = Field(default=None)
    non_filtered_file_extensions: List[str] = Field(default_factory=list)
    filtering_deployment_descriptors: bool = Field(default=False)
    resource_encoding: Optional[str] = Field(default=None)

    # Packaging
    archive_classes: bool = Field(default=False)
    include_empty_directories: bool = Field(default=False)
    use_jvm_chmod: bool = Field(default=True)
    recompress_zipped_files: bool = Field(default=True)
    output_file_name_mapping: Optional[str] = Field(default=None)
    classifier: Optional[str] = Field(default=None)
    packaging_includes: Optional[str] = Field(default=None)
    packaging_excludes: Optional[str] = Field(default=None)
    fail_on_missing_web_xml: bool = Field(default=True)
    skip: bool = Field(default=False)

    @classmethod
    def from_file(cls, path: Path) -> "WarSettings":
        """Read the ``war`` section of a JSON descriptor."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.model_validate(data.get("war", {}))

    def resolved(self, project: MavenProject) -> "WarSettings":
        """Copy with every directory made absolute and defaults filled from the project layout."""
        build_directory = project.build_directory
        work_directory = project.resolve_path(self.work_directory or build_directory / "war" / "work")
        update = {
            "webapp_directory": project.resolve_path(
                self.webapp_directory or build_directory / project.build_final_name
            ),
            "war_source_directory": project.resolve_path(self.war_source_directory),
            "classes_directory": project.resolve_path(self.classes_directory or build_directory / "classes"),
            "work_directory": work_directory,
            "cache_file": project.resolve_path(self.cache_file or work_directory / "webapp-cache.xml"),
            "output_directory": project.resolve_path(self.output_directory or build_directory),
            "war_name": self.war_name or project.build_final_name,
            "web_resources": [
                resource.model_copy(update={"directory": project.resolve_path(resource.directory)})
                for resource in self.web_resources
            ],
        }
        if self.webxml is not None:
            update["webxml"] = project.resolve_path(self.webxml)
        if self.container_config_xml is not None:
            update["container_config_xml"] = project.resolve_path(self.container_config_xml)
        return self.model_copy(update=update)

    def war_source_include_patterns(self) -> List[str]:
        return split_patterns(self.war_source_includes) or ["**"]

    def war_source_exclude_patterns(self) -> List[str]:
        """Configured excludes; a configured web.xml or container config hides the source-tree copy."""
        excludes = split_patterns(self.war_source_excludes)
        if self.webxml is not None and self.webxml.name:
            excludes.append(WEB_XML_EXCLUDE)
        if self.container_config_xml is not None and self.container_config_xml.name:
            excludes.append(f"**/META-INF/{self.container_config_xml.name}")
        return excludes

    def dependent_war_include_patterns(self) -> List[str]:
        return split_patterns(self.dependent_war_includes) or ["**/**"]

    def dependent_war_exclude_patterns(self) -> List[str]:
        return split_patterns(self.dependent_war_excludes)

    def packaging_include_patterns(self) -> List[str]:
        return split_patterns(self.packaging_includes) or ["**"]

    def packaging_exclude_patterns(self) -> List[str]:
        return split_patterns(self.packaging_excludes)

    def target_war_file(self) -> Path:
        """``<output>/<warName>[-<classifier>].war``."""
        classifier = (self.classifier or "").strip()
        if classifier and not classifier.startswith("-"):
            classifier = "-" + classifier
        return Path(self.output_directory) / f"{self.war_name}{classifier}.war"
