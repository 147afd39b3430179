"""Shared state handed to every packaging task of a run."""

from pathlib import Path
from typing import Dict, List, Optional

from config.settings import WarSettings
from model.project import MavenProject
from webapp.archiver import UnArchiver, WarArchiver
from webapp.filtering import (
    DEFAULT_NON_FILTERED_EXTENSIONS,
    Delimiter,
    FileFilter,
    build_delimiters,
    load_properties,
)
from webapp.overlays import OverlayManager
from webapp.structure import WebappStructure

WEB_INF = "WEB-INF"
META_INF = "META-INF"


class PackagingContext:
    """
    Read-mostly configuration and state of one packaging run.

    Only the webapp directory on disk and the structure change while tasks run.
    Every resolved overlay id gets its (possibly empty) bucket in the structure
    up front, so ownership lookups never see an unknown overlay of this run.
    """

    def __init__(
        self,
        project: MavenProject,
        settings: WarSettings,
        structure: WebappStructure,
        overlay_manager: OverlayManager,
        file_filter: Optional[FileFilter] = None,
        unarchiver: Optional[UnArchiver] = None,
    ):
        self._project = project
        self._settings = settings
        self._structure = structure
        self._overlay_manager = overlay_manager

        self._delimiters = build_delimiters(settings.delimiters, settings.use_default_delimiters)
        self._file_filter = file_filter or FileFilter(self._filter_values(), settings.escape_string)
        self._unarchiver = unarchiver or UnArchiver(use_jvm_chmod=settings.use_jvm_chmod)
        self._non_filtered_extensions = [
            ext.lower().lstrip(".")
            for ext in DEFAULT_NON_FILTERED_EXTENSIONS + list(settings.non_filtered_file_extensions)
        ]

        for overlay_id in overlay_manager.overlay_ids:
            structure.get_structure(overlay_id)

    def _filter_values(self) -> Dict[str, str]:
        values = self._project.filter_values()
        filters = self._settings.filters if self._settings.filters is not None else self._project.filters
        for filter_file in filters:
            values.update(load_properties(self._project.resolve_path(filter_file)))
        return values

    @property
    def project(self) -> MavenProject:
        return self._project

    @property
    def settings(self) -> WarSettings:
        return self._settings

    @property
    def webapp_directory(self) -> Path:
        return self._settings.webapp_directory

    @property
    def webapp_source_directory(self) -> Path:
        return self._settings.war_source_directory

    @property
    def classes_directory(self) -> Path:
        return self._settings.classes_directory

    @property
    def overlays_work_directory(self) -> Path:
        return self._settings.work_directory

    @property
    def webapp_structure(self) -> WebappStructure:
        return self._structure

    @property
    def overlay_manager(self) -> OverlayManager:
        return self._overlay_manager

    @property
    def owner_ids(self) -> List[str]:
        return self._overlay_manager.overlay_ids

    @property
    def file_filter(self) -> FileFilter:
        return self._file_filter

    @property
    def filter_wrappers(self) -> List[Delimiter]:
        return list(self._delimiters)

    @property
    def unarchiver(self) -> UnArchiver:
        return self._unarchiver

    @property
    def resource_encoding(self) -> Optional[str]:
        return self._settings.resource_encoding

    @property
    def output_file_name_mapping(self) -> Optional[str]:
        return self._settings.output_file_name_mapping

    @property
    def filtering_deployment_descriptors(self) -> bool:
        return self._settings.filtering_deployment_descriptors

    @property
    def archive_classes(self) -> bool:
        return self._settings.archive_classes

    @property
    def include_empty_directories(self) -> bool:
        return self._settings.include_empty_directories

    @property
    def use_jvm_chmod(self) -> bool:
        return self._settings.use_jvm_chmod

    def webapp_source_includes(self) -> List[str]:
        return self._settings.war_source_include_patterns()

    def webapp_source_excludes(self) -> List[str]:
        return self._settings.war_source_exclude_patterns()

    def is_non_filtered_extension(self, file_name: str) -> bool:
        suffix = Path(file_name).suffix.lower().lstrip(".")
        return bool(suffix) and suffix in self._non_filtered_extensions

    def new_jar_archiver(self) -> WarArchiver:
        return WarArchiver(recompress_zipped_files=self._settings.recompress_zipped_files)
