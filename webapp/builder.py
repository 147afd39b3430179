"""Drives a packaging run: overlay resolution, task sequence and archive creation."""

import time
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger
from pydantic import BaseModel

from config.settings import WarSettings
from model.project import MavenProject
from tasks.base import TaskResult, WarPackagingTask
from tasks.dependencies import DependenciesAnalysisTask
from tasks.manifest import CopyUserManifestTask
from tasks.overlay import OverlayPackagingTask
from tasks.post import SaveWebappStructureTask
from tasks.project import WarProjectPackagingTask
from webapp.archiver import WEB_XML_PATH, WarArchiver
from webapp.context import PackagingContext
from webapp.overlays import OverlayManager
from webapp.structure import WebappStructure
from webapp.structure_store import WebappStructureSerializer


class PackagingReport(BaseModel):
    """Summary of a packaging run."""

    project: str
    webapp_directory: Path
    overlays: List[str] = []
    tasks: List[TaskResult] = []
    owners: Dict[str, int] = {}
    files: int = 0
    cache_used: bool = False
    archive: Optional[Path] = None
    skipped: bool = False
    duration: float = 0.0


class WarBuilder:
    """
    Assembles the exploded webapp of a project and archives it.

    Overlays are resolved and validated before anything is written. Tasks then
    run strictly in order: user manifest, dependency analysis (with cache),
    one task per overlay, where the current project is handled by the project
    task, and finally post-packaging tasks.
    """

    def __init__(
        self,
        project: MavenProject,
        settings: Optional[WarSettings] = None,
        serializer: Optional[WebappStructureSerializer] = None,
    ):
        self.project = project
        self.settings = (settings or WarSettings()).resolved(project)
        self.serializer = serializer or WebappStructureSerializer()

    def resolve_overlays(self) -> OverlayManager:
        return OverlayManager(
            self.settings.overlays,
            self.project,
            dependent_war_includes=self.settings.dependent_war_include_patterns(),
            dependent_war_excludes=self.settings.dependent_war_exclude_patterns(),
        )

    def load_structure(self) -> WebappStructure:
        """Fresh structure for this run, with the previous one attached when caching."""
        cache = None
        if self.settings.use_cache:
            cache = self.serializer.from_xml(self.settings.cache_file, self.project.artifacts)
            if cache is None:
                logger.debug(f"No usable webapp cache at {self.settings.cache_file}")
        return WebappStructure(self.project.artifacts, cache)

    def create_context(self) -> PackagingContext:
        overlay_manager = self.resolve_overlays()
        structure = self.load_structure()
        return PackagingContext(self.project, self.settings, structure, overlay_manager)

    def build_tasks(self, context: PackagingContext) -> List[WarPackagingTask]:
        tasks: List[WarPackagingTask] = [CopyUserManifestTask()]
        if self.settings.use_cache:
            tasks.append(DependenciesAnalysisTask())
        for overlay in context.overlay_manager.overlays:
            if overlay.is_current_project:
                tasks.append(WarProjectPackagingTask(overlay))
            else:
                tasks.append(OverlayPackagingTask(overlay))
        return tasks

    def build_post_tasks(self, context: PackagingContext) -> List[WarPackagingTask]:
        post_tasks: List[WarPackagingTask] = []
        if self.settings.use_cache:
            post_tasks.append(SaveWebappStructureTask(self.serializer))
        return post_tasks

    def build_exploded_webapp(self) -> PackagingReport:
        """Assemble the webapp directory. The first failing task aborts the run."""
        started = time.monotonic()
        context = self.create_context()
        webapp_directory = self.settings.webapp_directory
        logger.info(f"Assembling webapp [{self.project.artifact_id}] in [{webapp_directory}]")
        webapp_directory.mkdir(parents=True, exist_ok=True)

        results: List[TaskResult] = []
        for task in self.build_tasks(context) + self.build_post_tasks(context):
            results.append(task.run(context))

        structure = context.webapp_structure
        report = PackagingReport(
            project=f"{self.project.group_id}:{self.project.artifact_id}:{self.project.version}",
            webapp_directory=webapp_directory,
            overlays=context.owner_ids,
            tasks=results,
            owners={owner: len(structure.get_structure(owner)) for owner in structure.owners},
            files=len(structure.full_structure),
            cache_used=structure.cache is not None,
            duration=time.monotonic() - started,
        )
        logger.info(f"Webapp assembled in [{report.duration * 1000:.0f} msecs]")
        return report

    def package(self) -> PackagingReport:
        """Assemble the webapp, then write ``<finalName>[-<classifier>].war``."""
        settings = self.settings
        if settings.skip:
            logger.info("Skipping the execution.")
            return PackagingReport(
                project=f"{self.project.group_id}:{self.project.artifact_id}:{self.project.version}",
                webapp_directory=settings.webapp_directory,
                skipped=True,
            )

        report = self.build_exploded_webapp()
        war_file = settings.target_war_file()
        if not settings.fail_on_missing_web_xml and not (settings.webapp_directory / WEB_XML_PATH).is_file():
            logger.warning(f"No {WEB_XML_PATH} in the webapp, packaging it anyway")

        archiver = WarArchiver(
            include_empty_directories=settings.include_empty_directories,
            recompress_zipped_files=settings.recompress_zipped_files,
        )
        report.archive = archiver.create_archive(
            settings.webapp_directory,
            war_file,
            includes=settings.packaging_include_patterns(),
            excludes=settings.packaging_exclude_patterns(),
            expect_web_xml=settings.fail_on_missing_web_xml,
        )
        return report
