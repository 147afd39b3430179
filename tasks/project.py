"""Packages the content of the project being built."""

from pathlib import Path
from typing import Optional

from model.overlay import Overlay
from model.project import Resource
from tasks.base import WarPackagingTask
from webapp.archiver import WEB_XML_PATH
from webapp.context import META_INF, WEB_INF, PackagingContext
from webapp.errors import PackagingError
from webapp.filtering import detect_xml_encoding

CLASSES_PATH = "WEB-INF/classes/"
LIB_PATH = "WEB-INF/lib/"


class WarProjectPackagingTask(WarPackagingTask):
    """
    Copies web resources, webapp sources, deployment descriptors and classes.

    Every registration is forced: project content replaces whatever an overlay
    contributed to the same path, while inside the project the first copy of a
    path wins (web resources before the webapp source directory). Deployment
    descriptors always replace the path they land on.
    """

    def __init__(self, current_project_overlay: Optional[Overlay] = None):
        overlay = current_project_overlay or Overlay.current_project_instance()
        super().__init__("war-project", overlay.get_id())
        self.overlay = overlay

    def perform(self, context: PackagingContext) -> None:
        self.log.info("Processing war project")
        (context.webapp_directory / WEB_INF).mkdir(parents=True, exist_ok=True)
        (context.webapp_directory / META_INF).mkdir(parents=True, exist_ok=True)

        self.handle_web_resources(context)
        self.handle_webapp_source_directory(context)
        self.handle_deployment_descriptors(context)
        self.handle_classes_directory(context)

    # ------------------------------------------------------------------
    # Web resources
    # ------------------------------------------------------------------

    def handle_web_resources(self, context: PackagingContext) -> None:
        for resource in context.settings.web_resources:
            directory = context.project.resolve_path(resource.directory)
            if not directory.is_dir():
                self.log.warning(f"Not copying webapp webResources [{directory}]: web resources directory does not exist!")
                continue
            self.copy_resources(context, resource.model_copy(update={"directory": directory}))

    def copy_resources(self, context: PackagingContext, resource: Resource) -> None:
        self.log.info(f"Copying webapp webResources [{resource.directory}] to [{context.webapp_directory}]")
        file_names = self.get_files_to_include(resource.directory, resource.includes, resource.excludes)
        target_prefix = self.resource_target_prefix(resource.target_path)
        self.copy_files(
            self.owner_id,
            context,
            resource.directory,
            file_names,
            target_prefix=target_prefix,
            filtered=resource.filtering,
            force=True,
        )

    @staticmethod
    def resource_target_prefix(target_path: Optional[str]) -> Optional[str]:
        if not target_path:
            return None
        target_path = target_path.replace("\\", "/")
        if target_path in (".", "./"):
            return None
        return target_path.rstrip("/") + "/"

    # ------------------------------------------------------------------
    # Webapp sources
    # ------------------------------------------------------------------

    def handle_webapp_source_directory(self, context: PackagingContext) -> None:
        source_directory = context.webapp_source_directory
        if not source_directory.is_dir():
            self.log.debug("webapp sources directory does not exist - skipping.")
            return
        if source_directory.resolve() == context.webapp_directory.resolve():
            self.log.debug("webapp sources directory is the webapp directory - skipping.")
            return

        self.log.info(f"Copying webapp resources [{source_directory}]")
        sources = self.get_files_to_include(
            source_directory,
            context.webapp_source_includes(),
            context.webapp_source_excludes(),
            include_directories=context.include_empty_directories,
        )
        self.copy_files(self.owner_id, context, source_directory, sources, force=True)

    # ------------------------------------------------------------------
    # Deployment descriptors
    # ------------------------------------------------------------------

    def handle_deployment_descriptors(self, context: PackagingContext) -> None:
        settings = context.settings
        webxml = settings.webxml
        if webxml is not None and webxml.name:
            if not webxml.is_file():
                raise PackagingError(
                    f"The specified web.xml file '{webxml}' does not exist",
                    suggestions=["Fix the webxml setting or remove it to use the webapp sources' web.xml"],
                    owner_id=self.owner_id,
                    error_code="WEB_XML_NOT_FOUND",
                )
            self.copy_deployment_descriptor(context, webxml, WEB_XML_PATH)
        else:
            default_web_xml = context.webapp_source_directory / WEB_XML_PATH
            if default_web_xml.is_file() and context.filtering_deployment_descriptors:
                self.copy_deployment_descriptor(context, default_web_xml, WEB_XML_PATH)

        container_config = settings.container_config_xml
        if container_config is not None and container_config.name:
            if not container_config.is_file():
                raise PackagingError(
                    f"The specified container config file '{container_config}' does not exist",
                    owner_id=self.owner_id,
                    error_code="CONTAINER_CONFIG_NOT_FOUND",
                )
            self.copy_deployment_descriptor(context, container_config, f"{META_INF}/{container_config.name}")

    def copy_deployment_descriptor(self, context: PackagingContext, source: Path, target_name: str) -> None:
        """Copy a descriptor over whatever owns *target_name*, filtered when configured."""
        previous = context.webapp_structure.register_path_forced(self.owner_id, target_name)
        if previous is not None:
            self.log.debug(f" - {target_name} taken over from overlay [{previous}]")
        destination = context.webapp_directory / target_name
        if context.filtering_deployment_descriptors:
            encoding = detect_xml_encoding(source, default=context.resource_encoding)
            context.file_filter.copy_file(source, destination, context.filter_wrappers, encoding)
            self.log.trace(f" + {destination} has been filtered (encoding='{encoding}').")
            self._copied += 1
        else:
            self._copy(source, destination, only_if_modified=False)

    # ------------------------------------------------------------------
    # Classes
    # ------------------------------------------------------------------

    def handle_classes_directory(self, context: PackagingContext) -> None:
        classes_directory = context.classes_directory
        if not classes_directory.is_dir():
            return
        if classes_directory.resolve() == (context.webapp_directory / CLASSES_PATH).resolve():
            return

        if context.archive_classes:
            self.generate_jar_archive(context)
        else:
            classes = self.get_files_to_include(classes_directory, ["**"], None)
            self.copy_files(
                self.owner_id, context, classes_directory, classes, target_prefix=CLASSES_PATH, force=True
            )

    def generate_jar_archive(self, context: PackagingContext) -> None:
        project = context.project
        archive_name = f"{project.artifact_id}-{project.version}.jar"
        target_name = LIB_PATH + archive_name
        registration = context.webapp_structure.register(self.owner_id, target_name, force=True)
        if not registration.should_copy:
            self.log.debug(f" - {target_name} wasn't generated because it has already been packaged.")
            self._skipped += 1
            return

        self.log.debug(f"Building jar: {target_name}")
        context.new_jar_archiver().create_archive(
            context.classes_directory, context.webapp_directory / target_name
        )
        self._copied += 1
