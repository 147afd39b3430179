"""Applies one dependency overlay to the webapp."""

import os
from pathlib import Path
from typing import Optional

from model.overlay import Overlay
from model.project import Artifact
from tasks.base import WarPackagingTask
from webapp.context import PackagingContext
from webapp.errors import PackagingError
from webapp.overlays import LIBRARY_DIRECTORIES


class OverlayPackagingTask(WarPackagingTask):
    """
    Copies the content of a dependency overlay into the webapp.

    Archive overlays are unpacked once into the work directory, then every
    entry matching the overlay's patterns is copied under its target path.
    Among overlays the first registration of a path wins. Implicit library
    overlays copy the archive itself into its library directory.
    """

    def __init__(self, overlay: Overlay):
        if overlay.is_current_project:
            raise ValueError("The current project is packaged by WarProjectPackagingTask")
        super().__init__("overlay", overlay.get_id())
        self.overlay = overlay

    def perform(self, context: PackagingContext) -> None:
        overlay = self.overlay
        if overlay.skip:
            self.log.info(f"Skipping {overlay}")
            self._metadata["skipped_overlay"] = True
            return

        artifact_file = self._artifact_file(overlay.artifact)
        if overlay.implicit and overlay.type in LIBRARY_DIRECTORIES:
            self.copy_library(context, overlay.artifact, artifact_file)
            return

        self.log.info(f"Processing {overlay}")
        unpack_directory = self.unpack_overlay(context, artifact_file)
        includes = self.get_files_to_include(unpack_directory, overlay.includes, overlay.excludes)
        self.copy_files(
            self.owner_id,
            context,
            unpack_directory,
            includes,
            target_prefix=overlay.normalized_target_path(),
            filtered=overlay.filtered,
        )

    def _artifact_file(self, artifact: Optional[Artifact]) -> Path:
        if artifact is None or artifact.file is None or not Path(artifact.file).is_file():
            raise PackagingError(
                f"Archive of {self.overlay} could not be found"
                + (f" at [{artifact.file}]" if artifact is not None and artifact.file else ""),
                suggestions=["Resolve the project dependencies before packaging"],
                owner_id=self.owner_id,
                error_code="ARTIFACT_FILE_MISSING",
            )
        return Path(artifact.file)

    def overlay_work_directory(self, context: PackagingContext) -> Path:
        """``<work>/<groupId>-<artifactId>[-<classifier>]``."""
        name = f"{self.overlay.group_id}-{self.overlay.artifact_id}"
        if self.overlay.classifier:
            name += f"-{self.overlay.classifier}"
        return context.overlays_work_directory / name

    def unpack_overlay(self, context: PackagingContext, artifact_file: Path) -> Path:
        """Unpack the overlay archive unless the work directory is newer than it."""
        unpack_directory = self.overlay_work_directory(context)
        if unpack_directory.is_dir() and unpack_directory.stat().st_mtime >= artifact_file.stat().st_mtime:
            self.log.debug(f"{self.overlay} is already unpacked")
            return unpack_directory

        self.log.debug(f"Unpacking {self.overlay} to {unpack_directory}")
        self.unpack(context, artifact_file, unpack_directory)
        os.utime(unpack_directory)
        return unpack_directory

    def library_file_name(self, context: PackagingContext, artifact: Artifact) -> str:
        """Final name, prefixed with the group id when another library would land on the same name."""
        file_name = self.artifact_final_name(context, artifact)
        for other in context.project.artifacts:
            if other is artifact or not other.is_bundled:
                continue
            if LIBRARY_DIRECTORIES.get(other.type) != LIBRARY_DIRECTORIES[artifact.type]:
                continue
            if self.artifact_final_name(context, other) == file_name:
                return f"{artifact.group_id}-{file_name}"
        return file_name

    def copy_library(self, context: PackagingContext, artifact: Artifact, artifact_file: Path) -> None:
        file_name = self.library_file_name(context, artifact)
        target_name = LIBRARY_DIRECTORIES[artifact.type] + file_name
        self.log.debug(f"Copying library {artifact} to {target_name}")
        self.copy_file(self.owner_id, context, artifact_file, target_name)
        context.webapp_structure.register_target_file_name(artifact, file_name)
