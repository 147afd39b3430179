"""Cleans up the libraries of dependencies that changed since the cached run."""

from model.overlay import CURRENT_BUILD, Overlay
from model.project import SCOPE_PROVIDED, SCOPE_TEST, Artifact
from tasks.base import WarPackagingTask
from webapp.context import PackagingContext
from webapp.overlays import ARCHIVE_OVERLAY_TYPES, LIBRARY_DIRECTORIES
from webapp.structure import DependencyChange, DependencyChangeKind


class DependenciesAnalysisTask(WarPackagingTask):
    """
    Compares the dependencies with those of the cached run.

    Libraries of dependencies that were removed, changed version, moved to a
    non-bundled scope, became optional or changed in an unknown way are deleted
    from the webapp; their new version, if any, is copied by its overlay task.
    The files a war or zip overlay of such a dependency copied in the cached run
    are deleted as well.
    """

    def __init__(self):
        super().__init__("dependencies-analysis", CURRENT_BUILD)

    def perform(self, context: PackagingContext) -> None:
        for change in context.webapp_structure.analyse_dependencies():
            self.handle_change(context, change)

    def handle_change(self, context: PackagingContext, change: DependencyChange) -> None:
        kind = change.kind
        dependency = change.dependency
        if kind == DependencyChangeKind.UNCHANGED:
            self.log.trace(f"Dependency [{dependency}] has not changed since the last build.")
        elif kind == DependencyChangeKind.NEW:
            self.log.debug(f"New dependency [{dependency}].")
        elif kind == DependencyChangeKind.REMOVED:
            self.log.debug(f"Dependency [{dependency}] has been removed from the project.")
            self.remove_dependency(context, dependency)
        elif kind == DependencyChangeKind.UPDATED_VERSION:
            self.log.debug(
                f"Version of dependency [{dependency}] has changed "
                f"({change.previous.version} -> {dependency.version})."
            )
            self.remove_dependency(context, change.previous)
        elif kind == DependencyChangeKind.UPDATED_SCOPE:
            if dependency.scope in (SCOPE_PROVIDED, SCOPE_TEST):
                self.log.debug(f"Dependency [{dependency}] is no longer packaged (scope {dependency.scope}).")
                self.remove_dependency(context, change.previous)
        elif kind == DependencyChangeKind.UPDATED_OPTIONAL:
            if dependency.optional:
                self.log.debug(f"Dependency [{dependency}] is now optional.")
                self.remove_dependency(context, change.previous)
        else:
            self.log.warning(f"Dependency [{dependency}] has changed (was {change.previous}).")
            self.remove_dependency(context, change.previous)

    def remove_dependency(self, context: PackagingContext, artifact: Artifact) -> None:
        if artifact.type in ARCHIVE_OVERLAY_TYPES:
            self.remove_overlay_files(context, artifact)
            return

        location = LIBRARY_DIRECTORIES.get(artifact.type)
        if location is None:
            self.log.warning(f"Could not delete dependency [{artifact}] of unknown type [{artifact.type}].")
            return

        target_file_name = context.webapp_structure.get_cached_target_file_name(artifact)
        if target_file_name is None:
            self.log.warning(f"Could not retrieve the target file name of dependency [{artifact}]")
            return

        target_name = location + target_file_name
        if self.remove_file(context, target_name):
            self.log.info(f"Removed {target_name} of dependency [{artifact}]")
        else:
            self.log.debug(f"File [{target_name}] of dependency [{artifact}] was already gone.")

    def remove_overlay_files(self, context: PackagingContext, artifact: Artifact) -> None:
        """Delete the files the implicit overlay of *artifact* copied in the cached run."""
        owner_id = Overlay.for_artifact(artifact).get_id()
        paths = context.webapp_structure.get_cached_structure(owner_id)
        if not len(paths):
            self.log.warning(
                f"Overlay [{artifact}] has changed or has been removed but none of its files are known. "
                f"It is recommended to invoke clean if the dependencies of the project changed."
            )
            return

        removed = sum(1 for path in paths if self.remove_file(context, path))
        self.log.info(f"Removed {removed} file(s) of overlay [{owner_id}]")
