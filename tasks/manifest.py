"""Copies the user manifest of the webapp sources before anything else."""

from model.overlay import CURRENT_BUILD
from tasks.base import WarPackagingTask
from webapp.archiver import MANIFEST_PATH
from webapp.context import PackagingContext


class CopyUserManifestTask(WarPackagingTask):
    """Makes ``<warSource>/META-INF/MANIFEST.MF`` visible to the archiver."""

    def __init__(self):
        super().__init__("copy-user-manifest", CURRENT_BUILD)

    def perform(self, context: PackagingContext) -> None:
        manifest = context.webapp_source_directory / MANIFEST_PATH
        if not manifest.is_file():
            self.log.debug("No user manifest in the webapp sources")
            return
        destination = context.webapp_directory / MANIFEST_PATH
        self.log.debug(f"Copying user manifest {manifest}")
        self._copy(manifest, destination, only_if_modified=True)
