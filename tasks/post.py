"""Tasks run once the webapp directory is assembled."""

from model.overlay import CURRENT_BUILD
from tasks.base import WarPostPackagingTask
from webapp.context import PackagingContext
from webapp.structure_store import WebappStructureSerializer


class SaveWebappStructureTask(WarPostPackagingTask):
    """Persists the structure of this run for the next incremental build."""

    def __init__(self, serializer: WebappStructureSerializer = None):
        super().__init__("save-webapp-structure", CURRENT_BUILD)
        self.serializer = serializer or WebappStructureSerializer()

    def perform(self, context: PackagingContext) -> None:
        cache_file = context.settings.cache_file
        self.log.debug(f"Saving webapp structure to {cache_file}")
        self.serializer.to_xml(context.webapp_structure, cache_file)
