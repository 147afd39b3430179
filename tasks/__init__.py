"""Packaging tasks for warpack."""

from .base import TaskResult, WarPackagingTask, WarPostPackagingTask
from .dependencies import DependenciesAnalysisTask
from .manifest import CopyUserManifestTask
from .overlay import OverlayPackagingTask
from .post import SaveWebappStructureTask
from .project import WarProjectPackagingTask

__all__ = [
    "TaskResult", "WarPackagingTask", "WarPostPackagingTask",
    "CopyUserManifestTask", "DependenciesAnalysisTask", "OverlayPackagingTask",
    "WarProjectPackagingTask", "SaveWebappStructureTask",
]
