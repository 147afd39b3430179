"""Base classes and shared copy helpers for packaging tasks."""

import shutil
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from config import create_task_logger
from model.project import Artifact
from webapp.context import PackagingContext
from webapp.errors import PackagingError
from webapp.filtering import detect_xml_encoding
from webapp.paths import PathSet, scan_directory
from webapp.structure import RegistrationOutcome

FILE_NAME_MAPPING_TOKENS = (
    "groupId",
    "artifactId",
    "version",
    "classifier",
    "dashClassifier",
    "dashClassifier?",
    "extension",
    "type",
)


def evaluate_file_name_mapping(mapping: str, artifact: Artifact) -> str:
    """Expand ``@{token}@`` placeholders of an output file name mapping."""
    classifier = artifact.classifier or ""
    values = {
        "groupId": artifact.group_id,
        "artifactId": artifact.artifact_id,
        "version": artifact.version,
        "classifier": classifier,
        "dashClassifier": f"-{classifier}" if classifier else "",
        "dashClassifier?": f"-{classifier}" if classifier else "",
        "extension": artifact.extension,
        "type": artifact.type,
    }
    result = mapping
    for token in FILE_NAME_MAPPING_TOKENS:
        result = result.replace(f"@{{{token}}}@", values[token])
    return result


class TaskResult(BaseModel):
    """Outcome of one packaging task."""

    task: str
    owner_id: Optional[str] = None
    copied: int = 0
    skipped: int = 0
    removed: int = 0
    duration: float = 0.0
    metadata: Dict[str, Any] = {}

    def __str__(self) -> str:
        result = f"{self.task}"
        if self.owner_id:
            result += f" [{self.owner_id}]"
        result += f": {self.copied} copied, {self.skipped} skipped"
        if self.removed:
            result += f", {self.removed} removed"
        return result


class WarPackagingTask(ABC):
    """A step of the webapp assembly, executed strictly in order."""

    def __init__(self, name: str, owner_id: Optional[str] = None):
        self.name = name
        self.owner_id = owner_id
        self.log = create_task_logger(name, owner_id)
        self._copied = 0
        self._skipped = 0
        self._removed = 0
        self._metadata: Dict[str, Any] = {}

    @abstractmethod
    def perform(self, context: PackagingContext) -> None:
        """Apply the task to the webapp directory."""
        pass

    def run(self, context: PackagingContext) -> TaskResult:
        """Perform the task with logging and error context. Failures propagate."""
        self._copied = self._skipped = self._removed = 0
        self._metadata = {}
        self.log.debug(f"Executing task: {self.name}")
        started = time.monotonic()
        try:
            self.perform(context)
        except PackagingError as e:
            e.task_name = e.task_name or self.name
            e.owner_id = e.owner_id or self.owner_id
            self.log.error(f"Task {self.name} failed: {e}")
            raise
        except OSError as e:
            error = PackagingError(
                f"Could not perform task: {e}",
                suggestions=["Check file permissions and free space of the webapp directory"],
                owner_id=self.owner_id,
                task_name=self.name,
                error_code="IO_ERROR",
            )
            self.log.error(str(error))
            raise error from e

        result = TaskResult(
            task=self.name,
            owner_id=self.owner_id,
            copied=self._copied,
            skipped=self._skipped,
            removed=self._removed,
            duration=time.monotonic() - started,
            metadata=self._metadata,
        )
        self.log.debug(f"Task {result} in {result.duration:.3f}s")
        return result

    # ------------------------------------------------------------------
    # Copy helpers
    # ------------------------------------------------------------------

    def copy_files(
        self,
        owner_id: str,
        context: PackagingContext,
        source_base_dir: Path,
        file_set: PathSet,
        target_prefix: Optional[str] = None,
        filtered: bool = False,
        force: bool = False,
    ) -> None:
        """Copy every path of *file_set* from *source_base_dir* into the webapp under *target_prefix*."""
        for path in file_set:
            source = Path(source_base_dir) / path
            target_name = (target_prefix or "") + path
            if filtered and not context.is_non_filtered_extension(source.name):
                self.copy_filtered_file(owner_id, context, source, target_name, force=force)
            else:
                self.copy_file(owner_id, context, source, target_name, force=force)

    def copy_file(
        self,
        owner_id: str,
        context: PackagingContext,
        source: Path,
        target_name: str,
        force: bool = False,
    ) -> bool:
        """Register *target_name* for *owner_id* and copy *source* when the outcome allows it."""
        registration = context.webapp_structure.register(owner_id, target_name, force=force)
        outcome = registration.outcome
        if outcome == RegistrationOutcome.REFUSED:
            self.log.debug(
                f" - {target_name} wasn't copied because it has already been packaged "
                f"for overlay [{registration.previous_owner}]."
            )
            self._skipped += 1
            return False
        if outcome == RegistrationOutcome.SUPERSEDED:
            self.log.info(
                f"File [{target_name}] belonged to overlay [{registration.previous_owner}] "
                f"so it will be overwritten."
            )
        elif outcome == RegistrationOutcome.SUPERSEDED_UNKNOWN_OWNER:
            self.log.warning(
                f"File [{target_name}] belonged to overlay [{registration.previous_owner}] which does "
                f"not exist anymore in the current project. It is recommended to invoke clean if the "
                f"dependencies of the project changed."
            )
        elif outcome == RegistrationOutcome.OVERRIDDEN:
            self.log.debug(f" - {target_name} taken over from overlay [{registration.previous_owner}]")

        only_if_modified = outcome == RegistrationOutcome.ALREADY_REGISTERED
        return self._copy(source, context.webapp_directory / registration.path, only_if_modified)

    def _copy(self, source: Path, destination: Path, only_if_modified: bool) -> bool:
        if only_if_modified and destination.exists():
            if source.stat().st_mtime <= destination.stat().st_mtime:
                self.log.trace(f" * {destination} is up to date.")
                self._skipped += 1
                return False
        if source.is_dir():
            destination.mkdir(parents=True, exist_ok=True)
            return True
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(source, destination)
        self.log.trace(f" + {destination} has been copied.")
        self._copied += 1
        return True

    def copy_filtered_file(
        self,
        owner_id: str,
        context: PackagingContext,
        source: Path,
        target_name: str,
        force: bool = False,
    ) -> bool:
        """Register *target_name* and copy *source* with token substitution."""
        registration = context.webapp_structure.register(owner_id, target_name, force=force)
        if not registration.should_copy:
            self.log.debug(f" - {target_name} wasn't filtered because it has already been packaged.")
            self._skipped += 1
            return False

        destination = context.webapp_directory / registration.path
        encoding = context.resource_encoding
        if target_name.lower().endswith(".xml"):
            # the XML prolog wins over the configured encoding
            encoding = detect_xml_encoding(source, default=encoding)
        context.file_filter.copy_file(source, destination, context.filter_wrappers, encoding)
        self.log.trace(f" + {destination} has been copied (filtered encoding='{encoding}').")
        self._copied += 1
        return True

    def unpack(self, context: PackagingContext, archive: Path, unpack_directory: Path) -> List[str]:
        """Extract *archive* into *unpack_directory*, which is removed again on failure."""
        unpack_directory.mkdir(parents=True, exist_ok=True)
        try:
            return context.unarchiver.unpack(archive, unpack_directory)
        except PackagingError:
            shutil.rmtree(unpack_directory, ignore_errors=True)
            raise

    def get_files_to_include(
        self,
        base_dir: Path,
        includes: Optional[List[str]],
        excludes: Optional[List[str]],
        include_directories: bool = False,
    ) -> PathSet:
        """Paths of *base_dir* matching the patterns, default SCM excludes applied."""
        return scan_directory(base_dir, includes, excludes, include_directories=include_directories)

    def artifact_final_name(self, context: PackagingContext, artifact: Artifact) -> str:
        """File name a library is packaged under."""
        if context.output_file_name_mapping:
            return evaluate_file_name_mapping(context.output_file_name_mapping, artifact)
        return artifact.default_file_name()

    def remove_file(self, context: PackagingContext, target_name: str) -> bool:
        """Delete *target_name* from the webapp and forget its owner."""
        context.webapp_structure.unregister(target_name)
        destination = context.webapp_directory / target_name
        if destination.is_file():
            destination.unlink()
            self._removed += 1
            return True
        return False


class WarPostPackagingTask(WarPackagingTask):
    """A step executed once the webapp directory is fully assembled."""
