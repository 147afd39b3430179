"""
Webapp structure: which owner (overlay or current build) contributed each path.

A structure is built fresh for every packaging run. The structure persisted by
the previous run, when available, is attached as ``cache`` and only consulted to
decide whether a file must be copied again and to detect dependency changes.
"""

import hashlib
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional

from model.project import Artifact
from webapp.paths import PathSet, normalize_path


class RegistrationOutcome(str, Enum):
    """Result of registering a path for an owner."""

    REGISTERED = "registered"  # new path, copy it
    ALREADY_REGISTERED = "already_registered"  # same owner last run, copy if modified
    REFUSED = "refused"  # owned by someone else in this run, skip
    SUPERSEDED = "superseded"  # another known owner had it last run, copy
    SUPERSEDED_UNKNOWN_OWNER = "superseded_unknown_owner"  # previous owner is gone, copy
    OVERRIDDEN = "overridden"  # forced take-over from another owner in this run, copy


@dataclass(frozen=True)
class Registration:
    owner_id: str
    path: str
    outcome: RegistrationOutcome
    previous_owner: Optional[str] = None

    @property
    def should_copy(self) -> bool:
        return self.outcome != RegistrationOutcome.REFUSED


class DependencyChangeKind(str, Enum):
    UNCHANGED = "unchanged"
    NEW = "new"
    REMOVED = "removed"
    UPDATED_VERSION = "updated_version"
    UPDATED_SCOPE = "updated_scope"
    UPDATED_OPTIONAL = "updated_optional"
    UPDATED_UNKNOWN = "updated_unknown"


@dataclass(frozen=True)
class DependencyChange:
    kind: DependencyChangeKind
    dependency: Artifact
    previous: Optional[Artifact] = None


@dataclass
class DependencyInfo:
    """A dependency of the run and the file name it was packaged as, if any."""

    dependency: Artifact
    target_file_name: Optional[str] = None


def _same_dependency(first: Artifact, second: Artifact) -> bool:
    return (
        first.is_related(second)
        and first.version == second.version
        and first.scope == second.scope
        and first.optional == second.optional
    )


def dependency_fingerprint(dependencies: List[Artifact]) -> str:
    """Stable digest of a dependency set, independent of its order."""
    entries = sorted(
        f"{dep.key}:{dep.version}:{dep.scope}:{str(dep.optional).lower()}" for dep in dependencies
    )
    return hashlib.sha1("\n".join(entries).encode("utf-8")).hexdigest()


class WebappStructure:
    """Ownership registry of the assembled webapp's paths."""

    def __init__(
        self,
        dependencies: Optional[List[Artifact]] = None,
        cache: Optional["WebappStructure"] = None,
    ):
        self.dependencies_info: List[DependencyInfo] = [
            DependencyInfo(dependency) for dependency in (dependencies or [])
        ]
        self.cache = cache
        self._registered_files: Dict[str, PathSet] = {}
        self._all_files = PathSet()
        # paths of a cache written for other dependencies; used for cleanup, never for ownership
        self.previous_files: Dict[str, PathSet] = {}

    @property
    def dependencies(self) -> List[Artifact]:
        return [info.dependency for info in self.dependencies_info]

    @property
    def fingerprint(self) -> str:
        return dependency_fingerprint(self.dependencies)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def full_structure(self) -> PathSet:
        return self._all_files

    @property
    def owners(self) -> List[str]:
        return list(self._registered_files)

    def is_registered(self, path: str) -> bool:
        return path in self._all_files

    def get_owner(self, path: str) -> Optional[str]:
        if not self.is_registered(path):
            return None
        for owner, path_set in self._registered_files.items():
            if path in path_set:
                return owner
        raise RuntimeError(f"Path [{path}] is flagged as registered but has no owner.")

    def get_cached_structure(self, owner_id: str) -> PathSet:
        """Paths *owner_id* held in the cached run, including those of a stale cache."""
        result = PathSet()
        if self.cache is None:
            return result
        result.add_all(self.cache._registered_files.get(owner_id, []))
        result.add_all(self.cache.previous_files.get(owner_id, []))
        return result

    def get_structure(self, owner_id: str) -> PathSet:
        """Path set of *owner_id*, created empty on first access."""
        path_set = self._registered_files.get(owner_id)
        if path_set is None:
            path_set = PathSet()
            self._registered_files[owner_id] = path_set
        return path_set

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register_path(self, owner_id: str, path: str) -> bool:
        """
        Register *path* for *owner_id* unless it is already owned. First writer wins.

        Returns False whenever the path is already registered, including when it
        already belongs to *owner_id*; that case is not a refusal and needs no copy.
        """
        if self.is_registered(path):
            return False
        self._do_register(owner_id, path)
        return True

    def register_path_forced(self, owner_id: str, path: str) -> Optional[str]:
        """
        Register *path* for *owner_id*, taking it over from another owner.

        Returns the owner the path was taken from, or None when it was free or
        already belonged to *owner_id*.
        """
        previous = self.get_owner(path)
        if previous is None:
            self._do_register(owner_id, path)
            return None
        if previous == owner_id:
            return None
        self.get_structure(previous).remove(path)
        self.get_structure(owner_id).add(path)
        return previous

    def register(self, owner_id: str, path: str, force: bool = False) -> Registration:
        """Register *path* and classify the outcome against this run and the cache."""
        path = normalize_path(path)
        current_owner = self.get_owner(path)
        if current_owner is not None:
            if force and current_owner != owner_id:
                self.register_path_forced(owner_id, path)
                return Registration(owner_id, path, RegistrationOutcome.OVERRIDDEN, current_owner)
            return Registration(owner_id, path, RegistrationOutcome.REFUSED, current_owner)

        self._do_register(owner_id, path)
        cached_owner = self.cache.get_owner(path) if self.cache is not None else None
        if cached_owner is None:
            return Registration(owner_id, path, RegistrationOutcome.REGISTERED)
        if cached_owner == owner_id:
            return Registration(owner_id, path, RegistrationOutcome.ALREADY_REGISTERED, cached_owner)
        if cached_owner in self.owners:
            return Registration(owner_id, path, RegistrationOutcome.SUPERSEDED, cached_owner)
        return Registration(owner_id, path, RegistrationOutcome.SUPERSEDED_UNKNOWN_OWNER, cached_owner)

    def unregister(self, path: str) -> Optional[str]:
        """Drop *path* from the structure, returning its former owner."""
        owner = self.get_owner(path)
        if owner is not None:
            self.get_structure(owner).remove(path)
            self._all_files.remove(path)
        return owner

    def _do_register(self, owner_id: str, path: str) -> None:
        self._all_files.add(path)
        self.get_structure(owner_id).add(path)

    # ------------------------------------------------------------------
    # Dependencies
    # ------------------------------------------------------------------

    def analyse_dependencies(self) -> Iterator[DependencyChange]:
        """Compare the current dependencies with the cached ones. Yields nothing without cache."""
        if self.cache is None:
            return

        previous_dependencies = list(self.cache.dependencies)
        for dependency in self.dependencies:
            exact = next(
                (dep for dep in previous_dependencies if _same_dependency(dep, dependency)), None
            )
            if exact is not None:
                previous_dependencies.remove(exact)
                yield DependencyChange(DependencyChangeKind.UNCHANGED, dependency, exact)
                continue

            previous = next((dep for dep in previous_dependencies if dep.is_related(dependency)), None)
            if previous is None:
                yield DependencyChange(DependencyChangeKind.NEW, dependency)
                continue

            previous_dependencies.remove(previous)
            if dependency.version != previous.version:
                kind = DependencyChangeKind.UPDATED_VERSION
            elif dependency.scope != previous.scope:
                kind = DependencyChangeKind.UPDATED_SCOPE
            elif dependency.optional != previous.optional:
                kind = DependencyChangeKind.UPDATED_OPTIONAL
            else:
                kind = DependencyChangeKind.UPDATED_UNKNOWN
            yield DependencyChange(kind, dependency, previous)

        for removed in previous_dependencies:
            yield DependencyChange(DependencyChangeKind.REMOVED, removed)

    def register_target_file_name(self, artifact: Artifact, target_file_name: str) -> None:
        for info in self.dependencies_info:
            if info.dependency.is_related(artifact):
                info.target_file_name = target_file_name

    def get_cached_target_file_name(self, dependency: Artifact) -> Optional[str]:
        if self.cache is None:
            return None
        for info in self.cache.dependencies_info:
            if info.dependency.is_related(dependency):
                return info.target_file_name
        return None
