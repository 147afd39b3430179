"""Shared fixtures for warpack tests."""

import zipfile
from pathlib import Path
from typing import Dict, Union

import pytest

from model.project import Artifact, MavenProject


def write_files(base: Path, files: Dict[str, Union[str, bytes]]) -> None:
    """Create *files* (relative path -> content) below *base*."""
    for name, content in files.items():
        path = base / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")


def read_tree(base: Path) -> Dict[str, bytes]:
    """Every file below *base* as relative path -> bytes."""
    return {
        path.relative_to(base).as_posix(): path.read_bytes()
        for path in sorted(base.rglob("*"))
        if path.is_file()
    }


@pytest.fixture
def repository(tmp_path):
    """Directory holding the resolved dependency archives."""
    path = tmp_path / "repo"
    path.mkdir()
    return path


@pytest.fixture
def archive_factory(repository):
    """Build a zip-family archive in the repository from a name -> content mapping."""

    def _make(file_name: str, entries: Dict[str, Union[str, bytes]]) -> Path:
        path = repository / file_name
        with zipfile.ZipFile(path, "w") as zf:
            for entry, content in entries.items():
                zf.writestr(entry, content)
        return path

    return _make


@pytest.fixture
def artifact_factory(archive_factory):
    """Build an Artifact backed by an archive with the given entries."""

    def _make(artifact_id: str, entries: Dict[str, Union[str, bytes]] = None, **kwargs) -> Artifact:
        values = {"group_id": "com.example", "version": "1.0", "type": "war"}
        values.update(kwargs)
        extension = "jar" if values["type"] != "war" and values["type"] != "zip" else values["type"]
        file_name = f"{artifact_id}-{values['version']}.{extension}"
        archive = archive_factory(file_name, entries or {"placeholder.txt": artifact_id})
        return Artifact(artifact_id=artifact_id, file=archive, **values)

    return _make


@pytest.fixture
def project_dir(tmp_path):
    """Project base directory with a small webapp source tree."""
    basedir = tmp_path / "project"
    write_files(
        basedir / "src" / "main" / "webapp",
        {
            "index.jsp": "project index",
            "WEB-INF/web.xml": "<web-app/>",
        },
    )
    return basedir


@pytest.fixture
def make_project(project_dir):
    """MavenProject rooted at ``project_dir``."""

    def _make(artifacts=None, **kwargs) -> MavenProject:
        return MavenProject(
            group_id="com.example",
            artifact_id="shop",
            version="1.0",
            basedir=project_dir,
            artifacts=artifacts or [],
            **kwargs,
        )

    return _make


@pytest.fixture
def webapp_dir(project_dir):
    """Default exploded webapp location of ``make_project`` projects."""
    return project_dir / "target" / "shop-1.0"
