"""Zip-family archive handling: unpacking overlays and writing the final archives."""

import os
import stat
import zipfile
from pathlib import Path
from typing import List, Optional, Sequence

from loguru import logger

from webapp.errors import MissingWebXmlError, PackagingError
from webapp.paths import DirectoryScanner

UNPACKABLE_EXTENSIONS = ("war", "jar", "zip", "ear", "rar", "aar", "par", "sar")

MANIFEST_PATH = "META-INF/MANIFEST.MF"
WEB_XML_PATH = "WEB-INF/web.xml"

# Already compressed content, stored as-is unless recompression is requested.
_COMPRESSED_EXTENSIONS = (".jar", ".zip", ".war", ".ear", ".gz", ".png", ".jpg", ".jpeg", ".gif")


def _entry(name: str) -> zipfile.ZipInfo:
    # fixed timestamp keeps generated entries reproducible
    info = zipfile.ZipInfo(name, date_time=(1980, 1, 1, 0, 0, 0))
    info.compress_type = zipfile.ZIP_DEFLATED
    if name.endswith("/"):
        info.external_attr = (0o40755 << 16) | 0x10
    return info


def default_manifest(created_by: str = "warpack") -> str:
    return f"Manifest-Version: 1.0\r\nCreated-By: {created_by}\r\n\r\n"


class UnArchiver:
    """Extracts zip-family archives."""

    def __init__(self, use_jvm_chmod: bool = True):
        # named after the build tool option; restores unix permission bits
        self.use_jvm_chmod = use_jvm_chmod

    def can_unpack(self, archive: Path) -> bool:
        return Path(archive).suffix.lower().lstrip(".") in UNPACKABLE_EXTENSIONS

    def unpack(self, archive: Path, destination: Path) -> List[str]:
        """Extract *archive* into *destination*, overwriting existing files.

        Returns the extracted entry names. An archive with an unknown extension
        cannot be unpacked and fails like a corrupt one.
        """
        archive = Path(archive)
        destination = Path(destination)
        if not self.can_unpack(archive):
            raise PackagingError(
                f"Could not unpack file [{archive}]: unknown archive extension [{archive.suffix}]",
                suggestions=[f"Supported extensions: {', '.join(UNPACKABLE_EXTENSIONS)}"],
                error_code="UNPACK_FAILED",
            )

        extracted: List[str] = []
        root = destination.resolve()
        try:
            with zipfile.ZipFile(archive) as zf:
                for info in zf.infolist():
                    target = (destination / info.filename).resolve()
                    if root != target and root not in target.parents:
                        raise PackagingError(
                            f"Entry [{info.filename}] of [{archive}] points outside of [{destination}]",
                            error_code="UNSAFE_ARCHIVE_ENTRY",
                        )
                    zf.extract(info, destination)
                    mode = (info.external_attr >> 16) & 0o777
                    if self.use_jvm_chmod and mode and not info.is_dir():
                        os.chmod(target, mode | stat.S_IRUSR)
                    extracted.append(info.filename)
        except (OSError, zipfile.BadZipFile) as e:
            raise PackagingError(
                f"Error unpacking file [{archive}] to [{destination}]: {e}",
                suggestions=["Check that the dependency file is a valid archive"],
                error_code="UNPACK_FAILED",
            ) from e
        return extracted


class WarArchiver:
    """Writes an archive from an exploded directory."""

    def __init__(
        self,
        include_empty_directories: bool = False,
        recompress_zipped_files: bool = True,
    ):
        self.include_empty_directories = include_empty_directories
        self.recompress_zipped_files = recompress_zipped_files

    def create_archive(
        self,
        directory: Path,
        destination: Path,
        includes: Optional[Sequence[str]] = None,
        excludes: Optional[Sequence[str]] = None,
        expect_web_xml: bool = False,
    ) -> Path:
        """
        Archive *directory* into *destination*.

        The manifest always comes first: the one found at META-INF/MANIFEST.MF in
        *directory*, or a generated one. With *expect_web_xml*, a missing
        WEB-INF/web.xml is fatal.
        """
        directory = Path(directory)
        destination = Path(destination)
        files, directories = DirectoryScanner(directory, includes, excludes).scan()

        if expect_web_xml and not (directory / WEB_XML_PATH).is_file():
            raise MissingWebXmlError(
                f"webxml attribute is required (or pre-existing {WEB_XML_PATH} if executing in update mode)",
                suggestions=[
                    "Provide a web.xml in the webapp sources or through an overlay",
                    "Set fail_on_missing_web_xml to false for fragment builds",
                ],
                error_code="MISSING_WEB_XML",
            )

        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            with zipfile.ZipFile(destination, "w", zipfile.ZIP_DEFLATED) as zf:
                manifest = directory / MANIFEST_PATH
                if manifest.is_file():
                    zf.write(manifest, MANIFEST_PATH)
                else:
                    zf.writestr(_entry(MANIFEST_PATH), default_manifest())

                if self.include_empty_directories:
                    for name in directories:
                        if not any((directory / name).iterdir()):
                            zf.writestr(_entry(name + "/"), "")

                for name in files:
                    if name == MANIFEST_PATH:
                        continue
                    zf.write(directory / name, name, compress_type=self._compression_for(name))
        except OSError as e:
            raise PackagingError(
                f"Error assembling archive [{destination}]: {e}",
                error_code="ARCHIVE_FAILED",
            ) from e

        logger.info(f"Building archive: {destination}")
        return destination

    def _compression_for(self, name: str) -> int:
        if not self.recompress_zipped_files and name.lower().endswith(_COMPRESSED_EXTENSIONS):
            return zipfile.ZIP_STORED
        return zipfile.ZIP_DEFLATED
