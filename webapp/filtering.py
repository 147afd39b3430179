"""Token substitution applied to filtered resources."""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from loguru import logger

from webapp.errors import PackagingError

DEFAULT_DELIMITERS = ["${*}", "@"]
DEFAULT_NON_FILTERED_EXTENSIONS = ["jpg", "jpeg", "gif", "bmp", "png"]
DEFAULT_ENCODING = "utf-8"

_XML_ENCODING = re.compile(rb"""<\?xml[^>]*encoding\s*=\s*["']([A-Za-z0-9._-]+)["']""")


@dataclass(frozen=True)
class Delimiter:
    begin: str
    end: str

    @classmethod
    def parse(cls, value: str) -> "Delimiter":
        """``${*}`` splits around the star; a delimiter without star is used on both sides."""
        if "*" in value:
            begin, end = value.split("*", 1)
            return cls(begin, end)
        return cls(value, value)

    def pattern(self, escape_string: Optional[str] = None) -> "re.Pattern":
        escape = f"(?P<escape>{re.escape(escape_string)})?" if escape_string else ""
        return re.compile(f"{escape}{re.escape(self.begin)}(?P<key>[^\\r\\n]+?){re.escape(self.end)}")


def build_delimiters(delimiters: Optional[Iterable[str]], use_default_delimiters: bool = True) -> List[Delimiter]:
    """Configured delimiters, preceded by the defaults unless disabled."""
    values: List[str] = []
    if use_default_delimiters or not delimiters:
        values.extend(DEFAULT_DELIMITERS)
    for value in delimiters or []:
        if value not in values:
            values.append(value)
    return [Delimiter.parse(value) for value in values]


def load_properties(path: Path) -> Dict[str, str]:
    """Read a Java-style ``.properties`` file (``key=value`` or ``key: value``)."""
    values: Dict[str, str] = {}
    try:
        lines = Path(path).read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise PackagingError(
            f"Could not read filter file [{path}]: {e}",
            suggestions=["Check the filters configured for the project"],
            error_code="FILTER_FILE_UNREADABLE",
        ) from e

    for line in lines:
        line = line.strip()
        if not line or line[0] in "#!":
            continue
        match = re.match(r"([^=:\s]+)\s*[=:\s]\s*(.*)", line)
        if match:
            values[match.group(1)] = match.group(2)
        else:
            values[line] = ""
    return values


def detect_xml_encoding(path: Path, default: Optional[str] = None) -> Optional[str]:
    """Encoding declared in the XML prolog, or *default*."""
    with open(path, "rb") as f:
        head = f.read(256)
    match = _XML_ENCODING.search(head)
    if match:
        return match.group(1).decode("ascii")
    return default


class FileFilter:
    """Copies files while replacing delimited tokens with known values."""

    def __init__(self, values: Optional[Dict[str, str]] = None, escape_string: Optional[str] = None):
        self.values = dict(values or {})
        self.escape_string = escape_string

    def filter_text(self, text: str, delimiters: List[Delimiter]) -> str:
        for delimiter in delimiters:
            text = delimiter.pattern(self.escape_string).sub(self._replacement, text)
        return text

    def _replacement(self, match: "re.Match") -> str:
        whole = match.group(0)
        if match.groupdict().get("escape"):
            # escaped token stays literal, minus the escape string
            return whole[len(match.group("escape")):]
        key = match.group("key")
        if key in self.values:
            return str(self.values[key])
        return whole

    def copy_file(
        self,
        source: Path,
        destination: Path,
        delimiters: List[Delimiter],
        encoding: Optional[str] = None,
    ) -> None:
        encoding = encoding or DEFAULT_ENCODING
        try:
            # newline="" keeps the source line endings
            with open(source, encoding=encoding, newline="") as f:
                text = f.read()
            destination = Path(destination)
            destination.parent.mkdir(parents=True, exist_ok=True)
            with open(destination, "w", encoding=encoding, newline="") as f:
                f.write(self.filter_text(text, delimiters))
        except (OSError, UnicodeError, LookupError) as e:
            raise PackagingError(
                f"Could not filter [{source}] to [{destination}]: {e}",
                suggestions=[
                    "Check the resource encoding",
                    "Add the file extension to the non-filtered extensions",
                ],
                error_code="FILTERING_FAILED",
            ) from e
        logger.trace(f"Filtered {source} -> {destination} ({encoding})")
