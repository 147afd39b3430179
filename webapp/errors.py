"""Error types raised while assembling a webapp."""

from enum import Enum
from typing import List, Optional


class ErrorKind(str, Enum):
    """Broad failure categories of a packaging run."""

    CONFIGURATION = "configuration"
    IO = "io"
    MISSING_WEB_XML = "missing_web_xml"


class PackagingError(Exception):
    """Packaging failure with actionable guidance."""

    kind = ErrorKind.IO

    def __init__(
        self,
        message: str,
        suggestions: Optional[List[str]] = None,
        owner_id: Optional[str] = None,
        task_name: Optional[str] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.suggestions = suggestions or []
        self.owner_id = owner_id
        self.task_name = task_name
        self.error_code = error_code

    def __str__(self) -> str:
        result = self.message
        if self.task_name:
            result = f"[{self.task_name}] {result}"
        if self.error_code:
            result += f" (Code: {self.error_code})"
        return result


class OverlayConfigurationError(PackagingError):
    """Invalid overlay configuration, detected before any file is written."""

    kind = ErrorKind.CONFIGURATION


class MissingWebXmlError(PackagingError):
    """The assembled webapp has no WEB-INF/web.xml and one is required."""

    kind = ErrorKind.MISSING_WEB_XML
