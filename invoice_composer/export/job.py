"""
Export Job Module.

One ExportJob tracks a single export invocation through its states:

    Idle -> Preparing -> Rendering -> Encoding -> Done
                 |            |           |
                 +------------+-----------+--> Failed

Text exports (HTML, print, draft) go straight from Preparing to Done.

Author: Invoice Composer Team
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

from invoice_composer.utils.exceptions import ExportError
from invoice_composer.utils.helpers import ensure_directory
from invoice_composer.utils.logger import get_logger

logger = get_logger(__name__)


class ExportKind(str, Enum):
    """Artifact kinds the pipeline can produce."""
    PDF = "pdf"
    HTML = "html"
    PRINT = "print"
    DRAFT = "draft"

    @property
    def label(self) -> str:
        return self.value.upper() if self in (ExportKind.PDF, ExportKind.HTML) else self.value


class ExportState(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    RENDERING = "rendering"
    ENCODING = "encoding"
    DONE = "done"
    FAILED = "failed"


TRANSITIONS: Dict[ExportState, Set[ExportState]] = {
    ExportState.IDLE: {ExportState.PREPARING},
    ExportState.PREPARING: {ExportState.RENDERING, ExportState.DONE, ExportState.FAILED},
    ExportState.RENDERING: {ExportState.ENCODING, ExportState.FAILED},
    ExportState.ENCODING: {ExportState.DONE, ExportState.FAILED},
    ExportState.DONE: set(),
    ExportState.FAILED: set(),
}


class ExportJob:
    """
    State tracker for one export invocation.

    Attributes:
        kind: What is being exported.
        state: Current state.
        history: Every state entered, in order (starting with Idle).
        error: The failure, once the job is Failed.

    Example:
        >>> job = ExportJob(ExportKind.HTML)
        >>> job.advance(ExportState.PREPARING)
        >>> job.advance(ExportState.DONE)
        >>> job.history
        [<ExportState.IDLE: 'idle'>, <ExportState.PREPARING: 'preparing'>, <ExportState.DONE: 'done'>]
    """

    def __init__(self, kind: ExportKind) -> None:
        self.kind = ExportKind(kind)
        self.state = ExportState.IDLE
        self.history: List[ExportState] = [ExportState.IDLE]
        self.error: Optional[Exception] = None

    def advance(self, state: ExportState) -> None:
        """
        Move to ``state``.

        Raises:
            ExportError: If the transition is not allowed.
        """
        if state not in TRANSITIONS[self.state]:
            raise ExportError(
                f"Invalid export transition {self.state.value} -> {state.value}",
                {"export_kind": self.kind.value}
            )
        logger.debug(f"{self.kind.label} export: {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    def fail(self, error: Exception) -> None:
        """Mark the job Failed; a job that already finished is left alone."""
        if self.state in (ExportState.DONE, ExportState.FAILED):
            return
        self.error = error
        self.advance(ExportState.FAILED)

    @property
    def finished(self) -> bool:
        return self.state in (ExportState.DONE, ExportState.FAILED)


@dataclass
class ExportResult:
    """
    A produced artifact.

    Attributes:
        kind: Export kind.
        filename: Suggested download name.
        content: Artifact bytes.
        mime_type: Content type of the artifact.
        page_count: Pages in a PDF artifact.
    """
    kind: ExportKind
    filename: str
    content: bytes
    mime_type: str
    page_count: Optional[int] = None
    metadata: Dict[str, str] = field(default_factory=dict)

    def save(self, directory: Union[str, Path]) -> Path:
        """Write the artifact into ``directory`` under its filename."""
        path = ensure_directory(directory) / self.filename
        path.write_bytes(self.content)
        logger.info(f"Saved {self.kind.label} artifact: {path}")
        return path
