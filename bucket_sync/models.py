from __future__ import annotations
"""Data models for listings, conflict decisions and reconciliation plans."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class ObjectEntry:
    """A file or virtual directory in the remote key space."""

    key: str
    display_name: str
    is_directory: bool = False
    size: Optional[int] = None
    last_modified: Optional[datetime] = None


@dataclass(frozen=True)
class ObjectSummary:
    """Object metadata exactly as reported by one listing response."""

    key: str
    size: Optional[int] = None
    last_modified: Optional[datetime] = None


@dataclass
class ObjectPage:
    """Raw result of a single listing request against the object store."""

    common_prefixes: list[str] = field(default_factory=list)
    objects: list[ObjectSummary] = field(default_factory=list)
    next_marker: Optional[str] = None
    is_truncated: bool = False


@dataclass
class Page:
    """A page of entries ready for display."""

    entries: list[ObjectEntry] = field(default_factory=list)
    continuation_marker: Optional[str] = None
    is_truncated: bool = False

    def __post_init__(self) -> None:
        if not self.is_truncated:
            self.continuation_marker = None

    @property
    def directories(self) -> list[ObjectEntry]:
        return [entry for entry in self.entries if entry.is_directory]

    @property
    def files(self) -> list[ObjectEntry]:
        return [entry for entry in self.entries if not entry.is_directory]


class ConflictDecision(Enum):
    OVERWRITE = "overwrite"
    RENAME = "rename"
    SKIP = "skip"


class CheckResult(Enum):
    NO_CONFLICT = "no_conflict"
    REUSE = "reuse"
    NEEDS_DECISION = "needs_decision"


class TargetAction(Enum):
    FETCH = "fetch"
    REUSE = "reuse"
    SKIP = "skip"


class PlanMode(Enum):
    DOWNLOAD = "download"
    DELETE = "delete"


@dataclass(frozen=True)
class ConflictRequest:
    """Raised when a target path exists and is not provably the same file."""

    entry: ObjectEntry
    target_path: Path


@dataclass(frozen=True)
class RenameRequest:
    entry: ObjectEntry
    current_target_path: Path
    suggested_name: str


@dataclass(frozen=True)
class ResolvedTarget:
    """Final outcome for one entry and the local path it applies to."""

    action: TargetAction
    target_path: Path


@dataclass(frozen=True)
class PlanFailure:
    key: str
    reason: str
    target_path: Optional[Path] = None


@dataclass
class ReconciliationPlan:
    """Per-entry outcome of a reconciliation run.

    ``to_fetch``, ``reused`` and ``skipped`` are keyed by local target path and
    never share a path. Entries that could not be planned at all are listed in
    ``failures``. Delete runs only fill ``to_delete``.
    """

    mode: PlanMode = PlanMode.DOWNLOAD
    to_fetch: dict[Path, ObjectEntry] = field(default_factory=dict)
    reused: set[Path] = field(default_factory=set)
    skipped: set[Path] = field(default_factory=set)
    to_delete: list[str] = field(default_factory=list)
    failures: list[PlanFailure] = field(default_factory=list)

    @property
    def fetch_count(self) -> int:
        return len(self.to_fetch)

    @property
    def reused_count(self) -> int:
        return len(self.reused)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def delete_count(self) -> int:
        return len(self.to_delete)

    @property
    def entry_count(self) -> int:
        if self.mode is PlanMode.DELETE:
            return self.delete_count
        return self.fetch_count + self.reused_count + self.skipped_count

    def record(self, resolved: ResolvedTarget, entry: ObjectEntry) -> None:
        if resolved.action is TargetAction.FETCH:
            self.to_fetch[resolved.target_path] = entry
        elif resolved.action is TargetAction.REUSE:
            self.reused.add(resolved.target_path)
        else:
            self.skipped.add(resolved.target_path)


@dataclass
class TransferReport:
    """Outcome of executing a plan against the object store."""

    mode: PlanMode = PlanMode.DOWNLOAD
    fetched: list[Path] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    reused: int = 0
    skipped: int = 0
    failures: list[PlanFailure] = field(default_factory=list)
    cancelled: bool = False
