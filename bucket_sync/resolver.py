from __future__ import annotations
"""Per-file conflict detection and the interactive decisions that settle it."""
import logging
import os
from pathlib import Path
from typing import Optional, Protocol

from .models import (
    CheckResult,
    ConflictDecision,
    ConflictRequest,
    ObjectEntry,
    RenameRequest,
    ResolvedTarget,
    TargetAction,
)
from .storage import LocalStorage

LOGGER = logging.getLogger(__name__)


class DecisionSource(Protocol):
    """Answers conflict and rename prompts. ``None`` means the prompt was dismissed."""

    def decide_conflict(self, request: ConflictRequest) -> Optional[ConflictDecision]:
        ...

    def request_rename(self, request: RenameRequest) -> Optional[str]:
        ...


class FixedDecisionSource:
    """Answers every conflict the same way without asking anyone."""

    def __init__(self, decision: ConflictDecision = ConflictDecision.SKIP):
        self._decision = decision

    def decide_conflict(self, request: ConflictRequest) -> Optional[ConflictDecision]:
        return self._decision

    def request_rename(self, request: RenameRequest) -> Optional[str]:
        return None


def suggest_rename(name: str) -> str:
    """Insert `` (1)`` before the extension: ``report.pdf`` -> ``report (1).pdf``."""
    base, extension = os.path.splitext(name)
    return f"{base} (1){extension}"


class ConflictResolver:
    """Classifies a target path and, on conflict, asks the decision source.

    Only reads from local storage. Target paths claimed by other keys of the
    current run, or nested inside or around them, are never considered free.
    """

    def __init__(
        self,
        decisions: DecisionSource,
        storage: LocalStorage | None = None,
    ):
        self._decisions = decisions
        self._storage = storage or LocalStorage()
        self._claims: dict[Path, str] = {}
        self._claimed_below: dict[Path, set[str]] = {}

    def claim(self, path: Path, key: str) -> None:
        self._claims[path] = key
        for parent in path.parents:
            self._claimed_below.setdefault(parent, set()).add(key)

    def claimed_by(self, path: Path, key: str) -> str | None:
        """Return another key whose target collides with ``path``.

        Collisions include the same path, a claimed file where ``path`` needs a
        directory, and claimed files below ``path``.
        """
        for candidate in (path, *path.parents):
            owner = self._claims.get(candidate)
            if owner is not None and owner != key:
                return owner
        others = self._claimed_below.get(path, set()) - {key}
        return min(others) if others else None

    def check(self, entry: ObjectEntry, target_path: Path) -> CheckResult:
        if self.claimed_by(target_path, entry.key) is not None:
            return CheckResult.NEEDS_DECISION
        if not self._storage.exists(target_path):
            return CheckResult.NO_CONFLICT
        if entry.size is None:
            # Without a remote size the local file cannot be shown to match.
            return CheckResult.NEEDS_DECISION
        try:
            local_size = self._storage.size_of(target_path)
        except OSError:
            return CheckResult.NEEDS_DECISION
        if local_size == entry.size:
            return CheckResult.REUSE
        return CheckResult.NEEDS_DECISION

    def resolve(self, entry: ObjectEntry, target_path: Path) -> ResolvedTarget:
        result = self.check(entry, target_path)
        if result is CheckResult.NO_CONFLICT:
            return ResolvedTarget(TargetAction.FETCH, target_path)
        if result is CheckResult.REUSE:
            LOGGER.debug("Reusing existing file %s for '%s'", target_path, entry.key)
            return ResolvedTarget(TargetAction.REUSE, target_path)

        decision = self._decisions.decide_conflict(ConflictRequest(entry=entry, target_path=target_path))
        LOGGER.debug("Conflict on %s for '%s' resolved as %s", target_path, entry.key, decision)
        if decision is ConflictDecision.OVERWRITE:
            return ResolvedTarget(TargetAction.FETCH, target_path)
        if decision is ConflictDecision.RENAME:
            return RenameLoop(self, self._decisions).run(entry, target_path)
        return ResolvedTarget(TargetAction.SKIP, target_path)


class RenameLoop:
    """Keeps asking for another name until one is free or the user gives up."""

    def __init__(self, resolver: ConflictResolver, decisions: DecisionSource):
        self._resolver = resolver
        self._decisions = decisions

    def run(self, entry: ObjectEntry, target_path: Path) -> ResolvedTarget:
        current = target_path
        while True:
            request = RenameRequest(
                entry=entry,
                current_target_path=current,
                suggested_name=suggest_rename(current.name),
            )
            answer = self._decisions.request_rename(request)
            if answer is None or not answer.strip():
                LOGGER.debug("Rename for '%s' cancelled", entry.key)
                return ResolvedTarget(TargetAction.SKIP, target_path)

            candidate = Path(answer.strip())
            if not candidate.is_absolute():
                candidate = current.parent / candidate
            candidate = Path(os.path.normpath(candidate))
            result = self._resolver.check(entry, candidate)
            if result is CheckResult.NO_CONFLICT:
                return ResolvedTarget(TargetAction.FETCH, candidate)
            if result is CheckResult.REUSE:
                return ResolvedTarget(TargetAction.REUSE, candidate)
            current = candidate
