from __future__ import annotations
"""Turns a selection of remote keys into a reconciliation plan."""
import logging
import os
from pathlib import Path
from typing import Iterable, Mapping

from .expander import RecursiveExpander
from .models import ObjectEntry, PlanFailure, PlanMode, ReconciliationPlan, TargetAction
from .resolver import ConflictResolver, DecisionSource, FixedDecisionSource
from .services import ListingFailure
from .storage import LocalStorage

LOGGER = logging.getLogger(__name__)


class PathEscapeError(ValueError):
    """Raised when a remote key would be written outside the target directory."""

    def __init__(self, key: str, base_dir: Path):
        super().__init__(f"Key '{key}' resolves outside of {base_dir}")
        self.key = key
        self.base_dir = base_dir


def resolve_target_path(base_local_dir: str | Path, key: str, delimiter: str = "/") -> Path:
    base = Path(os.path.abspath(base_local_dir))
    parts = [part for part in key.split(delimiter) if part]
    candidate = Path(os.path.normpath(base.joinpath(*parts)))
    if candidate == base or os.path.commonpath([str(base), str(candidate)]) != str(base):
        raise PathEscapeError(key, base)
    return candidate


class ReconciliationPlanner:
    """Expands a selection and settles every resulting target path.

    Entries are handled one at a time so that at most one prompt is pending.
    """

    def __init__(self, expander: RecursiveExpander, storage: LocalStorage | None = None):
        self._expander = expander
        self._storage = storage or LocalStorage()

    @property
    def delimiter(self) -> str:
        return self._expander.delimiter

    def plan(
        self,
        selected_keys: Iterable[str],
        listing_of: Mapping[str, ObjectEntry] | None,
        base_local_dir: str | Path,
        mode: PlanMode = PlanMode.DOWNLOAD,
        decisions: DecisionSource | None = None,
    ) -> ReconciliationPlan:
        listing = listing_of or {}
        plan = ReconciliationPlan(mode=mode)
        selected = set(selected_keys)
        for key in sorted(key for key in selected if not key.strip()):
            plan.failures.append(PlanFailure(key=key, reason="Empty key does not name an object"))
        keys = sorted(key for key in selected if key.strip())
        if mode is PlanMode.DELETE:
            self._plan_delete(keys, listing, plan)
            LOGGER.debug("Delete plan: %d key(s), %d failure(s)", plan.delete_count, plan.failed_count)
            return plan

        entries = self._collect_entries(keys, listing, plan)
        resolver = ConflictResolver(decisions or FixedDecisionSource(), self._storage)
        targets: dict[str, Path] = {}
        for key in entries:
            try:
                target = resolve_target_path(base_local_dir, key, self.delimiter)
            except PathEscapeError as exc:
                LOGGER.warning("Rejecting '%s': %s", key, exc)
                plan.failures.append(PlanFailure(key=key, reason=str(exc)))
                continue
            owner = resolver.claimed_by(target, key)
            if owner is not None:
                plan.failures.append(
                    PlanFailure(key=key, reason=f"Target {target} collides with '{owner}'", target_path=target)
                )
                continue
            resolver.claim(target, key)
            targets[key] = target

        for key, target in targets.items():
            entry = entries[key]
            resolved = resolver.resolve(entry, target)
            if resolved.action is not TargetAction.SKIP and resolved.target_path != target:
                resolver.claim(resolved.target_path, key)
            plan.record(resolved, entry)

        LOGGER.debug(
            "Download plan: %d to fetch, %d reused, %d skipped, %d failed",
            plan.fetch_count,
            plan.reused_count,
            plan.skipped_count,
            plan.failed_count,
        )
        return plan

    def _is_directory(self, key: str, cached: ObjectEntry | None) -> bool:
        if cached is not None and cached.is_directory:
            return True
        return key.endswith(self.delimiter)

    def _directory_prefix(self, key: str) -> str:
        return key if key.endswith(self.delimiter) else key + self.delimiter

    def _collect_entries(
        self,
        keys: list[str],
        listing: Mapping[str, ObjectEntry],
        plan: ReconciliationPlan,
    ) -> dict[str, ObjectEntry]:
        entries: dict[str, ObjectEntry] = {}
        for key in keys:
            cached = listing.get(key)
            if not self._is_directory(key, cached):
                entries[key] = cached or ObjectEntry(
                    key=key,
                    display_name=key.rsplit(self.delimiter, 1)[-1],
                )
                continue
            try:
                expanded = self._expander.expand(self._directory_prefix(key))
            except ListingFailure as exc:
                LOGGER.warning("Could not expand '%s': %s", key, exc)
                plan.failures.append(PlanFailure(key=key, reason=str(exc)))
                continue
            for entry in expanded:
                entries[entry.key] = entry
        return entries

    def _plan_delete(
        self,
        keys: list[str],
        listing: Mapping[str, ObjectEntry],
        plan: ReconciliationPlan,
    ) -> None:
        seen: set[str] = set()
        for key in keys:
            if self._is_directory(key, listing.get(key)):
                try:
                    expanded = self._expander.expand_keys(self._directory_prefix(key))
                except ListingFailure as exc:
                    LOGGER.warning("Could not expand '%s' for deletion: %s", key, exc)
                    plan.failures.append(PlanFailure(key=key, reason=str(exc)))
                    continue
            else:
                expanded = [key]
            for expanded_key in expanded:
                if expanded_key not in seen:
                    seen.add(expanded_key)
                    plan.to_delete.append(expanded_key)
