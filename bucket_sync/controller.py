from __future__ import annotations
"""Controller coordinating browsing, planning and executing a sync."""

from functools import partial
import logging
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional

from botocore.exceptions import BotoCoreError, ClientError

from .expander import RecursiveExpander
from .listing import MAX_KEYS, PaginatedLister
from .models import ObjectEntry, Page, PlanFailure, PlanMode, ReconciliationPlan, TransferReport
from .planner import ReconciliationPlanner
from .profiles import ConnectionProfile, ProfileStorage
from .resolver import DecisionSource
from .services import ObjectStoreService, TransferCancelledError
from .storage import LocalStorage

ProgressFn = Callable[[ObjectEntry, int], None]

LOGGER = logging.getLogger(__name__)


class NotConnectedError(RuntimeError):
    """Raised when an object store operation is attempted before connecting."""


class SyncController:
    """Coordinates user actions with the :class:`ObjectStoreService`."""

    def __init__(
        self,
        service: ObjectStoreService | None = None,
        storage: ProfileStorage | None = None,
        local_storage: LocalStorage | None = None,
    ):
        self._service = service or ObjectStoreService()
        self._storage = storage or ProfileStorage()
        self._local = local_storage or LocalStorage()
        self._connection_params: dict[str, str] | None = None
        self._profiles: list[ConnectionProfile] = self._storage.load()
        self._selected_profile: str | None = None

    @property
    def is_connected(self) -> bool:
        return self._connection_params is not None

    @property
    def selected_profile(self) -> str | None:
        return self._selected_profile

    def list_profiles(self) -> list[ConnectionProfile]:
        return list(self._profiles)

    def save_profile(self, profile: ConnectionProfile, *, original_name: str | None = None) -> None:
        if original_name and original_name != profile.name:
            self._profiles = [p for p in self._profiles if p.name != original_name]
        self._upsert_profile(profile)
        self._storage.save(self._profiles)

    def delete_profile(self, name: str) -> None:
        before = len(self._profiles)
        self._profiles = [p for p in self._profiles if p.name != name]
        if len(self._profiles) == before:
            raise ValueError(f"Profile '{name}' does not exist")
        if self._selected_profile == name:
            self._selected_profile = None
        self._storage.save(self._profiles)

    def get_profile(self, name: str) -> ConnectionProfile:
        for profile in self._profiles:
            if profile.name == name:
                return profile
        raise ValueError(f"Profile '{name}' does not exist")

    def connect_with_profile(self, name: str) -> list[str]:
        profile = self.get_profile(name)
        buckets = self.connect(**profile.connection_params())
        self._selected_profile = name
        return buckets

    def connect(
        self,
        *,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        region_name: str | None = None,
    ) -> list[str]:
        connection_params = {
            "endpoint_url": endpoint_url,
            "access_key": access_key,
            "secret_key": secret_key,
        }
        if region_name:
            connection_params["region_name"] = region_name
        buckets = self._service.list_buckets(**connection_params)
        self._connection_params = connection_params
        return buckets

    def refresh_buckets(self) -> list[str]:
        params = self._require_connection()
        return self._service.list_buckets(**params)

    def lister_for(self, bucket_name: str, *, page_size: int = MAX_KEYS) -> PaginatedLister:
        params = self._require_connection()
        fetch_page = partial(self._service.list_objects_page, **params)
        return PaginatedLister(fetch_page, bucket_name, page_size=page_size)

    def browse(
        self,
        *,
        bucket_name: str,
        prefix: str = "",
        continuation_marker: str | None = None,
        page_size: int = MAX_KEYS,
    ) -> Page:
        lister = self.lister_for(bucket_name, page_size=page_size)
        return lister.list_prefix(prefix, continuation_marker)

    def plan_download(
        self,
        *,
        bucket_name: str,
        selected_keys: Iterable[str],
        listing_of: Mapping[str, ObjectEntry] | None,
        target_dir: str | Path,
        decisions: DecisionSource | None = None,
    ) -> ReconciliationPlan:
        planner = self._planner_for(bucket_name)
        return planner.plan(selected_keys, listing_of, target_dir, PlanMode.DOWNLOAD, decisions)

    def plan_delete(
        self,
        *,
        bucket_name: str,
        selected_keys: Iterable[str],
        listing_of: Mapping[str, ObjectEntry] | None = None,
    ) -> ReconciliationPlan:
        planner = self._planner_for(bucket_name)
        return planner.plan(selected_keys, listing_of, ".", PlanMode.DELETE)

    def execute_download(
        self,
        *,
        bucket_name: str,
        plan: ReconciliationPlan,
        progress_callback: Optional[ProgressFn] = None,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ) -> TransferReport:
        params = self._require_connection()
        report = TransferReport(
            mode=PlanMode.DOWNLOAD,
            reused=plan.reused_count,
            skipped=plan.skipped_count,
            failures=list(plan.failures),
        )
        pending = list(plan.to_fetch.items())
        while pending:
            target, entry = pending.pop(0)
            entry_progress = None
            if progress_callback:
                entry_progress = partial(progress_callback, entry)
            try:
                self._local.create_directories(self._local.parent_directory_of(target))
                self._service.download_object(
                    bucket_name=bucket_name,
                    key=entry.key,
                    destination=str(target),
                    progress_callback=entry_progress,
                    cancel_requested=cancel_requested,
                    **params,
                )
            except TransferCancelledError:
                LOGGER.debug("Download cancelled at '%s'", entry.key)
                report.cancelled = True
                report.skipped += 1 + len(pending)
                break
            except (BotoCoreError, ClientError, OSError) as exc:
                LOGGER.warning("Download of '%s' failed: %s", entry.key, exc)
                report.failures.append(PlanFailure(key=entry.key, reason=str(exc), target_path=target))
            else:
                report.fetched.append(target)
        return report

    def execute_delete(self, *, bucket_name: str, plan: ReconciliationPlan) -> TransferReport:
        params = self._require_connection()
        report = TransferReport(mode=PlanMode.DELETE, failures=list(plan.failures))
        for key in plan.to_delete:
            try:
                self._service.delete_object(bucket_name=bucket_name, key=key, **params)
            except (BotoCoreError, ClientError) as exc:
                LOGGER.warning("Delete of '%s' failed: %s", key, exc)
                report.failures.append(PlanFailure(key=key, reason=str(exc)))
            else:
                report.deleted.append(key)
        return report

    def fetch_object_text(self, *, bucket_name: str, key: str, max_bytes: int | None = None) -> str:
        params = self._require_connection()
        return self._service.fetch_object_text(
            bucket_name=bucket_name,
            key=key,
            max_bytes=max_bytes,
            **params,
        )

    def _planner_for(self, bucket_name: str) -> ReconciliationPlanner:
        expander = RecursiveExpander(self.lister_for(bucket_name))
        return ReconciliationPlanner(expander, self._local)

    def _require_connection(self) -> dict[str, str]:
        if not self._connection_params:
            raise NotConnectedError("Not connected to the object store")
        return self._connection_params

    def _upsert_profile(self, profile: ConnectionProfile) -> None:
        for idx, existing in enumerate(self._profiles):
            if existing.name == profile.name:
                self._profiles[idx] = profile
                break
        else:
            self._profiles.append(profile)
