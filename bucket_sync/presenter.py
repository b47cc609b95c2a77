from __future__ import annotations
"""View-agnostic presenter that wraps controller operations."""
from dataclasses import replace
import logging
from pathlib import Path
import threading
from typing import Callable, Iterable, Mapping

from botocore.exceptions import BotoCoreError, ClientError

from .channel import ConflictPromptFn, DecisionChannel, RenamePromptFn
from .controller import SyncController
from .models import ObjectEntry, Page, ReconciliationPlan, TransferReport
from .profiles import ConnectionProfile
from .settings import AppSettings, SettingsStorage
from .ui_utils import PackageInfo, load_package_info


DispatchFn = Callable[[Callable[[], None]], None]
ErrorFn = Callable[[str], None]
DoneFn = Callable[[], None]

LOGGER = logging.getLogger(__name__)


def _format_error(exc: Exception) -> str:
    return str(exc)


class SyncPresenter:
    """Runs background operations and returns results via callbacks.

    ``dispatch`` schedules a callable on the presentation thread (for example
    ``root.after(0, func)`` in Tk). Prompts raised while planning a download are
    routed through it as well, one at a time.
    """

    def __init__(
        self,
        *,
        controller: SyncController | None = None,
        settings_storage: SettingsStorage | None = None,
        dispatch: DispatchFn | None = None,
    ) -> None:
        self._controller = controller or SyncController()
        self._settings_storage = settings_storage or SettingsStorage()
        self._settings = self._settings_storage.load()
        self._dispatch = dispatch or (lambda func: func())
        self._package_info = load_package_info()
        self._active_channel: DecisionChannel | None = None

    @property
    def settings(self) -> AppSettings:
        return replace(self._settings)

    @property
    def package_info(self) -> PackageInfo:
        return self._package_info

    @property
    def is_connected(self) -> bool:
        return self._controller.is_connected

    def save_settings(self, settings: AppSettings) -> None:
        self._settings = settings
        self._settings_storage.save(settings)

    def update_download_dir(self, path: str) -> None:
        self._settings = replace(self._settings, download_dir=path or "")
        self._settings_storage.save(self._settings)

    def update_last_bucket(self, bucket: str) -> None:
        if not self._settings.remember_last_bucket:
            return
        self._settings = replace(self._settings, last_bucket=bucket or "")
        self._settings_storage.save(self._settings)

    def list_profiles(self) -> list[ConnectionProfile]:
        return self._controller.list_profiles()

    def save_profile(self, profile: ConnectionProfile, *, original_name: str | None = None) -> None:
        self._controller.save_profile(profile, original_name=original_name)

    def delete_profile(self, name: str) -> None:
        self._controller.delete_profile(name)

    def connect(
        self,
        *,
        profile_name: str,
        on_success: Callable[[list[str]], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        LOGGER.debug("Connecting using profile '%s'", profile_name)

        def task() -> list[str]:
            buckets = self._controller.connect_with_profile(profile_name)
            if self._settings.remember_last_bucket:
                self._settings = replace(self._settings, last_connection=profile_name)
                self._settings_storage.save(self._settings)
            return buckets

        self._run(task, on_success, on_error, on_done, label=f"connect '{profile_name}'")

    def refresh_buckets(
        self,
        *,
        on_success: Callable[[list[str]], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        self._run(self._controller.refresh_buckets, on_success, on_error, on_done, label="bucket refresh")

    def browse(
        self,
        *,
        bucket_name: str,
        prefix: str = "",
        continuation_marker: str | None = None,
        on_success: Callable[[Page], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        LOGGER.debug("Browsing '%s' in bucket '%s'", prefix, bucket_name)

        def task() -> Page:
            return self._controller.browse(
                bucket_name=bucket_name,
                prefix=prefix,
                continuation_marker=continuation_marker,
                page_size=self._settings.browse_page_size,
            )

        self._run(task, on_success, on_error, on_done, label=f"browse '{bucket_name}/{prefix}'")

    def preview_text(
        self,
        *,
        bucket_name: str,
        key: str,
        on_success: Callable[[str], None],
        on_error: ErrorFn,
        max_bytes: int | None = 1024 * 1024,
    ) -> None:
        def task() -> str:
            return self._controller.fetch_object_text(bucket_name=bucket_name, key=key, max_bytes=max_bytes)

        self._run(task, on_success, on_error, None, label=f"preview '{key}'")

    def download_selection(
        self,
        *,
        bucket_name: str,
        selected_keys: Iterable[str],
        listing_of: Mapping[str, ObjectEntry] | None,
        on_conflict: ConflictPromptFn,
        on_rename: RenamePromptFn,
        on_success: Callable[[TransferReport], None],
        on_error: ErrorFn,
        target_dir: str | Path | None = None,
        on_planned: Callable[[ReconciliationPlan], None] | None = None,
        on_progress: Callable[[ObjectEntry, int], None] | None = None,
        cancel_requested: Callable[[], bool] | None = None,
        on_done: DoneFn | None = None,
    ) -> None:
        """Plan the selection with interactive conflict prompts, then download it."""
        destination = target_dir or self._settings.download_dir
        if not destination:
            self._dispatch(lambda: on_error("No download directory configured"))
            if on_done:
                self._dispatch(on_done)
            return
        keys = list(selected_keys)
        listing = dict(listing_of or {})
        channel = DecisionChannel(on_conflict=on_conflict, on_rename=on_rename, dispatch=self._dispatch)
        self._active_channel = channel
        progress_callback = None
        if on_progress:
            progress_callback = lambda entry, total: self._dispatch(lambda: on_progress(entry, total))

        def task() -> TransferReport:
            try:
                plan = self._controller.plan_download(
                    bucket_name=bucket_name,
                    selected_keys=keys,
                    listing_of=listing,
                    target_dir=destination,
                    decisions=channel,
                )
            finally:
                if self._active_channel is channel:
                    self._active_channel = None
            if on_planned:
                self._dispatch(lambda: on_planned(plan))
            return self._controller.execute_download(
                bucket_name=bucket_name,
                plan=plan,
                progress_callback=progress_callback,
                cancel_requested=cancel_requested,
            )

        self._run(task, on_success, on_error, on_done, label=f"download from '{bucket_name}'")

    def dismiss_pending_prompt(self) -> bool:
        """Answer the outstanding conflict or rename prompt as dismissed."""
        channel = self._active_channel
        return channel.cancel_pending() if channel else False

    def delete_selection(
        self,
        *,
        bucket_name: str,
        selected_keys: Iterable[str],
        listing_of: Mapping[str, ObjectEntry] | None = None,
        on_success: Callable[[TransferReport], None],
        on_error: ErrorFn,
        on_done: DoneFn | None = None,
    ) -> None:
        keys = list(selected_keys)
        listing = dict(listing_of or {})

        def task() -> TransferReport:
            plan = self._controller.plan_delete(
                bucket_name=bucket_name,
                selected_keys=keys,
                listing_of=listing,
            )
            return self._controller.execute_delete(bucket_name=bucket_name, plan=plan)

        self._run(task, on_success, on_error, on_done, label=f"delete from '{bucket_name}'")

    def _run(
        self,
        func: Callable[[], object],
        on_success: Callable[[object], None],
        on_error: ErrorFn,
        on_done: DoneFn | None,
        *,
        label: str,
    ) -> threading.Thread:
        def task() -> None:
            try:
                result = func()
            except (BotoCoreError, ClientError) as exc:
                LOGGER.exception("Object store error during %s", label)
                self._dispatch(lambda: on_error(_format_error(exc)))
            except Exception as exc:
                LOGGER.exception("Unexpected error during %s", label)
                self._dispatch(lambda: on_error(_format_error(exc)))
            else:
                LOGGER.debug("Finished %s", label)
                self._dispatch(lambda: on_success(result))
            finally:
                if on_done:
                    self._dispatch(on_done)

        thread = threading.Thread(target=task, daemon=True)
        thread.start()
        return thread
