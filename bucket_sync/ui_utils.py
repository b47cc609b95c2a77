from __future__ import annotations
"""UI-agnostic helpers for formatting listings and sync results."""
from dataclasses import dataclass
from datetime import datetime
from importlib.metadata import PackageNotFoundError, metadata, version

from .models import ObjectEntry, PlanMode, ReconciliationPlan, TransferReport

DIST_NAME = "bucketsync"


@dataclass(frozen=True)
class PackageInfo:
    name: str
    version: str
    summary: str
    homepage: str | None
    repository: str | None
    author: str | None


def load_package_info(dist_name: str = DIST_NAME) -> PackageInfo:
    try:
        distribution_metadata = metadata(dist_name)
        package_version = version(dist_name)
    except PackageNotFoundError:
        return PackageInfo(
            name="Bucket Sync",
            version="",
            summary="Browse an object store and sync folders to local storage.",
            homepage=None,
            repository=None,
            author=None,
        )
    summary = distribution_metadata.get("Summary") or ""
    author = distribution_metadata.get("Author") or distribution_metadata.get("Author-email")
    homepage = distribution_metadata.get("Home-page")
    repository = None
    for entry in distribution_metadata.get_all("Project-URL") or []:
        label, _, link = entry.partition(",")
        label = label.strip().lower()
        url = link.strip()
        if label == "repository":
            repository = url
        elif label == "homepage" and not homepage:
            homepage = url
    return PackageInfo(
        name=distribution_metadata.get("Name"),
        version=package_version,
        summary=summary,
        homepage=homepage or None,
        repository=repository,
        author=author or None,
    )


def format_size(size: int | None) -> str:
    if size is None:
        return "-"
    suffixes = ["B", "KB", "MB", "GB", "TB"]
    value = float(max(size, 0))
    for suffix in suffixes:
        if value < 1024 or suffix == suffixes[-1]:
            return f"{value:.1f} {suffix}" if suffix != "B" else f"{int(value)} {suffix}"
        value /= 1024
    return f"{size} B"


def format_last_modified(last_modified: object) -> str:
    if not last_modified:
        return "-"
    if isinstance(last_modified, datetime):
        return last_modified.strftime("%Y-%m-%d %H:%M:%S %Z").strip() or last_modified.isoformat()
    try:
        return last_modified.strftime("%Y-%m-%d %H:%M:%S %Z").strip() or str(last_modified)
    except AttributeError:
        return str(last_modified)


def format_entry_label(entry: ObjectEntry) -> str:
    if entry.is_directory:
        return f"{entry.display_name}/"
    return f"{entry.display_name} ({format_size(entry.size)})"


def format_plan_summary(plan: ReconciliationPlan) -> str:
    if plan.mode is PlanMode.DELETE:
        message = f"{plan.delete_count} object(s) to delete"
    else:
        message = (
            f"{plan.fetch_count} to download, {plan.reused_count} already present, "
            f"{plan.skipped_count} skipped"
        )
    if plan.failures:
        message += f", {plan.failed_count} failed"
    return message + "."


def format_transfer_summary(report: TransferReport) -> str:
    if report.mode is PlanMode.DELETE:
        message = f"Deleted {len(report.deleted)} object(s)"
    else:
        message = (
            f"Downloaded {len(report.fetched)} file(s), {report.reused} already present, "
            f"{report.skipped} skipped"
        )
    if report.failures:
        message += f", {len(report.failures)} failed"
    if report.cancelled:
        message += " (cancelled)"
    return message + "."
