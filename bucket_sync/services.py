from __future__ import annotations
"""Transport layer for the object store, backed by boto3."""
from typing import Callable, Optional

import boto3
from botocore.client import Config
from botocore.exceptions import BotoCoreError, ClientError

from .models import ObjectPage, ObjectSummary


class TransferCancelledError(RuntimeError):
    """Raised when a download is cancelled by the caller."""


class ListingFailure(RuntimeError):
    """Raised when a listing request against the object store fails."""

    def __init__(self, bucket: str, prefix: str, message: str):
        super().__init__(message)
        self.bucket = bucket
        self.prefix = prefix


class ObjectStoreService:
    """Encapsulates object store calls independent of any UI technology."""

    def __init__(self, client_factory: Callable[..., object] | None = None):
        self._client_factory = client_factory or boto3.client

    def list_buckets(
        self,
        *,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        region_name: str | None = None,
        client=None,
    ) -> list[str]:
        """Return the available bucket names in ascending order.

        With ``region_name`` set, buckets the response places in another region
        are left out. Buckets without a reported region are always kept.
        """

        client = client or self._create_client(endpoint_url, access_key, secret_key, region_name)
        buckets_response = client.list_buckets()
        return sorted(
            bucket["Name"]
            for bucket in buckets_response.get("Buckets", [])
            if not region_name or bucket.get("BucketRegion") in (None, region_name)
        )

    def list_objects_page(
        self,
        *,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        bucket_name: str,
        region_name: str | None = None,
        prefix: str = "",
        delimiter: str | None = "/",
        max_keys: int = 1000,
        continuation_token: str | None = None,
    ) -> ObjectPage:
        """Request exactly one listing page.

        Raises:
            ListingFailure: when the store rejects the request or cannot be reached.
        """
        client = self._create_client(endpoint_url, access_key, secret_key, region_name)
        list_params = {"Bucket": bucket_name, "MaxKeys": max_keys}
        if prefix:
            list_params["Prefix"] = prefix
        if delimiter:
            list_params["Delimiter"] = delimiter
        if continuation_token:
            list_params["ContinuationToken"] = continuation_token

        try:
            response = client.list_objects_v2(**list_params)
        except (ClientError, BotoCoreError) as exc:
            raise ListingFailure(bucket_name, prefix, str(exc)) from exc

        objects = [
            ObjectSummary(
                key=obj.get("Key", ""),
                size=obj.get("Size"),
                last_modified=obj.get("LastModified"),
            )
            for obj in response.get("Contents", [])
        ]
        prefixes = [common["Prefix"] for common in response.get("CommonPrefixes", [])]
        return ObjectPage(
            common_prefixes=prefixes,
            objects=objects,
            next_marker=response.get("NextContinuationToken"),
            is_truncated=bool(response.get("IsTruncated", False)),
        )

    def get_object_stream(
        self,
        *,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        bucket_name: str,
        key: str,
        region_name: str | None = None,
    ):
        """Return the streaming body of an object."""

        client = self._create_client(endpoint_url, access_key, secret_key, region_name)
        response = client.get_object(Bucket=bucket_name, Key=key)
        return response["Body"]

    def fetch_object_text(
        self,
        *,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        bucket_name: str,
        key: str,
        region_name: str | None = None,
        encoding: str = "utf-8",
        max_bytes: int | None = None,
    ) -> str:
        """Read a small object (README, notes) and decode it as text."""

        body = self.get_object_stream(
            endpoint_url=endpoint_url,
            access_key=access_key,
            secret_key=secret_key,
            bucket_name=bucket_name,
            key=key,
            region_name=region_name,
        )
        try:
            data = body.read(max_bytes) if max_bytes else body.read()
        finally:
            body.close()
        return data.decode(encoding, errors="replace")

    def download_object(
        self,
        *,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        bucket_name: str,
        key: str,
        destination: str,
        region_name: str | None = None,
        progress_callback: Optional[Callable[[int], None]] = None,
        cancel_requested: Optional[Callable[[], bool]] = None,
    ) -> None:
        """Download an object to the provided destination path."""

        client = self._create_client(endpoint_url, access_key, secret_key, region_name)
        callback = self._build_transfer_callback(progress_callback, cancel_requested)
        client.download_file(bucket_name, key, destination, Callback=callback)

    def delete_object(
        self,
        *,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        bucket_name: str,
        key: str,
        region_name: str | None = None,
    ) -> None:
        """Delete an object from the target bucket/key."""

        client = self._create_client(endpoint_url, access_key, secret_key, region_name)
        client.delete_object(Bucket=bucket_name, Key=key)

    def _create_client(
        self,
        endpoint_url: str,
        access_key: str,
        secret_key: str,
        region_name: str | None = None,
    ):
        config = Config(signature_version="s3v4")
        kwargs = {
            "endpoint_url": endpoint_url,
            "aws_access_key_id": access_key,
            "aws_secret_access_key": secret_key,
            "config": config,
        }
        if region_name:
            kwargs["region_name"] = region_name
        return self._client_factory("s3", **kwargs)

    def _build_transfer_callback(
        self,
        progress_callback: Optional[Callable[[int], None]],
        cancel_requested: Optional[Callable[[], bool]],
    ):
        if not progress_callback and not cancel_requested:
            return None

        transferred = 0

        def _callback(bytes_amount: int) -> None:
            nonlocal transferred
            if cancel_requested and cancel_requested():
                raise TransferCancelledError("Transfer cancelled by user")
            transferred += bytes_amount
            if progress_callback:
                progress_callback(transferred)
            if cancel_requested and cancel_requested():
                raise TransferCancelledError("Transfer cancelled by user")

        return _callback
