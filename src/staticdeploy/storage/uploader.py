from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, BinaryIO, Mapping

from staticdeploy.config.deploy_config import ConfigGroup, UploadOptions, config_group
from staticdeploy.exceptions import LocalIOError, StorageTransportError
from staticdeploy.logging_config import get_logger, with_context
from staticdeploy.storage.object_store import ObjectStore
from staticdeploy.storage.path_mapper import describe, to_local_path


logger = get_logger(__name__)


class UploadOutcome(str, Enum):
    DRY_RUN_SKIP = "dry-run-skip"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


def _open_source(path: str) -> BinaryIO:
    try:
        return open(path, "rb")
    except OSError as exc:
        raise LocalIOError(exc.errno, f"Cannot open source file: {exc.strerror}", path) from exc


class S3Uploader:
    """Uploads single files of a static tree into the bucket of one config group.

    Each call is independent; the only shared state is the object store, whose
    boto3 client is safe to use from several threads at once.
    """

    def __init__(self, group: ConfigGroup, options: UploadOptions, store: ObjectStore | None = None):
        self.group = group
        self.options = options
        self.store = store if store is not None else ObjectStore(group)

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any],
        name: str,
        options: UploadOptions,
        client=None,
    ) -> "S3Uploader":
        group = config_group(config, name)
        return cls(group, options, ObjectStore(group, client=client))

    def _log_no_cache(self, key: str) -> None:
        logger.info("no-cache set on key=%s", key)

    def upload(self, dir: str | None, file: str, hash: str | None = None, content_size: int | None = None) -> UploadOutcome:
        """Upload ``file`` (relative to ``dir``) to the group's bucket.

        Storage and local read failures are logged and reported as
        ``UploadOutcome.FAILED`` so sibling uploads carry on. An
        :class:`EmptyKeyError` for an unmappable path is raised.
        """
        descriptor = describe(file, hash=hash, prefix=self.group.path, on_no_cache=self._log_no_cache)
        log = with_context(logger, file=file, key=descriptor.bucket_key, bucket=self.group.bucket)
        log.info(
            "Uploading file=%s content_type=%s content_encoding=%s key=%s size=%s metadata=%s bucket=%s",
            file,
            descriptor.content_type,
            descriptor.content_encoding,
            descriptor.bucket_key,
            content_size,
            descriptor.metadata,
            self.group.bucket,
        )
        file_name = to_local_path(dir, file)
        try:
            body = _open_source(file_name)
        except LocalIOError:
            log.exception("Error reading file=%s key=%s", file_name, descriptor.bucket_key)
            return UploadOutcome.FAILED

        with body:
            if self.options.dry_run:
                log.info("Dry run - no upload key=%s", descriptor.bucket_key)
                return UploadOutcome.DRY_RUN_SKIP
            try:
                self.store.put_object(
                    key=descriptor.bucket_key,
                    body=body,
                    content_type=descriptor.content_type,
                    content_encoding=descriptor.content_encoding,
                    cache_control=descriptor.cache_control,
                    metadata=descriptor.metadata,
                    content_length=content_size,
                )
            except (StorageTransportError, OSError):
                log.exception("Error sending file=%s key=%s", file, descriptor.bucket_key)
                return UploadOutcome.FAILED
        return UploadOutcome.SUCCEEDED

    async def upload_async(
        self, dir: str | None, file: str, hash: str | None = None, content_size: int | None = None
    ) -> UploadOutcome:
        # Offload the blocking boto3 call so callers can gather many uploads.
        return await asyncio.to_thread(self.upload, dir, file, hash, content_size)
