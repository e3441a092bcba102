import logging
from pathlib import Path
from typing import Any, Optional

import pytest
from botocore.exceptions import ClientError

from staticdeploy.config.deploy_config import ConfigGroup, UploadOptions
from staticdeploy.storage.object_store import ObjectStore
from staticdeploy.storage.uploader import S3Uploader


class FakeS3Client:
    """Fake boto3 S3 client that records put_object calls."""
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.bodies: list[Any] = []

    def put_object(self, **kwargs: Any) -> dict[str, Any]:
        """Record the request, reading the body the way botocore would."""
        body = kwargs["Body"]
        self.bodies.append(body)
        call = dict(kwargs)
        call["Body"] = body.read() if hasattr(body, "read") else body
        self.calls.append(call)
        return {"ETag": '"fake-etag"'}


class FailingS3Client(FakeS3Client):
    """Fake S3 client whose put_object always fails with the given error."""
    def __init__(self, error: Optional[Exception] = None) -> None:
        super().__init__()
        self.error = error or ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}},
            "PutObject",
        )

    def put_object(self, **kwargs: Any) -> dict[str, Any]:
        if self.error is None:
            return super().put_object(**kwargs)
        self.bodies.append(kwargs["Body"])
        raise self.error


@pytest.fixture
def group() -> ConfigGroup:
    return ConfigGroup(Bucket="static-site")


@pytest.fixture
def fake_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def failing_client() -> FailingS3Client:
    return FailingS3Client()


@pytest.fixture
def make_uploader(group: ConfigGroup):
    def _make(client, dry_run: bool = False, target: ConfigGroup = None) -> S3Uploader:
        target = target or group
        return S3Uploader(target, UploadOptions(dry_run=dry_run), ObjectStore(target, client=client))
    return _make


@pytest.fixture
def site_dir(tmp_path: Path) -> Path:
    """A small built site: html entry, bundles, compressed DICOMweb metadata."""
    root = tmp_path / "dist"
    files = {
        "index.html": b"<html></html>",
        "app.js": b"console.log(1);",
        "theme/main.css": b"body {}",
        "images/photo.png": b"\x89PNG",
        "studies/1/index.json.gz": b"\x1f\x8bfake-gzip",
    }
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    return root


@pytest.fixture
def restore_root_logging():
    """configure_logging replaces root handlers; put them back afterwards."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
