"""Derive bucket key and object headers from a static file's relative path.

Every rule here works on naming conventions only: no file is opened.
Encoding detection matches ``.gz``/``.br`` anywhere in the name, not only as a
suffix, and existing buckets rely on that.
"""
from __future__ import annotations

import mimetypes
import re
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from staticdeploy.exceptions import EmptyKeyError

COMPRESSED_RE = re.compile(r"((\.br)|(\.gz))$")
INDEX_RE = re.compile(r"/index\.json$")

# Keys CDNs must revalidate: entry pages, study lists, themes, configs and top-level bundles.
NO_CACHE_RE = re.compile(r"(index.html)|(studies$)|(theme/)|(^[a-zA-Z0-9\-_]+\.js)|(config/)")
NO_CACHE = "no-cache"

OCTET_STREAM = "application/octet-stream"
MULTIPART_RELATED = "multipart/related"
IMAGE_JPEG = "image/jpeg"
APPLICATION_JSON = "application/json"

# Ordered, first match wins.
CONTENT_TYPE_FALLBACKS: tuple[tuple[str, str], ...] = (
    ("bulkdata", OCTET_STREAM),
    (".raw", OCTET_STREAM),
    ("frames", MULTIPART_RELATED),
    ("thumbnail", IMAGE_JPEG),
)

# Pinned so results do not depend on the interpreter's built-in table.
STATIC_MIME_TYPES: tuple[tuple[str, str], ...] = (
    (".html", "text/html"),
    (".htm", "text/html"),
    (".css", "text/css"),
    (".js", "text/javascript"),
    (".mjs", "text/javascript"),
    (".json", "application/json"),
    (".map", "application/json"),
    (".webmanifest", "application/manifest+json"),
    (".txt", "text/plain"),
    (".xml", "application/xml"),
    (".svg", "image/svg+xml"),
    (".png", "image/png"),
    (".jpg", "image/jpeg"),
    (".jpeg", "image/jpeg"),
    (".gif", "image/gif"),
    (".ico", "image/vnd.microsoft.icon"),
    (".webp", "image/webp"),
    (".avif", "image/avif"),
    (".woff", "font/woff"),
    (".woff2", "font/woff2"),
    (".ttf", "font/ttf"),
    (".otf", "font/otf"),
    (".wasm", "application/wasm"),
    (".pdf", "application/pdf"),
    (".zip", "application/zip"),
    (".xz", "application/x-xz"),
    (".bz2", "application/x-bzip2"),
    (".dcm", "application/dicom"),
)

_mime_types = mimetypes.MimeTypes()
# .gz/.br are handled by the content encoding rules; every other suffix is a type.
_mime_types.encodings_map.clear()
_mime_types.suffix_map.clear()
for _ext, _type in STATIC_MIME_TYPES:
    _mime_types.add_type(_type, _ext)


@dataclass(frozen=True)
class ObjectDescriptor:
    source_path: str
    bucket_key: str
    content_type: str
    content_encoding: Optional[str] = None
    cache_control: Optional[str] = None
    metadata: Optional[Mapping[str, str]] = None


def _strip_compression(file: str) -> str:
    if COMPRESSED_RE.search(file):
        return file[:-3]
    return file


def file_to_key(file: str, prefix: str | None = None) -> str:
    """Convert a relative file name into a bucket key.

    ``a/b.json.gz`` and ``a/b.json`` share a key, ``a/index.json`` is stored as
    ``a`` and the configured ``prefix`` (ignored when empty or ``/``) is
    prepended. Raises :class:`EmptyKeyError` when nothing is left.
    """
    key = _strip_compression(file.replace("\\", "/"))
    if not key.startswith("/"):
        key = f"/{key}"
    if prefix and prefix != "/":
        key = f"{prefix}{key}"
    if INDEX_RE.search(key):
        key = key[:key.rfind("/index")]
    if key.startswith("/"):
        key = key[1:]
    if not key:
        raise EmptyKeyError(file)
    return key


def file_to_content_type(file: str) -> str:
    src = _strip_compression(file)
    content_type, _ = _mime_types.guess_type(src, strict=False)
    if content_type:
        return content_type
    for marker, fallback in CONTENT_TYPE_FALLBACKS:
        if marker in src:
            return fallback
    return APPLICATION_JSON


def file_to_content_encoding(file: str) -> str | None:
    if ".br" in file:
        return "brotli"
    if ".gz" in file:
        return "gzip"
    return None


def key_to_cache_control(key: str, on_no_cache: Callable[[str], None] | None = None) -> str | None:
    """Return ``no-cache`` for keys that must always be revalidated.

    ``on_no_cache`` is called with the key when the policy applies, so callers
    can record it without this function doing any logging itself.
    """
    if not NO_CACHE_RE.search(key):
        return None
    if on_no_cache is not None:
        on_no_cache(key)
    return NO_CACHE


def hash_to_metadata(hash: str | None) -> dict[str, str] | None:
    if hash:
        return {"hash": hash}
    return None


def to_local_path(dir: str | None, file: str) -> str:
    if not dir:
        return file
    return f"{dir}/{file}"


def describe(
    file: str,
    hash: str | None = None,
    prefix: str | None = None,
    on_no_cache: Callable[[str], None] | None = None,
) -> ObjectDescriptor:
    key = file_to_key(file, prefix)
    return ObjectDescriptor(
        source_path=file,
        bucket_key=key,
        content_type=file_to_content_type(file),
        content_encoding=file_to_content_encoding(file),
        cache_control=key_to_cache_control(key, on_no_cache),
        metadata=hash_to_metadata(hash),
    )
