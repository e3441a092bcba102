"""Upload a built static site directory into an S3 bucket."""

from __future__ import annotations

import argparse
import hashlib
import os
from collections import Counter
from pathlib import Path

from staticdeploy.config.deploy_config import DEFAULT_GROUP, UploadOptions, config_from_env, load_config
from staticdeploy.exceptions import ConfigError, EmptyKeyError
from staticdeploy.logging_config import configure_logging, get_logger
from staticdeploy.storage.uploader import S3Uploader, UploadOutcome

logger = get_logger(__name__)

HASH_CHUNK_SIZE = 1024 * 1024


def file_md5(path: Path) -> str:
    digest = hashlib.md5()
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def list_files(root: Path) -> list[tuple[str, str, int]]:
    """Return ``(relative_path, md5, size)`` for every file under ``root``, sorted by path."""
    files = []
    for path in sorted(p for p in root.rglob("*") if p.is_file()):
        rel = path.relative_to(root).as_posix()
        files.append((rel, file_md5(path), path.stat().st_size))
    return files


def deploy_directory(uploader: S3Uploader, root: Path) -> Counter:
    outcomes: Counter = Counter()
    for rel, file_hash, size in list_files(root):
        outcome = uploader.upload(str(root), rel, file_hash, size)
        outcomes[outcome] += 1
    logger.info(
        "Deploy complete: root=%s bucket=%s succeeded=%s failed=%s dry_run_skipped=%s",
        root,
        uploader.group.bucket,
        outcomes[UploadOutcome.SUCCEEDED],
        outcomes[UploadOutcome.FAILED],
        outcomes[UploadOutcome.DRY_RUN_SKIP],
    )
    return outcomes


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Upload a static file tree to an S3 bucket.")
    parser.add_argument("directory", type=Path, help="Directory whose contents are uploaded.")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON file of named groups; defaults to STATIC_DEPLOY_* / AWS_* environment variables.",
    )
    parser.add_argument("--group", default=DEFAULT_GROUP, help="Configuration group to deploy to.")
    parser.add_argument("--dry-run", action="store_true", help="Log planned uploads without sending them.")
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"), help="Logging level.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(level=args.log_level, service="static-deploy")
    if not args.directory.is_dir():
        logger.error("Not a directory: path=%s", args.directory)
        return 2
    try:
        config = load_config(args.config) if args.config else config_from_env(args.group)
        uploader = S3Uploader.from_config(config, args.group, UploadOptions(dry_run=args.dry_run))
        outcomes = deploy_directory(uploader, args.directory)
    except (ConfigError, EmptyKeyError) as exc:
        logger.error("Deploy aborted: directory=%s group=%s error=%s", args.directory, args.group, exc)
        return 2
    return 1 if outcomes[UploadOutcome.FAILED] else 0


if __name__ == "__main__":
    raise SystemExit(main())
