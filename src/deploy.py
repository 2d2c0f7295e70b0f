"""Package the function source and push it to AWS Lambda.

Run from the repository root, e.g. ``PYTHONPATH=src python -m deploy``.
Credentials come from boto3's default chain, so the CI job only has to export
``AWS_ACCESS_KEY_ID`` and ``AWS_SECRET_ACCESS_KEY``.
"""
import argparse
import fnmatch
import io
import json
import logging
import os
import zipfile
from pathlib import Path
from typing import Iterable, List, Optional

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)
logging.getLogger("botocore").setLevel(logging.WARNING)
logging.getLogger("boto3").setLevel(logging.WARNING)

FUNCTION_NAME = os.getenv("LAMBDA_FUNCTION_NAME", "my-lambda-action")
REGION = os.getenv("AWS_REGION", "us-east-1")
SOURCE_DIR = os.getenv("LAMBDA_SOURCE_DIR", "src")
ARCHIVE_PATH = os.getenv("LAMBDA_ARCHIVE", "lambda_function.zip")

DEFAULT_EXCLUDES = ("__pycache__", "*.pyc", ".pytest-tmp", "*.egg-info", "deploy.py", "*.zip")

# fixed entry metadata so identical sources give identical bytes
_ZIP_DATE_TIME = (1980, 1, 1, 0, 0, 0)
_ZIP_FILE_MODE = 0o644


class DeployError(Exception):
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


def _excluded(parts: Iterable[str], exclude: Iterable[str]) -> bool:
    patterns = tuple(exclude)
    return any(fnmatch.fnmatch(part, pattern) for part in parts for pattern in patterns)


def _collect_files(root: Path, exclude: Iterable[str]) -> List[Path]:
    files = []
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(root)
        if _excluded(relative.parts, exclude):
            continue
        files.append(relative)
    return files


def build_archive(source_dir, exclude: Iterable[str] = DEFAULT_EXCLUDES) -> bytes:
    """Zip ``source_dir`` so its contents sit at the archive root.

    Lambda resolves ``handlers.main.handler`` against the root of the archive,
    which is why the source directory itself is not part of the entry names.
    """
    root = Path(source_dir)
    if not root.is_dir():
        raise DeployError(f"Source directory not found: {root}")

    files = _collect_files(root, exclude)
    if not files:
        raise DeployError(f"No files to package under {root}")

    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
        for relative in files:
            info = zipfile.ZipInfo(relative.as_posix(), date_time=_ZIP_DATE_TIME)
            info.external_attr = (0o100000 | _ZIP_FILE_MODE) << 16
            info.compress_type = zipfile.ZIP_DEFLATED
            archive.writestr(info, (root / relative).read_bytes())
    data = buffer.getvalue()

    logger.info(
        json.dumps(
            {
                "event": "ArchiveBuilt",
                "sourceDir": str(root),
                "files": len(files),
                "bytes": len(data),
            }
        )
    )
    return data


def write_archive(data: bytes, path) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)
    return target


def _lambda_client(region: str):
    return boto3.client("lambda", region_name=region)


def update_function_code(
    function_name: str, zip_bytes: bytes, region: str = REGION, publish: bool = False
) -> dict:
    client = _lambda_client(region)
    try:
        result = client.update_function_code(
            FunctionName=function_name,
            ZipFile=zip_bytes,
            Publish=publish,
        )
    except ClientError as exc:
        error = exc.response.get("Error", {}) if isinstance(exc.response, dict) else {}
        logger.exception("Failed to update code for function %s", function_name)
        raise DeployError(
            error.get("Message") or f"Unable to update {function_name}",
            code=error.get("Code"),
        ) from exc

    logger.info(
        json.dumps(
            {
                "event": "FunctionCodeUpdated",
                "functionName": function_name,
                "region": region,
                "version": result.get("Version"),
                "codeSha256": result.get("CodeSha256"),
            }
        )
    )
    return result


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Deploy the function code to AWS Lambda.")
    parser.add_argument("--function-name", default=FUNCTION_NAME)
    parser.add_argument("--region", default=REGION)
    parser.add_argument("--source-dir", default=SOURCE_DIR)
    parser.add_argument("--output", default=ARCHIVE_PATH, help="Where to write the zip archive")
    parser.add_argument("--publish", action="store_true", help="Publish a new function version")
    parser.add_argument(
        "--dry-run", action="store_true", help="Build the archive without calling AWS"
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    logging.basicConfig(format="%(message)s", level=logging.INFO)
    args = _parse_args(argv)
    try:
        data = build_archive(args.source_dir)
        write_archive(data, args.output)
        if args.dry_run:
            return 0
        update_function_code(args.function_name, data, region=args.region, publish=args.publish)
    except DeployError as exc:
        logger.error(json.dumps({"event": "DeployFailed", "error": str(exc), "code": exc.code}))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
