"""
Media store: pushes avatar / cover images to S3 and hands back a public URL.

Uploads arrive as werkzeug FileStorage objects; they are written to a temp
file under UPLOAD_FOLDER first and that file is removed whether or not the
upload succeeds.
"""
from __future__ import annotations

import logging
import os
from uuid import uuid4

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


def save_upload(file: FileStorage | None, upload_folder: str) -> str | None:
    """Write an uploaded file to a uniquely named temp path and return it."""
    if file is None or not file.filename:
        return None
    os.makedirs(upload_folder, exist_ok=True)
    name = f"{uuid4().hex}-{secure_filename(file.filename)}"
    path = os.path.join(upload_folder, name)
    file.save(path)
    return path


def _remove(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass


class MediaStore:
    def __init__(self, bucket: str | None, region: str, access_key: str | None = None,
                 secret_key: str | None = None):
        self.bucket = bucket
        self.region = region
        self.client = boto3.client(
            "s3",
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )

    @classmethod
    def from_config(cls, config) -> "MediaStore":
        return cls(
            bucket=config.get("AWS_S3_BUCKET_NAME"),
            region=config.get("AWS_REGION", "us-east-1"),
            access_key=config.get("AWS_ACCESS_KEY"),
            secret_key=config.get("AWS_SECRET_KEY"),
        )

    def url_for(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def upload(self, local_path: str | None, folder: str, public_id: str) -> str | None:
        """
        Upload local_path to <folder>/<public_id><ext>. Returns the URL, or
        None when the upload failed. The local file is always removed.
        """
        if not local_path:
            return None
        ext = os.path.splitext(local_path)[1]
        key = f"{folder}/{public_id}{ext}"
        try:
            if not self.bucket:
                logger.error("Media upload skipped: no bucket configured")
                return None
            with open(local_path, "rb") as fh:
                self.client.upload_fileobj(fh, self.bucket, key)
            url = self.url_for(key)
            logger.info("Uploaded media %s", key)
            return url
        except (BotoCoreError, ClientError, OSError) as exc:
            logger.error("Media upload failed for %s: %s", key, exc)
            return None
        finally:
            _remove(local_path)

    def delete(self, url: str | None) -> bool:
        """Remove an object previously returned by upload(). Returns False on failure."""
        prefix = self.url_for("")
        if not url or not self.bucket or not url.startswith(prefix):
            return False
        key = url[len(prefix):]
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            logger.error("Media delete failed for %s: %s", key, exc)
            return False
        logger.info("Deleted media %s", key)
        return True
