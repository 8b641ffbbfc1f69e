"""S3 repository for attachment files."""

from typing import Optional

import boto3
from botocore.exceptions import ClientError

TEMP_PREFIX = "tmp/"
PERMANENT_PREFIX = "attachments/"

_MISSING_CODES = {"404", "NoSuchKey", "NotFound"}


class AttachmentStorage:
    """Minimal helper around S3 for staged and permanent attachment files."""

    def __init__(self, bucket_name: str, client=None):
        self.bucket_name = bucket_name
        self.client = client or boto3.client("s3")

    @staticmethod
    def temp_key(saved_name: str) -> str:
        return f"{TEMP_PREFIX}{saved_name}"

    @staticmethod
    def permanent_key(saved_name: str) -> str:
        return f"{PERMANENT_PREFIX}{saved_name}"

    def upload_bytes(self, key: str, content: bytes, content_type: Optional[str] = None) -> None:
        extra = {"ContentType": content_type} if content_type else {}
        self.client.put_object(Bucket=self.bucket_name, Key=key, Body=content, **extra)

    def copy(self, src_key: str, dst_key: str) -> bool:
        """Returns False when the source object is gone."""
        try:
            self.client.copy_object(
                Bucket=self.bucket_name,
                Key=dst_key,
                CopySource={"Bucket": self.bucket_name, "Key": src_key},
            )
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_CODES:
                return False
            raise
        return True

    def delete(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket_name, Key=key)
