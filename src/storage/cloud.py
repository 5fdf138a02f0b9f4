import os
from dotenv import load_dotenv

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from .base import BaseStorage


class CloudStorage(BaseStorage):
    """A client for S3-compatible object storage (DigitalOcean Spaces, S3, MinIO)."""

    def __init__(self, client=None):
        try:
            # Get credentials from environment variables
            load_dotenv()
            origin_endpoint = os.getenv("BUCKET_ENDPOINT")
            key_id = os.getenv("BUCKET_KEY_ID")
            access_key = os.getenv("BUCKET_ACCESS_KEY")
            bucket_name = os.getenv("BUCKET_NAME") or "books"
            region = os.getenv("BUCKET_REGION") or "ams3"

            if not origin_endpoint:
                raise ValueError("BUCKET_ENDPOINT is not set.")

            self.bucket_name = bucket_name
            self.endpoint = origin_endpoint.rstrip("/")

            if client is not None:
                self.client = client
                return

            if not key_id or not access_key:
                raise ValueError(
                    "Missing required environment variables for cloud storage client."
                    " Please ensure BUCKET_ENDPOINT, BUCKET_KEY_ID, and BUCKET_ACCESS_KEY are set."
                )

            session = boto3.session.Session()
            self.client = session.client(
                "s3",
                region_name=region,
                endpoint_url=origin_endpoint,
                aws_access_key_id=key_id,
                aws_secret_access_key=access_key,
            )

        except ValueError as e:
            raise RuntimeError(f"Error loading environment variables: {e}")

    def get_client(self):
        """Returns the initialized cloud storage client."""
        return self.client

    @staticmethod
    def _key(workspace: str, filename: str) -> str:
        if not workspace.endswith("/"):
            workspace += "/"
        return f"{workspace}{filename}"

    def _get_absolute_filename(self, workspace: str, filename: str) -> str:
        """Constructs the public URL of an object (virtual-hosted style).

        Args:
            workspace (str): The workspace (prefix) path.
            filename (str): The name of the file.

        Return:
            str: The absolute URL in cloud storage.
        """
        protocol, _, path = self.endpoint.partition("://")
        return f"{protocol}://{self.bucket_name}.{path}/{self._key(workspace, filename)}"

    def file_exist(self, workspace: str, filename: str) -> bool:
        """
        Check if a file exists in cloud storage.

        Raises:
            RuntimeError: If the check fails for a reason other than "not found".
        """
        try:
            self.client.head_object(
                Bucket=self.bucket_name, Key=self._key(workspace, filename)
            )
        except ClientError as e:
            if e.response["Error"]["Code"] in ("404", "NoSuchKey", "NotFound"):
                return False
            raise RuntimeError(f"Error checking file in cloud storage: {e}")
        return True

    def save_file(
        self,
        workspace: str,
        filename: str,
        content: bytes,
        content_type: str = "application/pdf",
    ) -> str:
        """Uploads bytes to the specified workspace in cloud storage.

        Returns:
            str: The public URL of the saved file.
        """
        try:
            self.client.put_object(
                Bucket=self.bucket_name,
                Key=self._key(workspace, filename),
                Body=content,
                ContentType=content_type,
                ACL="public-read",
            )
        except (ClientError, BotoCoreError) as e:
            raise RuntimeError(f"Error saving file to cloud storage: {e}")
        return self._get_absolute_filename(workspace, filename)
