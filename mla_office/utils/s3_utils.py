# Standard library imports
from typing import Optional
from urllib.parse import quote

# Third party imports
import boto3
from botocore.exceptions import BotoCoreError, ClientError

# Local imports
from mla_office.core.config import settings
from mla_office.utils.logger import get_logger

logger = get_logger(__name__)


class S3Utils:
    """Utility class for interacting with s3"""
    def __init__(self, bucket_name: Optional[str] = None, client=None):
        """Initialize S3 client with AWS credentials"""
        self.s3_client = client or boto3.client(
            's3',
            aws_access_key_id=settings.aws_access_key_id,
            aws_secret_access_key=settings.aws_secret_access_key,
            region_name=settings.aws_region
        )
        self.bucket_name = bucket_name or settings.s3_bucket_name

    def upload_bytes(self, content: bytes, key: str, content_type: Optional[str] = None) -> str:
        """
        Upload an in-memory payload to S3 and return its public URL.

        Args:
            content: Bytes to store
            key: S3 key (path) where the file will be stored
            content_type: Optional content type of the file

        Returns:
            str: URL of the stored object

        Raises:
            ClientError / BotoCoreError: when the upload fails
        """
        extra_args = {}
        if content_type:
            extra_args['ContentType'] = content_type

        try:
            self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=content,
                **extra_args
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Error uploading file to S3", key=key, error=str(e))
            raise

        return self.get_object_url(key)

    def get_object_url(self, key: str) -> str:
        """
        Public URL of an object.

        Uses S3_PUBLIC_BASE_URL (e.g. a CDN in front of the bucket) when set,
        otherwise the virtual-hosted S3 URL.
        """
        quoted_key = quote(key)
        if settings.s3_public_base_url:
            return f"{settings.s3_public_base_url.rstrip('/')}/{quoted_key}"
        region = settings.aws_region or "us-east-1"
        return f"https://{self.bucket_name}.s3.{region}.amazonaws.com/{quoted_key}"


s3_utils = S3Utils()
