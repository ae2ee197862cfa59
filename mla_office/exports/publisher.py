# mla_office/exports/publisher.py

"""
Artifact publishing: name the encoded export and store it in S3.
"""

import math
from dataclasses import dataclass
from datetime import datetime

from botocore.exceptions import BotoCoreError, ClientError

from mla_office.core.config import settings
from mla_office.exports.encoders import EncodedArtifact
from mla_office.exports.exceptions import ArtifactPublishError
from mla_office.utils.logger import get_logger
from mla_office.utils.s3_utils import S3Utils, s3_utils

logger = get_logger(__name__)


@dataclass(frozen=True)
class PublishedArtifact:
    url: str
    file_name: str
    file_size_kb: int


def build_file_name(export_type: str, extension: str, at: datetime) -> str:
    """`{type}_export_{yyyy-MM-dd_HH-mm}.{ext}`"""
    return f"{export_type}_export_{at.strftime('%Y-%m-%d_%H-%M')}.{extension}"


def size_in_kb(content: bytes) -> int:
    """Byte length / 1024 rounded to the nearest integer, halves rounding up."""
    return math.floor(len(content) / 1024 + 0.5)


class ArtifactPublisher:
    """Uploads encoded exports under the configured storage prefix."""

    def __init__(self, storage: S3Utils = None, prefix: str = None):
        self.storage = storage or s3_utils
        self.prefix = (prefix if prefix is not None else settings.export_storage_prefix).strip("/")

    def object_key(self, file_name: str) -> str:
        return f"{self.prefix}/{file_name}" if self.prefix else file_name

    def publish(self, file_name: str, artifact: EncodedArtifact) -> PublishedArtifact:
        key = self.object_key(file_name)
        logger.info("Uploading export file", key=key, content_type=artifact.content_type)

        try:
            url = self.storage.upload_bytes(artifact.content, key, artifact.content_type)
        except (ClientError, BotoCoreError) as e:
            raise ArtifactPublishError(key, str(e)) from e

        return PublishedArtifact(
            url=url,
            file_name=file_name,
            file_size_kb=size_in_kb(artifact.content),
        )
