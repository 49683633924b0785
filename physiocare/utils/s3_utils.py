import logging
import os
from urllib.parse import urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from ..errors import UpstreamError

logger = logging.getLogger(__name__)


def _client(region=None):
    return boto3.client(
        "s3",
        aws_access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
        aws_secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        region_name=region or os.getenv("AWS_REGION"),
    )


def upload_file_to_s3(file, filename, bucket_name, base_url=None, region=None):
    s3 = _client(region)
    try:
        s3.upload_fileobj(
            file,
            bucket_name,
            filename,
            ExtraArgs={"ACL": "public-read", "ContentType": file.mimetype or "application/octet-stream"},
        )
    except NoCredentialsError:
        raise UpstreamError("AWS credentials not found. Check environment variables.")
    except (BotoCoreError, ClientError) as e:
        raise UpstreamError(f"File upload failed: {e}")

    base_url = base_url or os.getenv("S3_BASE_URL")
    return f"{base_url}/{filename}"


def delete_file_from_s3(file_url, bucket_name, region=None):
    s3 = _client(region)
    try:
        key = urlparse(file_url).path.lstrip("/")
        s3.delete_object(Bucket=bucket_name, Key=key)
        return True
    except (BotoCoreError, ClientError) as e:
        logger.warning("Error deleting file from S3: %s", e)
        return False
