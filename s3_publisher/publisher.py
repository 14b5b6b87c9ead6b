"""Module containing the SheetPublisher that pushes CSV exports to S3."""
import datetime
import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

import requests

from .exceptions import AwsError, ConfigurationError, CredentialError
from .logging_config import SecretFilter
from .s3_request import S3Request

logger = logging.getLogger(__name__)

CSV_CONTENT_TYPE = 'text/csv'
DEFAULT_REGION = 'us-east-1'


@dataclass(frozen=True)
class PublisherConfig:
    """Settings needed to publish a document."""

    bucket: str
    access_key_id: str
    secret_access_key: str = field(repr=False)
    path: str = ''
    region: str = DEFAULT_REGION

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'PublisherConfig':
        """Load the configuration from environment variables.

        :param environ: Mapping[str, str], defaults to ``os.environ``.
        :raises CredentialError: if AWS credentials are not found.
        :raises ConfigurationError: if no bucket is configured.
        :return: PublisherConfig, the loaded settings.
        """
        env = os.environ if environ is None else environ

        access_key = env.get('AWS_ACCESS_KEY_ID')
        secret_key = env.get('AWS_SECRET_ACCESS_KEY')
        if not access_key or not secret_key:
            raise CredentialError("AWS credentials not found in environment")

        bucket = env.get('S3_PUBLISH_BUCKET')
        if not bucket:
            raise ConfigurationError("S3_PUBLISH_BUCKET is not set")

        return cls(
            bucket=bucket,
            access_key_id=access_key,
            secret_access_key=secret_key,
            path=env.get('S3_PUBLISH_PATH', ''),
            region=env.get('AWS_REGION') or env.get('AWS_DEFAULT_REGION') or DEFAULT_REGION,
        )

    def object_name_for(self, document_id: str) -> str:
        """Return the object key a document is published under."""
        prefix = self.path.strip('/')
        name = f'{document_id}.csv'
        return f'{prefix}/{name}' if prefix else name


class SheetPublisher:
    """Publishes CSV exports of a document to the configured bucket."""

    def __init__(self, config: PublisherConfig) -> None:
        self.config = config
        SecretFilter.register_secret(config.secret_access_key)

    def build_request(
        self,
        document_id: str,
        csv_content: str,
        timestamp: Optional[datetime.datetime] = None
    ) -> S3Request:
        return (
            S3Request(self.config.access_key_id, self.config.secret_access_key, timestamp)
            .set_http_method('PUT')
            .set_bucket(self.config.bucket)
            .set_region(self.config.region)
            .set_object_name(self.config.object_name_for(document_id))
            .set_content_type(CSV_CONTENT_TYPE)
            .set_content(csv_content)
        )

    def publish(
        self,
        document_id: str,
        csv_content: str,
        log_requests: bool = False,
        echo_request_to_url: Optional[str] = None
    ) -> requests.Response:
        """Upload csv_content as the document's CSV object.

        :param document_id: str, identifier used to name the object.
        :param csv_content: str, CSV text to upload.
        :param log_requests: bool, log the HTTP exchange.
        :param echo_request_to_url: str, mirror the request to this URL.
        :raises AwsError: if S3 rejects the upload.
        :return: requests.Response, the S3 response.
        """
        request = self.build_request(document_id, csv_content)
        return request.execute(
            log_requests=log_requests,
            echo_request_to_url=echo_request_to_url,
        )

    def publish_on_change(self, document_id: str, csv_content: str) -> requests.Response:
        """Callback for document change events."""
        object_name = self.config.object_name_for(document_id)
        try:
            response = self.publish(document_id, csv_content)
        except AwsError as e:
            logger.error(
                "Publishing %s to s3://%s/%s failed (%s)",
                document_id, self.config.bucket, object_name, e.code or e.status_code
            )
            raise
        logger.info("Published %s to s3://%s/%s", document_id, self.config.bucket, object_name)
        return response
