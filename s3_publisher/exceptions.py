"""Module for s3 publisher exceptions."""
from typing import Dict, Optional


class S3PublisherError(Exception):
    """Base exception class for s3 publisher errors."""


class ValidationError(S3PublisherError):
    """Exception raised when a request is configured with invalid values."""


class RequestStateError(S3PublisherError):
    """Exception raised when a request is executed more than once."""


class SigningError(S3PublisherError):
    """Exception raised when request signing fails."""


class ConfigurationError(S3PublisherError):
    """Exception raised when there are configuration issues."""


class CredentialError(S3PublisherError):
    """Exception raised when AWS credentials are missing."""


class AwsError(S3PublisherError):
    """Exception raised when S3 answers with a non-success status.

    The child elements of the XML error body are exposed through ``fields``
    with their names lower-camel-cased, so ``<Code>`` becomes ``code``.
    """

    name = 'AwsError'

    def __init__(
        self,
        message: str,
        status_code: int,
        http_request_log: str,
        fields: Optional[Dict[str, str]] = None
    ) -> None:
        """Initialize the error.

        :param message: str, human readable summary.
        :param status_code: int, HTTP status of the response.
        :param http_request_log: str, formatted request/response exchange.
        :param fields: Dict[str, str], values parsed from the error body.
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.http_request_log = http_request_log
        self.fields = dict(fields or {})

    @property
    def code(self) -> Optional[str]:
        return self.fields.get('code')

    @property
    def service_message(self) -> Optional[str]:
        return self.fields.get('message')

    def get(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.fields.get(name, default)
