"""Module containing the S3Request used to send signed requests to S3."""
import datetime
import enum
import logging
from typing import Dict, Mapping, Optional, Union
from xml.etree import ElementTree as ET

import requests

from .exceptions import AwsError, RequestStateError, ValidationError
from .request_signer import RequestSigner, canonical_uri

logger = logging.getLogger(__name__)

S3_HOST_SUFFIX = 's3.amazonaws.com'
DEFAULT_BODY_CONTENT_TYPE = 'application/octet-stream'


class HttpMethod(str, enum.Enum):
    GET = 'GET'
    PUT = 'PUT'
    POST = 'POST'
    DELETE = 'DELETE'


def _require_string(name: str, value: object) -> str:
    if not isinstance(value, str):
        raise ValidationError(
            f"TypeMismatch: {name} must be a string, got {type(value).__name__}"
        )
    return value


def _lower_first(name: str) -> str:
    return name[:1].lower() + name[1:]


def _local_name(tag: str) -> str:
    """Strip an ``{namespace}`` prefix from an element tag."""
    return tag.rsplit('}', 1)[-1]


def format_exchange(
    method: str,
    url: str,
    headers: Mapping[str, str],
    body: bytes,
    response: Optional[requests.Response] = None
) -> str:
    """Format a request/response pair for diagnostics.

    :param method: str, HTTP method.
    :param url: str, request URL.
    :param headers: Mapping[str, str], request headers.
    :param body: bytes, request body.
    :param response: requests.Response, response if one was received.
    :return: str, multi-line exchange log.
    """
    lines = [f'> {method} {url}']
    lines.extend(f'> {name}: {value}' for name, value in headers.items())
    lines.append(f'> ({len(body)} bytes)')
    if response is not None:
        lines.append(f'< HTTP {response.status_code}')
        lines.extend(f'< {name}: {value}' for name, value in response.headers.items())
        lines.append(f'< {response.text}')
    return '\n'.join(lines)


def parse_error_response(response: requests.Response, http_request_log: str) -> AwsError:
    """Translate an S3 error response into an AwsError.

    Each child of the root element becomes a field keyed by its name with
    the first letter lower-cased. An unparseable body yields a generic
    error that only carries the status code.

    :param response: requests.Response, non-success response.
    :param http_request_log: str, formatted exchange.
    :return: AwsError, the error to raise.
    """
    status = response.status_code
    fields: Dict[str, str] = {}
    try:
        root = ET.fromstring(response.content)
    except ET.ParseError as e:
        logger.debug("Could not parse error body for HTTP %s: %s", status, e)
    else:
        for child in root:
            fields[_lower_first(_local_name(child.tag))] = (child.text or '').strip()

    if not fields:
        return AwsError(
            f"AWS Error - unable to parse error response (HTTP {status})",
            status,
            http_request_log,
        )

    code = fields.get('code', 'Unknown')
    detail = fields.get('message', '')
    return AwsError(
        f"AWS Error - {code}: {detail}" if detail else f"AWS Error - {code}",
        status,
        http_request_log,
        fields,
    )


class S3Request:
    """A single signed request against an S3 object.

    Configure it with the chained ``set_*`` methods and call ``execute``
    once. A request cannot be re-sent; build a new instance instead.
    """

    def __init__(
        self,
        access_key: str,
        secret_key: str,
        timestamp: Optional[datetime.datetime] = None
    ) -> None:
        """Initialize the request.

        :param access_key: str, AWS access key.
        :param secret_key: str, AWS secret key.
        :param timestamp: datetime, signing time, defaults to now in UTC.
        """
        self.access_key = _require_string('access_key', access_key)
        self.secret_key = _require_string('secret_key', secret_key)
        self.timestamp = timestamp or datetime.datetime.now(datetime.timezone.utc)
        self.http_method = HttpMethod.PUT
        self.content_type: Optional[str] = None
        self.content: Union[str, bytes] = b''
        self.bucket: Optional[str] = None
        self.object_name: Optional[str] = None
        self.region: Optional[str] = None
        self.headers: Dict[str, str] = {}
        self.sent = False

    def set_http_method(self, method: str) -> 'S3Request':
        method = _require_string('http_method', method)
        try:
            self.http_method = HttpMethod(method.upper())
        except ValueError:
            raise ValidationError(f"Unsupported HTTP method: {method}") from None
        return self

    def set_content_type(self, content_type: str) -> 'S3Request':
        self.content_type = _require_string('content_type', content_type)
        return self

    def set_content(self, content: Union[str, bytes]) -> 'S3Request':
        if not isinstance(content, (str, bytes)):
            raise ValidationError(
                f"TypeMismatch: content must be a string or bytes, got {type(content).__name__}"
            )
        self.content = content
        return self

    def set_bucket(self, bucket: str) -> 'S3Request':
        self.bucket = _require_string('bucket', bucket)
        return self

    def set_object_name(self, object_name: str) -> 'S3Request':
        self.object_name = _require_string('object_name', object_name)
        return self

    def set_region(self, region: str) -> 'S3Request':
        self.region = _require_string('region', region)
        return self

    def add_header(self, name: str, value: str) -> 'S3Request':
        self.headers[_require_string('header name', name)] = _require_string('header value', value)
        return self

    def get_content_type(self) -> Optional[str]:
        """Return the explicit content type, or the default for the method."""
        if self.content_type:
            return self.content_type
        if self.http_method in (HttpMethod.PUT, HttpMethod.POST):
            return DEFAULT_BODY_CONTENT_TYPE
        return None

    def get_host(self) -> str:
        if not self.bucket:
            raise ValidationError("Bucket must be set before building the URL")
        return f'{self.bucket.lower()}.{S3_HOST_SUFFIX}'

    def get_url(self) -> str:
        if not self.object_name:
            raise ValidationError("Object name must be set before building the URL")
        return f'https://{self.get_host()}{canonical_uri(self.object_name)}'

    def _body(self) -> bytes:
        if isinstance(self.content, str):
            return self.content.encode('utf-8')
        return self.content

    def _validate(self) -> None:
        missing = [
            name for name, value in (
                ('bucket', self.bucket),
                ('object_name', self.object_name),
                ('region', self.region),
            ) if not value
        ]
        if missing:
            raise ValidationError(f"Missing required request fields: {', '.join(missing)}")

    def _echo_request(self, echo_url: str, headers: Mapping[str, str], body: bytes) -> None:
        try:
            requests.request(
                self.http_method.value,
                echo_url,
                headers=dict(headers),
                data=body,
                allow_redirects=False,
            )
        except requests.RequestException as e:
            logger.warning("Failed to echo request to %s: %s", echo_url, e)

    def execute(
        self,
        log_requests: bool = False,
        echo_request_to_url: Optional[str] = None
    ) -> requests.Response:
        """Sign and send the request.

        :param log_requests: bool, log the request/response exchange.
        :param echo_request_to_url: str, also send the raw request here.
        :raise ValidationError: if bucket, object name or region is missing.
        :raise RequestStateError: if the request was already executed.
        :raise AwsError: if S3 responds with a status above 299.
        :return: requests.Response, the successful response.
        """
        if self.sent:
            raise RequestStateError("S3Request has already been executed")
        self._validate()

        body = self._body()
        url = self.get_url()
        headers = dict(self.headers)
        content_type = self.get_content_type()
        if content_type:
            headers['Content-Type'] = content_type

        signer = RequestSigner(self.access_key, self.secret_key, self.region)
        headers.update(signer.sign_request(
            self.http_method.value,
            self.get_host(),
            self.object_name,
            body,
            self.timestamp,
        ))

        self.sent = True
        if echo_request_to_url:
            self._echo_request(echo_request_to_url, headers, body)

        # Redirects are never followed; a 3xx is raised as AwsError below
        try:
            response = requests.request(
                self.http_method.value, url, headers=headers, data=body, allow_redirects=False
            )
        except requests.RequestException:
            if log_requests:
                logger.info(
                    "S3 exchange (no response):\n%s",
                    format_exchange(self.http_method.value, url, headers, body),
                )
            raise

        http_request_log = format_exchange(self.http_method.value, url, headers, body, response)
        if log_requests:
            logger.info("S3 exchange:\n%s", http_request_log)

        if response.status_code > 299:
            error = parse_error_response(response, http_request_log)
            logger.error("S3 %s %s failed: %s", self.http_method.value, url, error.message)
            raise error

        return response
