"""Module containing the RequestSigner for S3."""
import datetime
import logging
from typing import Dict, Union
from urllib.parse import quote

from .exceptions import SigningError
from .hashing import hmac_sha256, sha256_hex, to_hex

logger = logging.getLogger(__name__)

ALGORITHM = 'AWS4-HMAC-SHA256'
SERVICE = 's3'
SCOPE_TERMINATOR = 'aws4_request'
SIGNED_HEADERS = 'host;x-amz-content-sha256;x-amz-date'
AMZ_DATE_FORMAT = '%Y%m%dT%H%M%SZ'
DATE_STAMP_FORMAT = '%Y%m%d'


def canonical_uri(object_name: str) -> str:
    """Return the canonical path for an object in a virtual-hosted bucket.

    :param object_name: str, object key without a leading slash.
    :return: str, ``/`` followed by the percent-encoded key.
    """
    return '/' + quote(object_name, safe='/~')


def build_canonical_request(
    method: str,
    object_name: str,
    host: str,
    payload_hash: str,
    amz_date: str
) -> str:
    """Build the canonical form of an S3 request.

    :param method: str, HTTP method.
    :param object_name: str, object key.
    :param host: str, virtual-hosted bucket host.
    :param payload_hash: str, hex SHA-256 of the request body.
    :param amz_date: str, ISO8601 basic timestamp.
    :return: str, newline-joined canonical request.
    """
    header_lines = sorted([
        f'host:{host}',
        f'x-amz-content-sha256:{payload_hash}',
        f'x-amz-date:{amz_date}',
    ])
    canonical_headers = ''.join(f'{line}\n' for line in header_lines)

    # No query string support, so line 3 is always empty
    return '\n'.join([
        method,
        canonical_uri(object_name),
        '',
        canonical_headers,
        SIGNED_HEADERS,
        payload_hash,
    ])


def derive_signing_key(
    secret_key: str,
    date_stamp: str,
    region: str,
    service: str = SERVICE
) -> bytes:
    """Derive the scoped SigV4 signing key.

    DateKey              = HMAC-SHA256("AWS4" + secret, date)
    DateRegionKey        = HMAC-SHA256(DateKey, region)
    DateRegionServiceKey = HMAC-SHA256(DateRegionKey, service)
    SigningKey           = HMAC-SHA256(DateRegionServiceKey, "aws4_request")

    :param secret_key: str, AWS secret key.
    :param date_stamp: str, YYYYMMDD date in UTC.
    :param region: str, AWS region.
    :param service: str, AWS service name.
    :return: bytes, 32 byte signing key.
    """
    k_date = hmac_sha256(f'AWS4{secret_key}', date_stamp)
    k_region = hmac_sha256(k_date, region)
    k_service = hmac_sha256(k_region, service)
    return hmac_sha256(k_service, SCOPE_TERMINATOR)


def _as_utc(timestamp: datetime.datetime) -> datetime.datetime:
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=datetime.timezone.utc)
    return timestamp.astimezone(datetime.timezone.utc)


class RequestSigner:
    """Handles S3 request signing using Signature Version 4."""

    def __init__(self, access_key: str, secret_key: str, region: str) -> None:
        """Initialize the request signer.

        :param access_key: str, AWS access key.
        :param secret_key: str, AWS secret key.
        :param region: str, AWS region.
        """
        self.access_key = access_key
        self.secret_key = secret_key
        self.region = region

    def credential_scope(self, date_stamp: str) -> str:
        return f'{date_stamp}/{self.region}/{SERVICE}/{SCOPE_TERMINATOR}'

    def string_to_sign(self, amz_date: str, scope: str, canonical_request: str) -> str:
        return (
            f'{ALGORITHM}\n{amz_date}\n{scope}\n'
            f'{sha256_hex(canonical_request)}'
        )

    def signature(self, date_stamp: str, string_to_sign: str) -> str:
        """Return the hex signature of string_to_sign for the given day."""
        signing_key = derive_signing_key(self.secret_key, date_stamp, self.region)
        return to_hex(hmac_sha256(signing_key, string_to_sign))

    def authorization_header(self, date_stamp: str, signature: str) -> str:
        return (
            f'{ALGORITHM} '
            f'Credential={self.access_key}/{self.credential_scope(date_stamp)},'
            f'SignedHeaders={SIGNED_HEADERS},'
            f'Signature={signature}'
        )

    def sign_request(
        self,
        method: str,
        host: str,
        object_name: str,
        payload: Union[str, bytes],
        timestamp: datetime.datetime
    ) -> Dict[str, str]:
        """Create the SigV4 headers for an S3 request.

        The content hash and date headers are computed first since both are
        part of the signed header set.

        :param method: str, HTTP method.
        :param host: str, virtual-hosted bucket host.
        :param object_name: str, object key.
        :param payload: str or bytes, request body.
        :param timestamp: datetime, signing time.
        :raise SigningError: if request signing fails.
        :return: Dict[str, str], signed headers.
        """
        try:
            t = _as_utc(timestamp)
            amz_date = t.strftime(AMZ_DATE_FORMAT)
            date_stamp = t.strftime(DATE_STAMP_FORMAT)
            payload_hash = sha256_hex(payload)

            canonical_request = build_canonical_request(
                method, object_name, host, payload_hash, amz_date
            )
            scope = self.credential_scope(date_stamp)
            string_to_sign = self.string_to_sign(amz_date, scope, canonical_request)

            signature = self.signature(date_stamp, string_to_sign)
        except (TypeError, ValueError, AttributeError) as e:
            raise SigningError(f"Failed to sign request: {e}") from e

        logger.debug("Signed %s request for %s%s", method, host, canonical_uri(object_name))
        return {
            'x-amz-content-sha256': payload_hash,
            'x-amz-date': amz_date,
            'Authorization': self.authorization_header(date_stamp, signature),
        }
