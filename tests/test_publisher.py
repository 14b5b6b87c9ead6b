"""Tests for the publisher configuration and publish flow."""
import logging
from unittest.mock import patch

import pytest

from s3_publisher.exceptions import AwsError, ConfigurationError, CredentialError
from s3_publisher.logging_config import SecretFilter
from s3_publisher.publisher import PublisherConfig, SheetPublisher
from tests.vectors import ACCESS_KEY_ID, NO_SUCH_KEY_BODY, SECRET_ACCESS_KEY, make_response

ENV = {
    "AWS_ACCESS_KEY_ID": ACCESS_KEY_ID,
    "AWS_SECRET_ACCESS_KEY": SECRET_ACCESS_KEY,
    "S3_PUBLISH_BUCKET": "Reports",
    "S3_PUBLISH_PATH": "/exports/",
    "AWS_REGION": "eu-north-1",
}


@pytest.fixture
def config() -> PublisherConfig:
    return PublisherConfig.from_env(ENV)


class TestPublisherConfig:
    """Tests for PublisherConfig."""

    def test_from_env(self, config) -> None:
        assert config.bucket == "Reports"
        assert config.access_key_id == ACCESS_KEY_ID
        assert config.secret_access_key == SECRET_ACCESS_KEY
        assert config.path == "/exports/"
        assert config.region == "eu-north-1"

    def test_reads_process_environment_by_default(self, monkeypatch) -> None:
        for name, value in ENV.items():
            monkeypatch.setenv(name, value)
        assert PublisherConfig.from_env().bucket == "Reports"

    def test_region_falls_back_to_default_region(self) -> None:
        env = {k: v for k, v in ENV.items() if k != "AWS_REGION"}
        env["AWS_DEFAULT_REGION"] = "eu-west-1"
        assert PublisherConfig.from_env(env).region == "eu-west-1"

    def test_region_defaults_to_us_east_1(self) -> None:
        env = {k: v for k, v in ENV.items() if k != "AWS_REGION"}
        assert PublisherConfig.from_env(env).region == "us-east-1"

    @pytest.mark.parametrize("missing", ["AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY"])
    def test_missing_credentials(self, missing) -> None:
        env = {k: v for k, v in ENV.items() if k != missing}
        with pytest.raises(CredentialError):
            PublisherConfig.from_env(env)

    def test_missing_bucket(self) -> None:
        env = {k: v for k, v in ENV.items() if k != "S3_PUBLISH_BUCKET"}
        with pytest.raises(ConfigurationError):
            PublisherConfig.from_env(env)

    def test_object_name_with_prefix(self, config) -> None:
        assert config.object_name_for("Sheet1") == "exports/Sheet1.csv"

    def test_object_name_without_prefix(self) -> None:
        config = PublisherConfig("bucket", ACCESS_KEY_ID, SECRET_ACCESS_KEY)
        assert config.object_name_for("Sheet1") == "Sheet1.csv"

    def test_repr_hides_secret(self, config) -> None:
        assert SECRET_ACCESS_KEY not in repr(config)


class TestSheetPublisher:
    """Tests for SheetPublisher."""

    def test_build_request(self, config, fixed_timestamp) -> None:
        request = SheetPublisher(config).build_request("Sheet1", "a,b\n", fixed_timestamp)
        assert request.get_url() == "https://reports.s3.amazonaws.com/exports/Sheet1.csv"
        assert request.get_content_type() == "text/csv"
        assert request.region == "eu-north-1"
        assert request.timestamp == fixed_timestamp

    def test_publish_puts_csv(self, config) -> None:
        response = make_response(200)
        with patch(
            "s3_publisher.s3_request.requests.request", return_value=response
        ) as mock_request:
            result = SheetPublisher(config).publish("Sheet1", "a,b\n1,2\n")

        assert result is response
        args, kwargs = mock_request.call_args
        assert args == ("PUT", "https://reports.s3.amazonaws.com/exports/Sheet1.csv")
        assert kwargs["data"] == b"a,b\n1,2\n"
        assert kwargs["headers"]["Content-Type"] == "text/csv"
        assert "/eu-north-1/s3/aws4_request," in kwargs["headers"]["Authorization"]

    def test_registers_secret_for_redaction(self, config) -> None:
        SheetPublisher(config)
        assert SECRET_ACCESS_KEY in SecretFilter._secrets

    def test_publish_on_change_logs_success(self, config, caplog) -> None:
        with patch("s3_publisher.s3_request.requests.request", return_value=make_response(200)):
            with caplog.at_level(logging.INFO, logger="s3_publisher.publisher"):
                SheetPublisher(config).publish_on_change("Sheet1", "a\n")
        assert "Published Sheet1 to s3://Reports/exports/Sheet1.csv" in caplog.text

    def test_publish_on_change_reraises_service_error(self, config, caplog) -> None:
        response = make_response(404, NO_SUCH_KEY_BODY)
        with patch("s3_publisher.s3_request.requests.request", return_value=response):
            with caplog.at_level(logging.ERROR, logger="s3_publisher.publisher"):
                with pytest.raises(AwsError) as excinfo:
                    SheetPublisher(config).publish_on_change("Sheet1", "a\n")
        assert excinfo.value.code == "NoSuchKey"
        assert "failed (NoSuchKey)" in caplog.text
