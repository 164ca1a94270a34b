import io

import pytest
from botocore.response import StreamingBody

from bkelastic.core._private.errors import FetchError
from bkelastic.providers._private.aws.file_fetcher import AWSFileFetcher, \
    parse_s3_url
from bkelastic.tests.unit.utils.constants import TEST_REGION
from bkelastic.tests.unit.utils.helpers import MockSession, make_response

AUTHORIZED_KEYS = b"ssh-ed25519 AAAAC3NzaC1lZDI1NTE5AAAAI user@host\n"


class TestAWSFileFetcher:
    def test_parse_s3_url(self):
        assert parse_s3_url("s3://bucket/path/to/key") == (
            "bucket", "path/to/key")

    def test_fetch_s3(self, tmp_path, s3_client, s3_client_stub):
        s3_client_stub.add_response(
            "get_object",
            {"Body": StreamingBody(
                io.BytesIO(AUTHORIZED_KEYS), len(AUTHORIZED_KEYS))},
            expected_params={"Bucket": "secrets", "Key": "authorized_keys"})
        dest_path = tmp_path / "tmp" / "authorized_keys"
        AWSFileFetcher(TEST_REGION, s3_client=s3_client).fetch(
            "s3://secrets/authorized_keys", str(dest_path))
        assert dest_path.read_bytes() == AUTHORIZED_KEYS

    def test_fetch_s3_missing(self, tmp_path, s3_client, s3_client_stub):
        s3_client_stub.add_client_error(
            "get_object", service_error_code="NoSuchKey",
            http_status_code=404)
        with pytest.raises(FetchError) as exc_info:
            AWSFileFetcher(TEST_REGION, s3_client=s3_client).fetch(
                "s3://secrets/missing", str(tmp_path / "missing"))
        assert "NoSuchKey" in str(exc_info.value)

    def test_fetch_https(self, tmp_path):
        url = "https://example.com/bootstrap.sh"
        session = MockSession([make_response(content=b"echo hello\n")])
        dest_path = tmp_path / "elastic_bootstrap"
        AWSFileFetcher(TEST_REGION, session=session).fetch(
            url, str(dest_path))
        assert dest_path.read_bytes() == b"echo hello\n"
        method, request_url, kwargs = session.requests[0]
        assert (method, request_url) == ("GET", url)
        assert kwargs["stream"]

    def test_fetch_https_not_found(self, tmp_path):
        url = "https://example.com/missing"
        session = MockSession([make_response(status_code=404, url=url)])
        with pytest.raises(FetchError):
            AWSFileFetcher(TEST_REGION, session=session).fetch(
                url, str(tmp_path / "missing"))


if __name__ == "__main__":
    import sys
    sys.exit(pytest.main(["-v", __file__]))
