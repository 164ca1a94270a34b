import logging

import requests
from requests.exceptions import RequestException

from bkelastic.core._private.constants import METADATA_SERVICE_URL, \
    METADATA_REQUEST_TIMEOUT
from bkelastic.core._private.errors import MetadataUnavailable
from bkelastic.core.cloud_provider import MetadataService

logger = logging.getLogger(__name__)

IMDS_TOKEN_PATH = "/latest/api/token"
IMDS_INSTANCE_ID_PATH = "/latest/meta-data/instance-id"
IMDS_TOKEN_TTL_HEADER = "X-aws-ec2-metadata-token-ttl-seconds"
IMDS_TOKEN_HEADER = "X-aws-ec2-metadata-token"


class AWSMetadataService(MetadataService):
    """EC2 instance metadata service with IMDSv2 session tokens."""

    def __init__(self, endpoint=METADATA_SERVICE_URL,
                 timeout=METADATA_REQUEST_TIMEOUT, session=None):
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_token(self, ttl_seconds: int) -> str:
        response = self._request(
            "PUT", IMDS_TOKEN_PATH,
            headers={IMDS_TOKEN_TTL_HEADER: str(ttl_seconds)})
        return response.text

    def get_instance_id(self, token: str) -> str:
        response = self._request(
            "GET", IMDS_INSTANCE_ID_PATH,
            headers={IMDS_TOKEN_HEADER: token})
        return response.text.strip()

    def _request(self, method, path, headers):
        url = self.endpoint + path
        try:
            response = self.session.request(
                method, url, headers=headers, timeout=self.timeout)
            response.raise_for_status()
        except RequestException as e:
            # Never include the headers, they may carry the token
            status = ""
            if e.response is not None:
                status = " (HTTP {})".format(e.response.status_code)
            raise MetadataUnavailable(
                "Failed to {} instance metadata {}: {}{}".format(
                    method, path, type(e).__name__, status)) from None
        return response
