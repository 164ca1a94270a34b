import logging
import os
from urllib.parse import urlparse

import requests
from botocore.exceptions import BotoCoreError, ClientError
from requests.exceptions import RequestException

from bkelastic.core._private.errors import FetchError
from bkelastic.core.cloud_provider import FileFetcher
from bkelastic.providers._private.aws.utils import client_cache, \
    get_boto_error_code

logger = logging.getLogger(__name__)

FETCH_REQUEST_TIMEOUT = 60
FETCH_CHUNK_SIZE = 64 * 1024


def parse_s3_url(url):
    parsed = urlparse(url)
    return parsed.netloc, parsed.path.lstrip("/")


class AWSFileFetcher(FileFetcher):
    """Fetch s3:// objects with the S3 API and anything else over HTTP(S)."""

    def __init__(self, region, s3_client=None, session=None,
                 timeout=FETCH_REQUEST_TIMEOUT):
        self.region = region
        self._s3_client = s3_client
        self.session = session or requests.Session()
        self.timeout = timeout

    @property
    def s3_client(self):
        if self._s3_client is None:
            self._s3_client = client_cache("s3", self.region)
        return self._s3_client

    def fetch(self, url: str, dest_path: str) -> None:
        logger.info("Downloading %s to %s", url, dest_path)
        dest_dir = os.path.dirname(dest_path)
        if dest_dir:
            os.makedirs(dest_dir, exist_ok=True)
        if url.startswith("s3://"):
            self._fetch_s3(url, dest_path)
        else:
            self._fetch_http(url, dest_path)

    def _fetch_s3(self, url, dest_path):
        bucket, key = parse_s3_url(url)
        try:
            response = self.s3_client.get_object(Bucket=bucket, Key=key)
            with open(dest_path, "wb") as f:
                for chunk in response["Body"].iter_chunks(FETCH_CHUNK_SIZE):
                    f.write(chunk)
        except ClientError as e:
            raise FetchError("Failed to download {}: {}".format(
                url, get_boto_error_code(e))) from None
        except BotoCoreError as e:
            raise FetchError("Failed to download {}: {}".format(
                url, type(e).__name__)) from None

    def _fetch_http(self, url, dest_path):
        try:
            with self.session.get(
                    url, stream=True, allow_redirects=True,
                    timeout=self.timeout) as response:
                response.raise_for_status()
                with open(dest_path, "wb") as f:
                    for chunk in response.iter_content(FETCH_CHUNK_SIZE):
                        f.write(chunk)
        except RequestException as e:
            raise FetchError("Failed to download {}: {}".format(
                url, e)) from None
