import boto3
import pytest
from botocore.stub import Stubber

from bkelastic.tests.unit.utils.constants import TEST_REGION


def _make_client(name):
    return boto3.client(
        name,
        region_name=TEST_REGION,
        aws_access_key_id="testing",
        aws_secret_access_key="testing")


@pytest.fixture()
def ssm_client():
    return _make_client("ssm")


@pytest.fixture()
def autoscaling_client():
    return _make_client("autoscaling")


@pytest.fixture()
def cloudformation_client():
    return _make_client("cloudformation")


@pytest.fixture()
def s3_client():
    return _make_client("s3")


@pytest.fixture()
def ssm_client_stub(ssm_client):
    with Stubber(ssm_client) as stubber:
        yield stubber
        stubber.assert_no_pending_responses()


@pytest.fixture()
def autoscaling_client_stub(autoscaling_client):
    with Stubber(autoscaling_client) as stubber:
        yield stubber
        stubber.assert_no_pending_responses()


@pytest.fixture()
def cloudformation_client_stub(cloudformation_client):
    with Stubber(cloudformation_client) as stubber:
        yield stubber
        stubber.assert_no_pending_responses()


@pytest.fixture()
def s3_client_stub(s3_client):
    with Stubber(s3_client) as stubber:
        yield stubber
        stubber.assert_no_pending_responses()
