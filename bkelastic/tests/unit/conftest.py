import pytest

from bkelastic.core._private.environment import Environment
from bkelastic.core._private.parameter import BootstrapParams
from bkelastic.core._private.providers import BootstrapCollaborators
from bkelastic.tests.unit.utils.constants import TEST_ENVIRONMENT, \
    TEST_DOCKER_VERSION_OUTPUT
from bkelastic.tests.unit.utils.helpers import MockProcessRunner, \
    MockMetadataService, MockSecretStore, MockFleetManager, \
    MockProvisioningController, MockFileFetcher, MockProcessSupervisor, \
    MockContainerRuntime


@pytest.fixture()
def environment():
    return Environment(dict(TEST_ENVIRONMENT))


@pytest.fixture()
def params(tmp_path):
    return BootstrapParams(root_dir=str(tmp_path))


@pytest.fixture()
def process_runner():
    runner = MockProcessRunner()
    runner.respond_to_call("--version", [TEST_DOCKER_VERSION_OUTPUT])
    return runner


@pytest.fixture()
def events():
    return []


@pytest.fixture()
def collaborators(process_runner, events):
    return BootstrapCollaborators(
        metadata_service=MockMetadataService(),
        secret_store=MockSecretStore(),
        fleet_manager=MockFleetManager(events=events),
        provisioning_controller=MockProvisioningController(events=events),
        file_fetcher=MockFileFetcher(),
        process_supervisor=MockProcessSupervisor(events=events),
        container_runtime=MockContainerRuntime(events=events),
        process_runner=process_runner)
