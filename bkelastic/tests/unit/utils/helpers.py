import os
import re
import threading
from subprocess import CalledProcessError
from typing import Callable, Dict, List, Optional

import requests

from bkelastic.core._private.errors import MetadataUnavailable, \
    SecretUnavailable, FetchError
from bkelastic.core.cloud_provider import MetadataService, SecretStore, \
    FleetManager, ProvisioningController, FileFetcher, SignalRejected
from bkelastic.core.host_services import ProcessSupervisor, ContainerRuntime
from bkelastic.tests.unit.utils.constants import TEST_INSTANCE_ID, \
    TEST_METADATA_TOKEN, TEST_AGENT_TOKEN, TEST_TOKEN_PATH, \
    TEST_DOCKER_VERSION


class MockProcessRunner:
    def __init__(self, fail_cmds=None, cmd_to_callback=None, print_out=False):
        self.calls = []
        self.call_kwargs = []
        self.cmd_to_callback = cmd_to_callback or {
        }  # type: Dict[str, Callable]
        self.print_out = print_out
        self.fail_cmds = fail_cmds or []
        self.call_response = {}
        self.lock = threading.RLock()

    def check_call(self, cmd, *args, **kwargs):
        with self.lock:
            self.calls.append(cmd)
            self.call_kwargs.append(kwargs)
            if self.print_out:
                print(f">>>Process runner: Executing \n {str(cmd)}")
            for token in self.cmd_to_callback:
                if token in str(cmd):
                    # Trigger a callback if token is in cmd.
                    callback = self.cmd_to_callback[token]
                    callback()

            for token in self.fail_cmds:
                if token in str(cmd):
                    raise CalledProcessError(1, token,
                                             "Failing command on purpose")

    def check_output(self, cmd):
        with self.lock:
            self.check_call(cmd)
            return_string = "command-output"
            key_to_shrink = None
            for pattern, response_list in self.call_response.items():
                if pattern in str(cmd):
                    return_string = response_list[0]
                    key_to_shrink = pattern
                    break
            if key_to_shrink:
                self.call_response[key_to_shrink] = self.call_response[
                                                        key_to_shrink][1:]
                if len(self.call_response[key_to_shrink]) == 0:
                    del self.call_response[key_to_shrink]

            return return_string.encode()

    def assert_has_call(self,
                        pattern: Optional[str] = None,
                        exact: Optional[List[str]] = None):
        """Checks if the given value was called by this process runner.
        NOTE: Either pattern or exact must be specified, not both!
        Args:
            pattern: RegEx that matches one specific call.
            exact: List of strings that when joined exactly match one call.
        """
        with self.lock:
            assert bool(pattern) ^ bool(exact), \
                "Must specify either a pattern or exact match."
            if pattern is not None:
                for cmd in self.command_history():
                    if re.search(pattern, cmd):
                        return True
                raise Exception(
                    f"Did not find [{pattern}] in "
                    f"{self.command_history()}")
            exact_cmd = " ".join(exact)
            for cmd in self.command_history():
                if cmd == exact_cmd:
                    return True
            raise Exception(
                f"Did not find [{exact_cmd}] in {self.command_history()}")

    def assert_not_has_call(self, pattern: str):
        """Ensure that the given regex pattern was never called.
        """
        with self.lock:
            out = "\n".join(self.command_history())
            if re.search(pattern, out):
                raise Exception("Found [{}] in [{}]".format(pattern, out))
            return True

    def clear_history(self):
        with self.lock:
            self.calls = []
            self.call_kwargs = []

    def command_history(self):
        with self.lock:
            return [" ".join(cmd) for cmd in self.calls]

    def respond_to_call(self, pattern, response_list):
        with self.lock:
            self.call_response[pattern] = response_list


class MockMetadataService(MetadataService):
    def __init__(self, instance_id=TEST_INSTANCE_ID,
                 token=TEST_METADATA_TOKEN, fail=False):
        self.instance_id = instance_id
        self.token = token
        self.fail = fail
        self.token_requests = []

    def get_token(self, ttl_seconds: int) -> str:
        self.token_requests.append(ttl_seconds)
        if self.fail:
            raise MetadataUnavailable("Metadata service not reachable")
        return self.token

    def get_instance_id(self, token: str) -> str:
        if token != self.token:
            raise MetadataUnavailable("Invalid token")
        return self.instance_id


class MockSecretStore(SecretStore):
    def __init__(self, values=None):
        if values is None:
            values = {TEST_TOKEN_PATH: TEST_AGENT_TOKEN}
        self.values = values
        self.requests = []

    def get_parameter(self, path: str, decrypt: bool = True) -> str:
        self.requests.append((path, decrypt))
        if path not in self.values:
            raise SecretUnavailable(
                "Failed to get SSM parameter {}: ParameterNotFound".format(
                    path))
        return self.values[path]


class MockFleetManager(FleetManager):
    def __init__(self, events=None, fail=False):
        self.events = events if events is not None else []
        self.fail = fail
        self.health = []

    def set_instance_health(self, instance_id: str, status: str) -> None:
        self.events.append("health")
        if self.fail:
            raise RuntimeError("Access denied")
        self.health.append((instance_id, status))


class MockProvisioningController(ProvisioningController):
    def __init__(self, events=None, reject=False, fail=False):
        self.events = events if events is not None else []
        self.reject = reject
        self.fail = fail
        self.signals = []

    def signal(self, stack_name: str, resource_name: str,
               exit_code: int, reason: Optional[str] = None) -> None:
        self.events.append("signal")
        self.signals.append((stack_name, resource_name, exit_code, reason))
        if self.reject:
            raise SignalRejected("ValidationError: Resource is in "
                                 "CREATE_COMPLETE state")
        if self.fail:
            raise RuntimeError("Connection reset")


class MockFileFetcher(FileFetcher):
    def __init__(self, files=None):
        self.files = files or {}
        self.fetched = []

    def fetch(self, url: str, dest_path: str) -> None:
        self.fetched.append((url, dest_path))
        if url not in self.files:
            raise FetchError("Failed to download {}: 404".format(url))
        dest_dir = os.path.dirname(dest_path)
        if dest_dir:
            os.makedirs(dest_dir, exist_ok=True)
        with open(dest_path, "w") as f:
            f.write(self.files[url])


class MockProcessSupervisor(ProcessSupervisor):
    def __init__(self, events=None):
        self.events = events if events is not None else []
        self.enabled = []
        self.started = []

    def enable(self, service_name: str) -> None:
        self.enabled.append(service_name)

    def start_now(self, service_name: str) -> None:
        self.events.append("start " + service_name)
        self.started.append(service_name)


class MockContainerRuntime(ContainerRuntime):
    def __init__(self, ps_results=None, docker_version=TEST_DOCKER_VERSION,
                 events=None):
        # True for every probe when not given
        self.ps_results = list(ps_results) if ps_results is not None else None
        self.docker_version = docker_version
        self.events = events if events is not None else []
        self.probes = 0

    def ps(self) -> bool:
        self.probes += 1
        self.events.append("ps")
        if self.ps_results is None:
            return True
        return self.ps_results.pop(0)

    def version(self) -> str:
        return self.docker_version


class RecordingSleep:
    def __init__(self, events=None):
        self.events = events if events is not None else []
        self.sleeps = []

    def __call__(self, seconds):
        self.events.append("sleep {}".format(seconds))
        self.sleeps.append(seconds)


def make_response(status_code=200, content=b"", url=""):
    response = requests.Response()
    response.status_code = status_code
    response._content = content
    response.encoding = "utf-8"
    # the content is already in memory, nothing to stream from
    response._content_consumed = True
    response.url = url
    response.reason = "OK" if status_code < 400 else "Error"
    return response


class MockSession:
    def __init__(self, responses=None, error=None):
        self.responses = list(responses or [])
        self.error = error
        self.requests = []

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.responses.pop(0)

    def get(self, url, **kwargs):
        return self.request("GET", url, **kwargs)
