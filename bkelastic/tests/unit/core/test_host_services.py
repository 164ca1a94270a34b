import pytest

from bkelastic.core._private.docker import DockerRuntime, \
    parse_docker_version, with_docker_cmd
from bkelastic.core._private.services import SystemdSupervisor
from bkelastic.tests.unit.utils.constants import TEST_DOCKER_VERSION_OUTPUT
from bkelastic.tests.unit.utils.helpers import MockProcessRunner


class TestDockerRuntime:
    def test_parse_docker_version(self):
        assert parse_docker_version(
            TEST_DOCKER_VERSION_OUTPUT) == "20.10.17"
        assert parse_docker_version("Docker version 24.0.5") == "24.0.5"
        assert parse_docker_version("") == ""

    def test_with_docker_cmd(self):
        assert with_docker_cmd(["ps"], "docker") == ["docker", "ps"]
        assert with_docker_cmd(
            ["ps"], "docker", with_sudo=True) == ["sudo", "docker", "ps"]

    def test_version(self, process_runner):
        runtime = DockerRuntime(process_runner=process_runner)
        assert runtime.version() == "20.10.17"
        process_runner.assert_has_call(exact=["docker", "--version"])

    def test_ps(self):
        assert DockerRuntime(process_runner=MockProcessRunner()).ps()
        assert not DockerRuntime(
            process_runner=MockProcessRunner(fail_cmds=["ps"])).ps()


class TestSystemdSupervisor:
    def test_enable(self):
        process_runner = MockProcessRunner()
        SystemdSupervisor(process_runner=process_runner).enable(
            "refresh_authorized_keys.timer")
        assert process_runner.command_history() == [
            "systemctl enable refresh_authorized_keys.timer"]

    def test_start_now(self):
        process_runner = MockProcessRunner()
        SystemdSupervisor(process_runner=process_runner).start_now(
            "buildkite-agent")
        assert process_runner.command_history() == [
            "systemctl enable --now buildkite-agent"]


if __name__ == "__main__":
    import sys
    sys.exit(pytest.main(["-v", __file__]))
