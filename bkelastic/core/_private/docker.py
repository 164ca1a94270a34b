import logging
import subprocess

from bkelastic.core._private.core_utils import decode
from bkelastic.core.host_services import ContainerRuntime

logger = logging.getLogger(__name__)

DEFAULT_DOCKER_CMD = "docker"


def get_docker_cmd(docker_cmd, with_sudo=False):
    cmds = ["sudo"] if with_sudo else []
    return cmds + [docker_cmd]


def with_docker_cmd(args, docker_cmd, with_sudo=False):
    return get_docker_cmd(docker_cmd, with_sudo) + list(args)


def parse_docker_version(version_output):
    """Extract the version from the output of docker --version.

    For example, "Docker version 20.10.17, build 100c701" gives "20.10.17".
    """
    tokens = version_output.split(" ")
    if len(tokens) < 3:
        return ""
    return tokens[2].replace(",", "").strip()


class DockerRuntime(ContainerRuntime):
    def __init__(self, docker_cmd=DEFAULT_DOCKER_CMD, with_sudo=False,
                 process_runner=subprocess):
        self.docker_cmd = docker_cmd
        self.with_sudo = with_sudo
        self.process_runner = process_runner

    def ps(self) -> bool:
        try:
            self.process_runner.check_call(
                with_docker_cmd(["ps"], self.docker_cmd, self.with_sudo))
            return True
        except (subprocess.CalledProcessError, OSError) as e:
            logger.debug("Docker is not responding: %s", e)
            return False

    def version(self) -> str:
        output = self.process_runner.check_output(
            with_docker_cmd(["--version"], self.docker_cmd, self.with_sudo))
        return parse_docker_version(decode(output).strip())
