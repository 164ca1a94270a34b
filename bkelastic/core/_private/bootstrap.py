import logging
import os
import platform
import time
import traceback
from typing import Optional

from bkelastic.core._private.config_renderer import ConfigRenderer, \
    build_agent_config, get_agent_tags, get_plugins_enabled
from bkelastic.core._private.environment import Environment
from bkelastic.core._private.errors import BootstrapAlreadyCompleted, \
    get_exit_code
from bkelastic.core._private.health_reporter import HealthReporter
from bkelastic.core._private.host_setup import HostSetup
from bkelastic.core._private.identity import IdentityResolver
from bkelastic.core._private.parameter import BootstrapParams
from bkelastic.core._private.providers import BootstrapCollaborators
from bkelastic.core._private.secrets import SecretResolver
from bkelastic.core._private.service_activator import ServiceActivator
from bkelastic.core._private.status_tracker import StatusTracker, \
    FileStatusStore, StatusStore
from bkelastic.core._private.storage import StorageProvisioner

logger = logging.getLogger(__name__)

_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(
    os.path.abspath(__file__))))


class BootstrapResult:
    def __init__(self, completed: bool, exit_code: int = 0,
                 error: Optional[BaseException] = None,
                 skipped: bool = False) -> None:
        self.completed = completed
        self.exit_code = exit_code
        self.error = error
        # True if the host was bootstrapped by a previous run
        self.skipped = skipped

    def __repr__(self):
        return ("BootstrapResult(completed={}, exit_code={}, "
                "skipped={}, error={!r})").format(
            self.completed, self.exit_code, self.skipped, self.error)


def get_error_line(exc: BaseException) -> str:
    """The source location of the failing step.

    This is the innermost frame of this package in the traceback, or the
    innermost frame if the error did not pass through the package.
    """
    frames = traceback.extract_tb(exc.__traceback__)
    if not frames:
        return "unknown"
    for frame in reversed(frames):
        if os.path.abspath(frame.filename).startswith(_PACKAGE_DIR):
            break
    else:
        frame = frames[-1]
    return "{}:{}".format(os.path.basename(frame.filename), frame.lineno)


class Bootstrap:
    """The bootstrap procedure of an agent host.

    The status gate runs first and the completion marker is written last.
    Any failure in between is reported once through the health reporter
    and leaves the marker at Started, so that the host is never resumed.
    """

    def __init__(self,
                 environment: Environment,
                 params: BootstrapParams,
                 collaborators: BootstrapCollaborators,
                 status_store: Optional[StatusStore] = None,
                 sleep_func=time.sleep,
                 machine_func=platform.machine) -> None:
        self.environment = environment
        self.params = params
        self.collaborators = collaborators

        if status_store is None:
            status_store = FileStatusStore(params.status_file)
        self.status_tracker = StatusTracker(status_store)
        self.identity_resolver = IdentityResolver(
            collaborators.metadata_service, machine_func=machine_func)
        self.secret_resolver = SecretResolver(collaborators.secret_store)
        self.config_renderer = ConfigRenderer(environment, params)
        self.storage_provisioner = StorageProvisioner(
            params, process_runner=collaborators.process_runner)
        self.host_setup = HostSetup(
            environment, params,
            file_fetcher=collaborators.file_fetcher,
            process_supervisor=collaborators.process_supervisor,
            process_runner=collaborators.process_runner)
        self.service_activator = ServiceActivator(
            collaborators.container_runtime,
            collaborators.process_supervisor,
            sleep_func=sleep_func)
        self.health_reporter = HealthReporter(
            collaborators.fleet_manager,
            collaborators.provisioning_controller,
            stack_name=environment.get("BUILDKITE_STACK_NAME"),
            resource_name=params.signal_resource,
            log_file=params.log_file,
            instance_id_lookup=self._lookup_instance_id)

    def _lookup_instance_id(self):
        return self.identity_resolver.resolve().instance_id

    def run(self) -> BootstrapResult:
        try:
            self._bootstrap()
        except BootstrapAlreadyCompleted:
            return BootstrapResult(True, 0, skipped=True)
        except Exception as e:
            exit_code = get_exit_code(e)
            line = get_error_line(e)
            logger.error("Bootstrap failed: %s", e)
            self.health_reporter.on_error(line, exit_code)
            return BootstrapResult(False, exit_code, error=e)
        return BootstrapResult(True, 0)

    def _bootstrap(self):
        environment = self.environment
        container_runtime = self.collaborators.container_runtime

        self.status_tracker.check_status()

        identity = self.identity_resolver.resolve()
        self.health_reporter.set_instance_id(identity.instance_id)

        docker_version = container_runtime.version()
        plugins_enabled = get_plugins_enabled(environment)
        agent_config = build_agent_config(
            environment, docker_version, plugins_enabled)
        self.config_renderer.write_cfn_env(agent_config)

        self.host_setup.install_edge_agent(identity)
        self.host_setup.write_sudoers()
        self.host_setup.select_agent_binary()

        tags = get_agent_tags(environment, docker_version)

        git_mirrors = self.storage_provisioner.provision_git_mirrors(
            environment)
        builds = self.storage_provisioner.provision_builds(environment)

        token = self.secret_resolver.fetch_token(
            environment.get("BUILDKITE_AGENT_TOKEN_PATH"))
        self.config_renderer.write_agent_config(
            identity, token, tags,
            build_path=builds.logical_path,
            git_mirrors_path=git_mirrors.logical_path if git_mirrors else "")

        self.host_setup.fetch_env_file()
        self.host_setup.chown_agent_config()
        self.host_setup.setup_authorized_keys()
        self.host_setup.install_git_lfs()

        # The extension script sees the same variables as the builds
        script_environment = Environment(environment.as_dict())
        agent_config.apply(script_environment)
        self.host_setup.run_extension_script(script_environment.as_dict())

        self.config_renderer.write_lifecycled_config()
        self.service_activator.activate()

        # let the stack know that this host has been initialized successfully
        self.health_reporter.on_success()

        # this must be the last step
        self.status_tracker.complete()


def run_bootstrap(environment: Environment,
                  params: BootstrapParams,
                  collaborators: BootstrapCollaborators,
                  **kwargs) -> BootstrapResult:
    return Bootstrap(environment, params, collaborators, **kwargs).run()
