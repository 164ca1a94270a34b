import logging
import re
from typing import List, Optional

from bkelastic.core._private import constants
from bkelastic.core._private.core_utils import write_file, write_private_file
from bkelastic.core._private.environment import Environment
from bkelastic.core._private.identity import InstanceIdentity

logger = logging.getLogger(__name__)

AGENT_CONFIG_FILE_MODE = 0o600

SET_UNLESS_PRESENT = "set_unless_present"
SET_ALWAYS = "set_always"

# The environment overlay is created in two steps so that no quoting and
# escaping is needed for the helper functions: this block is written
# as is, the second block calls the helpers with the resolved values.
CFN_ENV_HELPERS = """\
# The Buildkite agent sets a number of variables such as AWS_DEFAULT_REGION to fixed values which
# are determined at AMI-build-time.  However, sometimes a user might want to override such variables
# using an env: block in their pipeline.yml.  This little helper is sets the environment variables
# buildkite-agent and plugins expect, except if a user want to override them, for example to do a
# deployment to a region other than where the Buildkite agent lives.
function set_unless_present() {
    local target=$1
    local value=$2

    if [[ -v "${target}" ]]; then
        echo "^^^ +++"
        echo "⚠️ ${target} already set, NOT overriding! (current value \\"${!target}\\" set by Buildkite step env configuration, or inherited from the buildkite-agent process environment)"
    else
        echo "export ${target}=\\"${value}\\""
        declare -gx "${target}=${value}"
    fi
}

function set_always() {
    local target=$1
    local value=$2

    echo "export ${target}=\\"${value}\\""
    declare -gx "${target}=${value}"
}
"""

_escape_double_quote_unsafe = re.compile(r'([\\"$`])').sub


def escape_double_quoted(value):
    """Escape a value for use inside a double quoted shell string."""
    return _escape_double_quote_unsafe(r"\\\1", value)


class AgentConfigEntry:
    def __init__(self, name, value, force):
        self.name = name
        self.value = value
        self.force = force

    def __repr__(self):
        return "AgentConfigEntry({!r}, {!r}, force={})".format(
            self.name, self.value, self.force)


class AgentConfig:
    """The variables exported to the builds, in rendering order.

    Force entries are values owned by the bootstrap and always overwrite.
    The other entries leave a value the user already set alone.
    """

    def __init__(self) -> None:
        self.entries: List[AgentConfigEntry] = []

    def set_always(self, name, value):
        self.entries.append(AgentConfigEntry(name, value, True))

    def set_unless_present(self, name, value):
        self.entries.append(AgentConfigEntry(name, value, False))

    def apply(self, environment: Environment):
        for entry in self.entries:
            if entry.force:
                environment.set_always(entry.name, entry.value)
            else:
                environment.set_unless_present(entry.name, entry.value)

    def render(self) -> str:
        lines = [""]
        width = len(SET_UNLESS_PRESENT)
        for entry in self.entries:
            helper = SET_ALWAYS if entry.force else SET_UNLESS_PRESENT
            lines.append('{} "{}" "{}"'.format(
                helper.ljust(width), entry.name,
                escape_double_quoted(entry.value)))
        return "\n".join(lines) + "\n"


def get_plugins_enabled(environment: Environment) -> List[str]:
    return [plugin for plugin, flag in constants.PLUGIN_FLAGS
            if environment.get(flag) == "true"]


def get_agent_tags(environment: Environment, docker_version: str) -> List[str]:
    """The agent tags: the fixed stack tags followed by the user tags.

    User tags come from the comma separated BUILDKITE_AGENT_TAGS and keep
    their order. Duplicated keys are kept. A trailing comma adds no tag.
    """
    tags = [
        "queue={}".format(environment.get("BUILDKITE_QUEUE")),
        "docker={}".format(docker_version),
        "stack={}".format(environment.get("BUILDKITE_STACK_NAME")),
        "buildkite-aws-stack={}".format(
            environment.get("BUILDKITE_STACK_VERSION")),
    ]
    extra_tags = environment.get("BUILDKITE_AGENT_TAGS")
    if extra_tags:
        user_tags = extra_tags.split(",")
        if not user_tags[-1]:
            user_tags.pop()
        tags += user_tags
    return tags


def build_agent_config(environment: Environment, docker_version: str,
                       plugins_enabled: List[str]) -> AgentConfig:
    region = environment.get("AWS_REGION")
    agent_config = AgentConfig()
    agent_config.set_always(
        "BUILDKITE_AGENTS_PER_INSTANCE",
        environment.get("BUILDKITE_AGENTS_PER_INSTANCE"))
    agent_config.set_always(
        "BUILDKITE_ECR_POLICY",
        environment.get("BUILDKITE_ECR_POLICY") or "none")
    agent_config.set_always(
        "BUILDKITE_SECRETS_BUCKET",
        environment.get("BUILDKITE_SECRETS_BUCKET"))
    agent_config.set_always(
        "BUILDKITE_SECRETS_BUCKET_REGION",
        environment.get("BUILDKITE_SECRETS_BUCKET_REGION"))
    agent_config.set_always(
        "BUILDKITE_STACK_NAME", environment.get("BUILDKITE_STACK_NAME"))
    agent_config.set_always(
        "BUILDKITE_STACK_VERSION", environment.get("BUILDKITE_STACK_VERSION"))
    agent_config.set_always(
        "BUILDKITE_DOCKER_EXPERIMENTAL",
        environment.get("DOCKER_EXPERIMENTAL"))
    agent_config.set_always("DOCKER_VERSION", docker_version)
    agent_config.set_always("PLUGINS_ENABLED", " ".join(plugins_enabled))
    agent_config.set_unless_present("AWS_DEFAULT_REGION", region)
    agent_config.set_unless_present("AWS_REGION", region)
    return agent_config


def render_agent_config_file(environment: Environment,
                             identity: InstanceIdentity,
                             token: str,
                             tags: List[str],
                             hooks_path: str,
                             build_path: str,
                             plugins_path: str,
                             git_mirrors_path: Optional[str]) -> str:
    timestamp_lines = environment.get("BUILDKITE_AGENT_TIMESTAMP_LINES")
    # timestamp-lines xor ansi-timestamps
    no_ansi_timestamps = "true" if timestamp_lines == "true" else "false"
    lines = [
        'name="{}-{}-%spawn"'.format(
            environment.get("BUILDKITE_STACK_NAME"), identity.instance_id),
        'token="{}"'.format(token),
        "tags={}".format(",".join(tags)),
        "tags-from-ec2-meta-data=true",
        "no-ansi-timestamps={}".format(no_ansi_timestamps),
        "timestamp-lines={}".format(timestamp_lines),
        "hooks-path={}".format(hooks_path),
        "build-path={}".format(build_path),
        "plugins-path={}".format(plugins_path),
        'git-mirrors-path="{}"'.format(git_mirrors_path or ""),
        'experiment="{}"'.format(
            environment.get("BUILDKITE_AGENT_EXPERIMENTS")),
        "priority=%n",
        "spawn={}".format(environment.get("BUILDKITE_AGENTS_PER_INSTANCE")),
        "no-color=true",
        "disconnect-after-idle-timeout={}".format(
            environment.get("BUILDKITE_SCALE_IN_IDLE_PERIOD")),
        "disconnect-after-job={}".format(
            environment.get("BUILDKITE_TERMINATE_INSTANCE_AFTER_JOB")),
        "tracing-backend={}".format(
            environment.get("BUILDKITE_AGENT_TRACING_BACKEND")),
        "cancel-grace-period={}".format(constants.AGENT_CANCEL_GRACE_PERIOD),
    ]
    return "\n".join(lines) + "\n"


def render_lifecycled_config(region: str) -> str:
    lines = [
        "AWS_REGION={}".format(region),
        "LIFECYCLED_HANDLER={}".format(constants.LIFECYCLED_HANDLER),
        "LIFECYCLED_CLOUDWATCH_GROUP={}".format(
            constants.LIFECYCLED_CLOUDWATCH_GROUP),
    ]
    return "\n".join(lines) + "\n"


class ConfigRenderer:
    """Writes the generated configuration files of the host.

    All the files are fully overwritten on every run.
    """

    def __init__(self, environment: Environment, params) -> None:
        self.environment = environment
        self.params = params

    def write_cfn_env(self, agent_config: AgentConfig) -> str:
        path = self.params.cfn_env_file
        logger.info("Writing the environment overlay to %s", path)
        write_file(path, CFN_ENV_HELPERS)
        write_file(path, agent_config.render(), append=True)
        return path

    def write_agent_config(self, identity: InstanceIdentity, token: str,
                           tags: List[str], build_path: str,
                           git_mirrors_path: Optional[str]) -> str:
        path = self.params.agent_config_file
        logger.info("Writing the agent configuration to %s", path)
        content = render_agent_config_file(
            self.environment, identity, token, tags,
            hooks_path=self.params.hooks_path,
            build_path=build_path,
            plugins_path=self.params.plugins_path,
            git_mirrors_path=git_mirrors_path)
        # The file holds the agent token
        write_private_file(path, content, mode=AGENT_CONFIG_FILE_MODE)
        return path

    def write_lifecycled_config(self) -> str:
        path = self.params.lifecycled_config_file
        logger.info("Writing the lifecycled configuration to %s", path)
        write_file(path, render_lifecycled_config(
            self.environment.get("AWS_REGION")))
        return path
