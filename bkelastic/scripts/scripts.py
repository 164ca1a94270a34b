import logging
import os
import sys

import click

from bkelastic.core._private import constants
from bkelastic.core._private import logging_utils
from bkelastic.core._private.bootstrap import run_bootstrap
from bkelastic.core._private.environment import Environment
from bkelastic.core._private.errors import BootstrapError
from bkelastic.core._private.parameter import BootstrapParams
from bkelastic.core._private.providers import _get_collaborators
from bkelastic.core._private.status_tracker import StatusTracker, \
    FileStatusStore, BootstrapStatus, status_to_value
from bkelastic.scripts.utils import NaturalOrderGroup, get_provider_config

logger = logging.getLogger(__name__)


@click.group(cls=NaturalOrderGroup)
@click.option(
    "--logging-level",
    required=False,
    default=constants.LOGGER_LEVEL_INFO,
    type=str,
    help=constants.LOGGER_LEVEL_HELP)
@click.option(
    "--logging-format",
    required=False,
    default=constants.LOGGER_FORMAT,
    type=str,
    help=constants.LOGGER_FORMAT_HELP)
@click.version_option()
@click.pass_context
def cli(ctx, logging_level, logging_format):
    level = logging.getLevelName(logging_level.upper())
    logging_utils.setup_logger(level, logging_format)
    ctx.ensure_object(dict)
    ctx.obj["logging_level"] = level
    ctx.obj["logging_format"] = logging_format


@cli.command()
@click.option(
    "--root-dir",
    required=False,
    type=str,
    help="Place every host path under this directory.")
@click.option(
    "--provider",
    required=False,
    default="aws",
    type=str,
    help="The cloud provider of the host.")
@click.option(
    "--provider-class",
    required=False,
    type=str,
    help="The collaborators factory when the provider is external.")
@click.option(
    "--region",
    required=False,
    envvar="AWS_REGION",
    type=str,
    help="The region of the host. Defaults to AWS_REGION.")
@click.option(
    "--log-file",
    required=False,
    type=str,
    help="The bootstrap log file.")
@click.pass_context
def bootstrap(ctx, root_dir, provider, provider_class, region, log_file):
    """Bootstrap this host as a Buildkite agent of the elastic stack."""
    params = BootstrapParams(root_dir=root_dir, log_file=log_file)
    logging_utils.setup_component_logger(
        logging_level=ctx.obj["logging_level"],
        logging_format=ctx.obj["logging_format"],
        log_dir=os.path.dirname(params.log_file),
        filename=os.path.basename(params.log_file),
        max_bytes=constants.LOGGING_ROTATE_MAX_BYTES,
        backup_count=constants.LOGGING_ROTATE_BACKUP_COUNT)

    # a completed host needs none of the cloud services
    status_tracker = StatusTracker(FileStatusStore(params.status_file))
    if status_tracker.get_status() == BootstrapStatus.COMPLETED:
        logger.info("The host has already been bootstrapped.")
        sys.exit(0)

    provider_config = get_provider_config(provider, region)
    if provider_class:
        provider_config["provider_class"] = provider_class
    collaborators = _get_collaborators(provider_config)

    result = run_bootstrap(Environment(), params, collaborators)
    if result.skipped:
        logger.info("The host has already been bootstrapped.")
    elif result.completed:
        logger.info("Bootstrap completed.")
    sys.exit(result.exit_code)


@cli.command()
@click.option(
    "--root-dir",
    required=False,
    type=str,
    help="Place every host path under this directory.")
def status(root_dir):
    """Show the bootstrap status of this host."""
    params = BootstrapParams(root_dir=root_dir)
    status_tracker = StatusTracker(FileStatusStore(params.status_file))
    current = status_tracker.get_status()
    if current is None:
        click.echo("Unknown")
        sys.exit(1)
    if current == BootstrapStatus.NOT_STARTED:
        click.echo("NotStarted")
    else:
        click.echo(status_to_value(current))


@cli.command()
@click.argument("url", required=True, type=str)
@click.argument("dest", required=True, type=str)
@click.option(
    "--region",
    required=False,
    envvar="AWS_REGION",
    type=str,
    help="The region of the host. Defaults to AWS_REGION.")
def fetch(url, dest, region):
    """Download URL (s3:// or https://) to the DEST file."""
    collaborators = _get_collaborators(get_provider_config("aws", region))
    try:
        collaborators.file_fetcher.fetch(url, dest)
    except BootstrapError as e:
        logger.error("%s", e)
        sys.exit(e.exit_code)


def main():
    return cli()


if __name__ == "__main__":
    main()
