"""helm-git CLI, called by helm as a downloader plugin"""

import sys

import click

from helm_git import __version__
from helm_git.config import Config
from helm_git.exceptions import HelmGitError
from helm_git.resolver import resolve
from helm_git.utils import redact_url
from helm_git.workspace import install_signal_handlers

from .debug import add_debug_option
from .utils.logging import configure_logging, logger


@click.command(name="helm-git")
@click.version_option(__version__, prog_name="helm-git")
@click.argument("cert_file")
@click.argument("key_file")
@click.argument("ca_file")
@click.argument("uri")
@click.pass_context
def cli(ctx, cert_file, key_file, ca_file, uri):
    """
    Fetch URI and write the requested file to stdout.

    Helm calls downloader plugins with CERT_FILE KEY_FILE CA_FILE URI; the
    certificate arguments are accepted for compatibility and unused, git
    handles authentication on its own.

    Example:

      helm-git "" "" "" "git+https://github.com/org/repo@charts/index.yaml?ref=v1.0.0"
    """
    ctx.ensure_object(dict)
    config = Config.from_env()
    debug = ctx.obj.get("DEBUG")
    if debug is not None:
        config = config.with_debug(debug)
    configure_logging(config.debug, config.trace)
    logger.debug(
        f"args: {cert_file!r} {key_file!r} {ca_file!r} {redact_url(uri)!r}"
    )

    install_signal_handlers()
    try:
        content = resolve(uri, config)
    except (HelmGitError, OSError) as e:
        logger.error(str(e))
        sys.exit(1)

    stdout = click.get_binary_stream("stdout")
    stdout.write(content)
    stdout.flush()


add_debug_option(cli)

if __name__ == "__main__":
    cli(obj={})
