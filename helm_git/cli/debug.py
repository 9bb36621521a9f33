import click

from .utils.logging import configure_logging


def add_debug_option(cmd: click.Command) -> click.Command:
    """Add the --debug/--no-debug option to a click command"""
    if not any(param.name == "debug" for param in cmd.params):
        cmd.params.insert(
            0,
            click.Option(
                ["--debug/--no-debug"],
                default=None,
                is_eager=True,
                expose_value=False,
                callback=lambda ctx, param, value: _set_debug(ctx, value),
                help="Enable debug mode (same as HELM_GIT_DEBUG=1)",
            ),
        )
    return cmd


def _set_debug(ctx, value):
    """Callback function for debug flag; None leaves the environment in charge"""
    root_ctx = ctx.find_root()
    root_ctx.ensure_object(dict)

    if value is not None:
        root_ctx.obj["DEBUG"] = value
        configure_logging(value)
    return value
