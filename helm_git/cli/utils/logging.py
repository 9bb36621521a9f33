import logging
import sys


logger = logging.getLogger("helm_git")

# Output of git and helm, only shown with HELM_GIT_TRACE=1
trace_logger = logging.getLogger("helm_git.trace")


def configure_logging(debug: bool, trace: bool = False):
    """
    Configures the logging system based on the debug and trace flags.

    Messages go to stderr: stdout carries the file handed back to helm.
    """
    handler = logging.StreamHandler(sys.stderr)
    formatter = logging.Formatter(
        "%(levelname)s[%(process)d] in plugin 'helm-git': %(message)s"
    )
    handler.setFormatter(formatter)

    log_level = logging.DEBUG if (debug or trace) else logging.INFO
    logger.setLevel(log_level)
    trace_logger.setLevel(logging.DEBUG if trace else logging.WARNING)

    if not logger.hasHandlers():
        logger.addHandler(handler)
