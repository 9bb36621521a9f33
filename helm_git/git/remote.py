"""
Transport-level git operations shared by the mirror cache and checkouts.
"""

import logging

from git import Git, Repo
from git.exc import GitCommandError

from helm_git.utils import redact_url

logger = logging.getLogger(__name__)
trace_logger = logging.getLogger("helm_git.trace")

# git must never wait for credentials on a terminal
GIT_ENVIRONMENT = {"GIT_TERMINAL_PROMPT": "0"}


def ref_spec(ref: str) -> str:
    """
    Ref-spec matching ``ref`` in every namespace.

    ``refs/*/v1:refs/*/v1`` lands branches in refs/heads, tags and annotated
    tags in refs/tags, each at the same place as on the remote.
    """
    return f"refs/*/{ref}:refs/*/{ref}"


def fetch_ref(repo: Repo, ref: str, remote: str = "origin") -> None:
    """
    Shallow-fetch one ref of any kind from ``remote`` into ``repo``.

    The ref is passed both as a wildcard ref-spec (branches, tags) and as is,
    so commit ids are fetched too. ``-u`` lets a fresh repository fetch into
    the branch HEAD points to.

    Raises:
        GitCommandError: if git fails
    """
    with repo.git.custom_environment(**GIT_ENVIRONMENT):
        output = repo.git.fetch("-u", "--depth=1", remote, ref_spec(ref), ref)
    if output:
        trace_logger.debug(output)


def probe_remote(url: str) -> bool:
    """Check whether ``url`` answers ``git ls-remote``."""
    git = Git()
    try:
        with git.custom_environment(**GIT_ENVIRONMENT):
            output = git.ls_remote("--refs", url)
    except GitCommandError as e:
        logger.debug(f"git ls-remote {redact_url(url)} failed: {e.stderr.strip()}")
        return False
    trace_logger.debug(output)
    return True


def has_tag(repo: Repo, ref: str) -> bool:
    return bool(repo.git.tag("-l", ref).strip())
