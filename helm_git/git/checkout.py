"""Materialize a single ref, optionally a single directory, into a working tree"""

import logging
from pathlib import Path

from git import Repo
from git.exc import GitCommandError

from helm_git.exceptions import (
    EmptyCheckoutError,
    RefNotFoundError,
    RemoteUnreachableError,
)
from helm_git.utils import redact_url

from .remote import fetch_ref, probe_remote

logger = logging.getLogger(__name__)
trace_logger = logging.getLogger("helm_git.trace")


def enable_sparse_checkout(repo: Repo, sub_path: str) -> None:
    """Restrict the working tree of ``repo`` to ``sub_path``."""
    with repo.config_writer() as config:
        config.set_value("core", "sparseCheckout", "true")

    sparse_file = Path(repo.git_dir) / "info" / "sparse-checkout"
    sparse_file.parent.mkdir(parents=True, exist_ok=True)
    sparse_file.write_text(f"{sub_path}/*\n")


def is_empty_checkout(target_path: Path) -> bool:
    return not any(entry.name != ".git" for entry in target_path.iterdir())


def checkout(
    sparse: bool, target_path: Path, repo_source: str, ref: str, sub_path: str
) -> None:
    """
    Checkout ``ref`` of ``repo_source`` into the empty directory ``target_path``.

    Args:
        sparse: Only materialize ``sub_path`` (ignored when sub_path is empty)
        target_path: Directory that becomes the working tree
        repo_source: Remote URL, or the file:// URL of a cached mirror
        ref: Branch, tag, annotated tag or commit id
        sub_path: Directory of interest inside the repository

    Raises:
        RemoteUnreachableError: if the ref cannot be fetched
        RefNotFoundError: if the fetched ref cannot be checked out
        EmptyCheckoutError: if the checkout produced no files
    """
    repo = Repo.init(target_path)
    try:
        with repo.config_writer() as config:
            config.set_value("pull", "ff", "only")
        repo.create_remote("origin", repo_source)

        if sparse and sub_path:
            logger.debug(f"Enabling sparse checkout of {sub_path}")
            enable_sparse_checkout(repo, sub_path)

        try:
            fetch_ref(repo, ref)
        except GitCommandError as e:
            logger.debug(f"git fetch failed: {e.stderr.strip()}")
            if probe_remote(repo_source):
                logger.debug(f"Remote is reachable, {ref} is likely missing")
            raise RemoteUnreachableError(repo_source, ref) from e

        try:
            output = repo.git.checkout(ref)
        except GitCommandError as e:
            logger.debug(f"git checkout failed: {e.stderr.strip()}")
            raise RefNotFoundError(ref, sub_path) from e
        if output:
            trace_logger.debug(output)
    finally:
        repo.close()

    if is_empty_checkout(target_path):
        raise EmptyCheckoutError(ref, sub_path)
    logger.debug(f"Checked out {redact_url(repo_source)}@{ref} to {target_path}")
