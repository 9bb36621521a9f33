"""
Bare mirror cache for remote repositories.

One bare repository per remote, laid out Go-module style:

    $HELM_GIT_REPO_CACHE/
    ├── github.com/
    │   └── org/
    │       └── charts/        # bare mirror, refs fetched on demand
    └── gitlab.com/
        └── group/
            └── project/

The mirror is shared by every request for the same repository whatever ref
they ask for. Refs are fetched one at a time, shallow, and tags already
present are served without touching the network. Mirrors are never checked
out and never deleted by helm-git.

Caching is only an optimization: every failure here is logged at debug level
and reported as a cache miss (None) so that the caller falls back to fetching
from the remote directly.

Concurrency: there is no locking. Two processes setting up or fetching into
the same mirror at once may race.
"""

import logging
import shutil
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from helm_git.utils import redact_url

from .remote import fetch_ref, has_tag

logger = logging.getLogger(__name__)


def parse_repo_url(url: str) -> Optional[str]:
    """
    Parse a git repository URL into its cache path.

    Protocol, credentials and a ``.git`` suffix are dropped so the same
    repository maps to the same mirror however it was addressed.

    Examples:
        https://github.com/user/repo.git -> github.com/user/repo
        ssh://git@github.com/user/repo -> github.com/user/repo
        https://token@gitlab.com/group/sub/project -> gitlab.com/group/sub/project
        file:///srv/git/repo.git -> localhost/srv/git/repo

    Returns:
        Path-like string, or None if the URL has no usable path
    """
    url = url.rstrip("/")
    if url.endswith(".git"):
        url = url[:-4]

    parsed = urlparse(url)
    host = parsed.netloc.rpartition("@")[2] or "localhost"
    path = parsed.path.strip("/")

    segments = path.split("/")
    if not path or any(segment in ("", ".", "..") for segment in segments):
        return None
    return f"{host}/{path}"


def _open_mirror(repo_path: Path, repo_url: str) -> Optional[Repo]:
    """Open the mirror at ``repo_path``, creating it on first use."""
    display_url = redact_url(repo_url)
    if repo_path.exists():
        logger.debug(f"{display_url} exists in cache")
        try:
            return Repo(repo_path)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            logger.debug(f"Cached repo at {repo_path} is not usable: {e}")
            return None

    logger.debug(f"First time I see {display_url}, setting it up in {repo_path}")
    try:
        repo = Repo.init(repo_path, mkdir=True, bare=True)
        repo.create_remote("origin", repo_url)
        with repo.config_writer() as config:
            # commits fetched by id are only reachable through FETCH_HEAD
            config.set_value("uploadpack", "allowAnySHA1InWant", "true")
        return repo
    except (OSError, GitCommandError) as e:
        logger.debug(f"Could not setup {display_url}: {e}")
        shutil.rmtree(repo_path, ignore_errors=True)
        return None


def resolve_cached_repo(repo_url: str, ref: str, cache_dir: Path) -> Optional[str]:
    """
    Make sure ``ref`` of ``repo_url`` is in the mirror cache.

    Args:
        repo_url: Remote repository URL
        ref: Branch, tag or commit id
        cache_dir: Root of the mirror cache

    Returns:
        A file:// URL of the mirror to fetch from instead of ``repo_url``,
        or None on a cache miss
    """
    display_url = redact_url(repo_url)
    logger.debug(f"Trying to intercept for {display_url}#{ref}")

    if not cache_dir.is_dir():
        logger.debug(f"HELM_GIT_REPO_CACHE:{cache_dir} is not a directory, cannot cache")
        return None

    repo_key = parse_repo_url(repo_url)
    if repo_key is None:
        logger.debug(f"Cannot compute a cache path for {display_url}")
        return None

    repo_path = cache_dir.resolve() / repo_key
    logger.debug(f"Calculated cache path for repo {display_url} is {repo_path}")

    repo = _open_mirror(repo_path, repo_url)
    if repo is None:
        return None

    try:
        logger.debug(f"Making sure we have the requested ref #{ref}")
        if has_tag(repo, ref):
            logger.debug(f"Ref {ref} was already cached for {display_url}")
        else:
            logger.debug(f"Did not find {ref} in our cache for {display_url}")
            fetch_ref(repo, ref)
    except GitCommandError as e:
        logger.debug(f"Could not fetch {ref}: {e}")
        return None
    finally:
        repo.close()

    cached_url = repo_path.as_uri()
    logger.debug(f"Returning cached repo at {cached_url}")
    return cached_url
