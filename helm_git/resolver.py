"""
Serve one helm-git request.

    parse URI ─► request cache hit ──────────────────────────────► bytes
                 └ miss ─► mirror cache ─► checkout ─┬► file in tree ─► bytes
                                                     └► charts ─► package ─► index ─► bytes
"""

import logging
from pathlib import Path

from helm_git.config import Config
from helm_git.exceptions import ArtifactNotFoundError
from helm_git.git import checkout, resolve_cached_repo
from helm_git.helm import HelmClient, run_pipeline
from helm_git.model.uri import FetchDescriptor, parse_uri
from helm_git.request_cache import RequestCache
from helm_git.utils import redact_url
from helm_git.workspace import Workspace

logger = logging.getLogger(__name__)


def resolve_repo_source(descriptor: FetchDescriptor, config: Config) -> str:
    """URL to fetch from: the cached mirror when possible, the remote otherwise."""
    repo_url = descriptor.repo_url
    if config.repo_cache_dir is None:
        return repo_url

    cached_url = resolve_cached_repo(repo_url, descriptor.ref, config.repo_cache_dir)
    if cached_url is None:
        logger.debug(
            f"Repository cache missed, fetching {redact_url(repo_url)} directly"
        )
        return repo_url
    return cached_url


def fetch_file(
    descriptor: FetchDescriptor,
    config: Config,
    helm: HelmClient,
    workspace: Workspace,
    target_path: Path,
) -> bytes:
    """
    Produce the requested file for ``descriptor`` in ``target_path``.

    A file that exists in the checked out tree is served as is. A directory
    is searched for charts and its index served. Anything else is looked up
    among the outputs of the chart pipeline.
    """
    git_root_path = workspace.mkdtemp()
    repo_source = resolve_repo_source(descriptor, config)
    checkout(
        descriptor.sparse,
        git_root_path,
        repo_source,
        descriptor.ref,
        descriptor.chart_dir,
    )

    requested_path = git_root_path / descriptor.sub_path
    if descriptor.sub_path and requested_path.is_file():
        logger.debug(f"Returning file {descriptor.sub_path} from the repository")
        return requested_path.read_bytes()

    if descriptor.sub_path and requested_path.is_dir():
        # a dotted directory name looked like a file before checkout
        descriptor = descriptor.as_directory()

    search_root = git_root_path / descriptor.chart_dir
    run_pipeline(search_root, target_path, descriptor, helm, workspace)

    target_file = target_path / descriptor.file_name
    if not target_file.is_file():
        raise ArtifactNotFoundError(descriptor.file_name, descriptor.canonical_uri)
    logger.debug(f"Returning target: {target_file}")
    return target_file.read_bytes()


def resolve(raw_uri: str, config: Config) -> bytes:
    """
    Return the bytes helm asked for with ``raw_uri``.

    Raises:
        HelmGitError: on any failure outside of the caches
    """
    descriptor = parse_uri(raw_uri)
    helm = HelmClient(config.helm_bin, config.dependency_depth)
    request_cache = RequestCache(config.chart_cache_dir)

    with Workspace(config.tmp_dir) as workspace:
        return request_cache.get_or_compute(
            raw_uri,
            descriptor.file_name,
            lambda target_path: fetch_file(
                descriptor, config, helm, workspace, target_path
            ),
            workspace,
        )
