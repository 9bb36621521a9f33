"""
Git operations for helm-git.

Two layers:
    - Mirror cache: one bare, shallow mirror per remote repository
      (see cache.py), enabled by HELM_GIT_REPO_CACHE
    - Working trees: a throwaway checkout of exactly one ref per request
      (see checkout.py), fetched from the mirror or the remote itself
"""

from .cache import parse_repo_url, resolve_cached_repo
from .checkout import checkout
from .remote import fetch_ref, probe_remote, ref_spec

__all__ = [
    "checkout",
    "fetch_ref",
    "parse_repo_url",
    "probe_remote",
    "ref_spec",
    "resolve_cached_repo",
]
