"""Parsing of git+<transport>:// chart URIs"""

import logging
import posixpath
import re
from typing import Tuple
from urllib.parse import parse_qs

from pydantic import BaseModel, ConfigDict

from helm_git.exceptions import DisallowedProtocolError, InvalidURIFormatError
from helm_git.utils import redact_url

logger = logging.getLogger(__name__)

URL_PREFIX = "git+"
ALLOWED_PROTOCOLS = ("https", "http", "file", "ssh")
DEFAULT_REF = "master"
DEFAULT_FILE_NAME = "index.yaml"

# scheme, authority (with optional userinfo), path, query and fragment
URI_REGEX = re.compile(
    r"^(?P<scheme>[^:/?#]+):"
    r"(?://(?P<authority>(?:[^/?#]+@)?[^/?#]*))?"
    r"/(?P<path>[^?#]*)"
    r"(?:\?(?P<query>[^#]*))?"
    r"(?:#(?P<fragment>.*))?$"
)


class FetchDescriptor(BaseModel):
    """Everything needed to fetch and serve one chart URI"""

    model_config = ConfigDict(frozen=True)

    scheme: str
    authority: str
    repo_path: str
    sub_path: str
    chart_dir: str
    file_name: str
    ref: str
    sparse: bool = True
    dependency_update: bool = True
    package: bool = True

    @property
    def repo_url(self) -> str:
        return f"{self.scheme}://{self.authority}/{self.repo_path}"

    @property
    def canonical_uri(self) -> str:
        """
        URI of the chart directory with every option spelled out.

        This is the base URL written into the generated index, so charts
        listed there are fetched again with the very same ref.
        """
        return (
            f"{URL_PREFIX}{self.repo_url}@{self.chart_dir}"
            f"?ref={self.ref}"
            f"&sparse={int(self.sparse)}"
            f"&depupdate={int(self.dependency_update)}"
            f"&package={int(self.package)}"
        )

    def as_directory(self) -> "FetchDescriptor":
        """The same request with ``sub_path`` taken as the chart directory."""
        return self.model_copy(
            update={"chart_dir": self.sub_path, "file_name": DEFAULT_FILE_NAME}
        )


def split_sub_path(sub_path: str) -> Tuple[str, str]:
    """
    Split a sub path into the chart directory and the requested file name.

    A last segment with a dot in it names a file (``index.yaml``,
    ``app-1.0.0.tgz``); anything else is a chart directory whose index is
    requested. This is a guess made before anything is checked out: it only
    scopes the sparse checkout, and a dotted directory (``charts/app.v2``) is
    recognised once the tree is there (see :meth:`FetchDescriptor.as_directory`).

    A sub path without a separator is a directory at the repository root
    (``charts`` gives ``charts`` + ``index.yaml``), not a file at the root.
    """
    sub_path = sub_path.strip("/")
    if sub_path in ("", "."):
        return "", DEFAULT_FILE_NAME

    head, tail = posixpath.split(sub_path)
    if "." in tail:
        chart_dir, file_name = head, tail
    else:
        chart_dir, file_name = sub_path, DEFAULT_FILE_NAME

    return chart_dir, file_name


def _query_value(query: dict, key: str) -> str:
    values = query.get(key)
    return values[-1] if values else ""


def _query_flag(query: dict, key: str) -> bool:
    value = _query_value(query, key)
    return value == "1" if value else True


def parse_uri(raw_uri: str) -> FetchDescriptor:
    """
    Parse a helm-git URI.

    Example:
        git+https://github.com/org/repo@charts/app/index.yaml?ref=v1.2.3

    Raises:
        InvalidURIFormatError: if the URI lacks the git+ prefix or an '@'
        DisallowedProtocolError: if the transport is not allowed
    """
    if not raw_uri.startswith(URL_PREFIX):
        raise InvalidURIFormatError(
            raw_uri, f"Git url should start with '{URL_PREFIX}'."
        )

    match = URI_REGEX.match(raw_uri)
    if match is None:
        raise InvalidURIFormatError(raw_uri)

    scheme = match.group("scheme")[len(URL_PREFIX) :]
    if scheme not in ALLOWED_PROTOCOLS:
        raise DisallowedProtocolError(scheme, ALLOWED_PROTOCOLS)

    repo_path, separator, sub_path = match.group("path").partition("@")
    if not separator:
        raise InvalidURIFormatError(
            raw_uri, "Expected '@' between the repository and the chart path."
        )
    sub_path = sub_path.strip("/")
    if sub_path == ".":
        sub_path = ""
    chart_dir, file_name = split_sub_path(sub_path)

    query = parse_qs(match.group("query") or "", keep_blank_values=True)
    ref = _query_value(query, "ref")
    if not ref:
        logger.warning(
            f"git_ref is empty, defaulted to '{DEFAULT_REF}'. "
            "Prefer to pin GIT ref in URI."
        )
        ref = DEFAULT_REF

    descriptor = FetchDescriptor(
        scheme=scheme,
        authority=match.group("authority") or "",
        repo_path=repo_path,
        sub_path=sub_path,
        chart_dir=chart_dir,
        file_name=file_name,
        ref=ref,
        sparse=_query_flag(query, "sparse"),
        dependency_update=_query_flag(query, "depupdate"),
        package=_query_flag(query, "package"),
    )
    logger.debug(
        f"repo: {redact_url(descriptor.repo_url)} ref: {descriptor.ref} "
        f"path: {descriptor.chart_dir} file: {descriptor.file_name} "
        f"sparse: {int(descriptor.sparse)} "
        f"depupdate: {int(descriptor.dependency_update)} "
        f"package: {int(descriptor.package)}"
    )
    return descriptor
