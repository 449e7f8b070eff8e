"""k3s release discovery and caching.

The list of usable k3s versions is queried from the GitHub releases API and
cached on disk, one tag per line, newest first. The cache file's modification
time is its only freshness signal.
"""
import logging
import re
import time
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, Union

import requests
from pydantic import ValidationError

from ..config import Config
from ..errors import CacheInitFailed, KlusterError, RemoteFetchFailed
from ..models import GitHubRelease
from ..utils import parse_duration, read_lines, write_lines

logger = logging.getLogger("kluster.releases")

VERSION_TAG = re.compile(r"^(v[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3})([+|\-]k3s[0-9])$")

GITHUB_ACCEPT = "application/vnd.github.v3+json"


class Provenance(str, Enum):
    """Where the release list of a ReleaseCache came from."""
    FRESH = "fresh"
    FROM_CACHE = "from-cache"


@dataclass
class ReleaseCache:
    """k3s release tags, newest first, plus where they came from."""
    cache_path: Path
    expiry: timedelta
    entries: List[str] = field(default_factory=list)
    provenance: Provenance = Provenance.FRESH

    @property
    def from_cache(self) -> bool:
        return self.provenance is Provenance.FROM_CACHE

    @property
    def latest(self) -> str:
        """The newest known k3s release tag."""
        if not self.entries:
            raise KlusterError(f"No k3s releases available (cache: {self.cache_path})")
        return self.entries[0]


def is_stable_release(release: GitHubRelease) -> bool:
    """Check whether a release should be offered as a k3s version.

    Only releases flagged both draft and pre-release are rejected; the tag
    must also look like vMAJOR.MINOR.PATCH+k3sN.
    """
    if release.prerelease and release.draft:
        return False
    return VERSION_TAG.match(release.tag_name) is not None


def sort_and_reverse(tags: Iterable[str]) -> List[str]:
    """Sort tags lexicographically and reverse them (newest first, mostly).

    This is a plain string sort, so v1.9.x ranks above v1.21.x.
    """
    return sorted(tags)[::-1]


def filter_releases(records: Iterable[Any]) -> List[str]:
    """Keep the stable k3s tags of raw release records, newest first.

    Raises:
        RemoteFetchFailed: If a record is not a release object
    """
    tags = []
    for record in records:
        try:
            release = record if isinstance(record, GitHubRelease) else GitHubRelease.model_validate(record)
        except ValidationError as e:
            raise RemoteFetchFailed(f"Unexpected release record {record!r}: {e}") from e
        if is_stable_release(release):
            tags.append(release.tag_name)
    return sort_and_reverse(tags)


def fetch_and_filter(
    url: Optional[str] = None,
    session: Optional[requests.Session] = None,
    timeout: Optional[float] = None,
) -> List[str]:
    """Query the k3s releases API and return the stable tags, newest first.

    Args:
        url: Releases endpoint, defaults to Config.K3S_RELEASES_URL
        session: requests session to use, plain requests.get when omitted
        timeout: Request timeout in seconds, defaults to Config.API_TIMEOUT

    Returns:
        List of k3s version tags

    Raises:
        RemoteFetchFailed: If the API is unreachable or answers with an error
    """
    url = url or Config.K3S_RELEASES_URL
    timeout = timeout if timeout is not None else Config.API_TIMEOUT
    http = session or requests
    logger.debug("Querying k3s releases from %s", url)
    try:
        response = http.get(url, headers={"Accept": GITHUB_ACCEPT}, timeout=timeout)
    except requests.RequestException as e:
        raise RemoteFetchFailed(str(e)) from e

    if not response.ok:
        raise RemoteFetchFailed(response.text, status_code=response.status_code)

    try:
        records = response.json()
    except ValueError as e:
        raise RemoteFetchFailed(response.text, status_code=response.status_code) from e
    if not isinstance(records, list):
        raise RemoteFetchFailed(response.text, status_code=response.status_code)

    releases = filter_releases(records)
    logger.debug("Found %d k3s releases out of %d records", len(releases), len(records))
    return releases


def _is_expired(path: Path, expiry: timedelta) -> bool:
    return time.time() > path.stat().st_mtime + expiry.total_seconds()


def _read_cache(path: Path) -> List[str]:
    """Read cached tags, rejecting empty or garbled cache files."""
    lines = read_lines(path)
    if not lines:
        raise ValueError("cache file is empty")
    for line in lines:
        if not VERSION_TAG.match(line):
            raise ValueError(f"unexpected cache entry {line!r}")
    return lines


def _ensure_cache_dir(path: Path) -> None:
    try:
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        raise CacheInitFailed(path.parent, str(e)) from e


def _persist(path: Path, releases: List[str]) -> None:
    """Write the release list to the cache, dropping the file if that fails."""
    try:
        _ensure_cache_dir(path)
    except CacheInitFailed as e:
        logger.error("%s; keeping releases in memory only", e)
        return
    try:
        write_lines(path, releases)
    except OSError as e:
        logger.error("Error writing k3s releases cache %s: %s", path, e)
        if path.exists():
            path.unlink()


def _refresh(cache: ReleaseCache, fetch: Callable[[], List[str]]) -> ReleaseCache:
    releases = fetch()
    _persist(cache.cache_path, releases)
    cache.entries = releases
    cache.provenance = Provenance.FRESH
    return cache


def acquire(
    cache_path: Optional[Union[str, Path]] = None,
    expiry: Optional[Union[str, timedelta]] = None,
    fetch: Callable[[], List[str]] = fetch_and_filter,
) -> ReleaseCache:
    """Return the k3s releases, from the cache file when it is still fresh.

    Args:
        cache_path: Cache file, defaults to Config.RELEASES_CACHE
        expiry: How long the cache stays fresh, a timedelta or a duration
            string such as "24h"; defaults to Config.RELEASES_EXPIRY
        fetch: Callable returning the filtered release tags from the remote source

    Returns:
        Populated ReleaseCache

    Raises:
        RemoteFetchFailed: If a fetch was needed and failed
        InvalidDuration: If ``expiry`` is not a valid duration
    """
    path = Path(cache_path or Config.RELEASES_CACHE).expanduser()
    if expiry is None:
        expiry = Config.RELEASES_EXPIRY
    cache = ReleaseCache(cache_path=path, expiry=parse_duration(expiry))

    if not path.exists():
        logger.info("k3s releases are not in cache, querying them via API")
        return _refresh(cache, fetch)

    if _is_expired(path, cache.expiry):
        logger.info("Refreshing k3s releases cache %s", path)
        return _refresh(cache, fetch)

    logger.info("Loading k3s releases from cache %s", path)
    try:
        cache.entries = _read_cache(path)
    except (OSError, ValueError) as e:
        logger.error("Error reading cache file %s, creating it afresh: %s", path, e)
        return _refresh(cache, fetch)
    cache.provenance = Provenance.FROM_CACHE
    return cache
