"""Kubeconfig synchronisation.

Merges the kubeconfig of a freshly started kluster into the local multi-cluster
kubeconfig and removes it again when the kluster is destroyed.

A k3s server hands out a kubeconfig whose cluster, user and context are all
named ``default`` and whose server points at the loopback address. After a
merge those placeholders are renamed to the kluster's profile name and the
server is pointed at the VM's IP, so the persisted file never holds a
``default`` entry.
"""
import copy
import logging
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

import yaml
from jsonschema import ValidationError, validate

from ..config import Config
from ..errors import MissingClusterAddress, ParseFailed
from ..models import ClusterIdentity
from ..utils import read_lines, write_lines, write_text

logger = logging.getLogger("kluster.kubeconfig")

PLACEHOLDER_NAME = "default"
PLACEHOLDER_SERVER = "https://127.0.0.1:6443"
SERVER_URL = "https://{ip}:6443"

NAMED_SECTIONS = ("clusters", "users", "contexts")

# Keys written even when empty, in the order kubectl writes them
TOP_LEVEL_KEYS = (
    "apiVersion",
    "clusters",
    "contexts",
    "current-context",
    "kind",
    "preferences",
    "users",
    "extensions",
)

_NAMED_LIST = {
    "type": ["array", "null"],
    "items": {
        "type": "object",
        "required": ["name"],
        "properties": {"name": {"type": "string"}},
    },
}

KUBECONFIG_SCHEMA = {
    "type": "object",
    "properties": {
        "apiVersion": {"type": "string"},
        "kind": {"type": "string"},
        "clusters": _NAMED_LIST,
        "users": _NAMED_LIST,
        "contexts": _NAMED_LIST,
        "current-context": {"type": ["string", "null"]},
        "extensions": _NAMED_LIST,
        "preferences": {
            "type": ["object", "null"],
            "properties": {"extensions": _NAMED_LIST},
        },
    },
}


class MergeOutcome(str, Enum):
    """What a merge did to the persistent kubeconfig."""
    CREATED = "created"
    MERGED = "merged"
    SKIPPED = "skipped"


def _is_named_list(value: Any) -> bool:
    return isinstance(value, list) and all(
        isinstance(item, dict) and "name" in item for item in value
    )


def _merge_values(base: Any, override: Any) -> Any:
    """Merge ``override`` into ``base``; ``override`` wins on conflict.

    Mappings merge key by key, lists of named entries are unioned by name
    (same name replaced in place, new names appended), other lists get the
    missing items appended and scalars are replaced.
    """
    if override is None:
        return copy.deepcopy(base)
    if isinstance(base, dict) and isinstance(override, dict):
        merged = copy.deepcopy(base)
        for key, value in override.items():
            merged[key] = _merge_values(base.get(key), value)
        return merged
    if isinstance(base, list) and isinstance(override, list):
        if _is_named_list(base) and _is_named_list(override):
            merged = [copy.deepcopy(item) for item in base]
            positions = {item["name"]: i for i, item in enumerate(merged)}
            for item in override:
                if item["name"] in positions:
                    merged[positions[item["name"]]] = copy.deepcopy(item)
                else:
                    positions[item["name"]] = len(merged)
                    merged.append(copy.deepcopy(item))
            return merged
        merged = copy.deepcopy(base)
        merged.extend(copy.deepcopy(item) for item in override if item not in base)
        return merged
    return copy.deepcopy(override)


class KubeconfigDocument:
    """Typed access to the parts of a kubeconfig kluster reads and edits."""

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(data) if data else {}

    @classmethod
    def from_text(cls, text: str, source: str = "kubeconfig") -> "KubeconfigDocument":
        """Parse and validate kubeconfig YAML.

        Raises:
            ParseFailed: If the text is not YAML or not shaped like a kubeconfig
        """
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ParseFailed(source, str(e)) from e
        if data is None:
            data = {}
        try:
            validate(instance=data, schema=KUBECONFIG_SCHEMA)
        except ValidationError as e:
            raise ParseFailed(source, e.message) from e
        return cls(data)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "KubeconfigDocument":
        """Load a kubeconfig file.

        Raises:
            FileNotFoundError: If the file does not exist
            ParseFailed: If the content is malformed
        """
        with open(path, "r") as f:
            return cls.from_text(f.read(), source=str(path))

    def as_dict(self) -> Dict[str, Any]:
        """A copy of the document with every well-known key present."""
        data = copy.deepcopy(self._data)
        for section in NAMED_SECTIONS + ("extensions",):
            if data.get(section) is None:
                data[section] = []
        if data.get("current-context") is None:
            data["current-context"] = ""
        if data.get("preferences") is None:
            data["preferences"] = {}
        ordered = {key: data.pop(key) for key in TOP_LEVEL_KEYS if key in data}
        ordered.update(data)
        return ordered

    def to_text(self) -> str:
        return yaml.safe_dump(
            self.as_dict(), default_flow_style=False, sort_keys=False, indent=2
        )

    def _entries(self, section: str) -> List[Dict[str, Any]]:
        if section == "preferences.extensions":
            preferences = self._data.get("preferences") or {}
            return preferences.get("extensions") or []
        return self._data.get(section) or []

    def names(self, section: str) -> List[str]:
        return [entry["name"] for entry in self._entries(section)]

    def cluster_names(self) -> List[str]:
        return self.names("clusters")

    def user_names(self) -> List[str]:
        return self.names("users")

    def context_names(self) -> List[str]:
        return self.names("contexts")

    def extension_names(self) -> List[str]:
        return self.names("extensions")

    def count(self, section: str) -> int:
        """Number of entries in a section, e.g. ``clusters`` or ``preferences.extensions``."""
        return len(self._entries(section))

    def cluster(self, name: str) -> Optional[Dict[str, Any]]:
        for entry in self._entries("clusters"):
            if entry["name"] == name:
                return entry
        return None

    def server_of(self, cluster_name: str) -> Optional[str]:
        entry = self.cluster(cluster_name)
        if entry is None:
            return None
        return (entry.get("cluster") or {}).get("server")

    def context_cluster(self, context_name: str) -> Optional[str]:
        """Name of the cluster a context points at."""
        for entry in self._entries("contexts"):
            if entry["name"] == context_name:
                return (entry.get("context") or {}).get("cluster")
        return None

    @property
    def current_context(self) -> str:
        return self._data.get("current-context") or ""

    @current_context.setter
    def current_context(self, value: str) -> None:
        self._data["current-context"] = value

    def merge(self, other: "KubeconfigDocument") -> "KubeconfigDocument":
        """Return a new document with ``other`` merged over this one."""
        return KubeconfigDocument(_merge_values(self._data, other._data))

    def _rename_in(self, section: str, name: str) -> bool:
        entries = self._entries(section)
        if name == PLACEHOLDER_NAME or not any(entry["name"] == PLACEHOLDER_NAME for entry in entries):
            return False
        # The renamed placeholder takes over any stale entry already using the name
        entries[:] = [entry for entry in entries if entry["name"] != name]
        for entry in entries:
            if entry["name"] == PLACEHOLDER_NAME:
                entry["name"] = name
        return True

    def rewrite_placeholder(self, name: str, ip: str) -> bool:
        """Rename ``default`` entries to ``name`` and point their server at ``ip``.

        Returns:
            True if anything changed
        """
        changed = False
        server = SERVER_URL.format(ip=ip)
        for entry in self._entries("clusters"):
            body = entry.get("cluster") or {}
            if entry["name"] == PLACEHOLDER_NAME and body.get("server") == PLACEHOLDER_SERVER:
                body["server"] = server
                changed = True
        for section in NAMED_SECTIONS:
            changed = self._rename_in(section, name) or changed
        for entry in self._entries("contexts"):
            body = entry.get("context") or {}
            for ref in ("cluster", "user"):
                if body.get(ref) == PLACEHOLDER_NAME:
                    body[ref] = name
                    changed = True
        if self.current_context == PLACEHOLDER_NAME:
            self.current_context = name
            changed = True
        return changed

    def remove_entries(self, name: str) -> int:
        """Drop every entry called ``name`` and clear the current context.

        Returns:
            Number of entries removed
        """
        removed = 0
        for section in NAMED_SECTIONS + ("extensions", "preferences.extensions"):
            entries = self._entries(section)
            kept = [entry for entry in entries if entry["name"] != name]
            removed += len(entries) - len(kept)
            entries[:] = kept
        self.current_context = ""
        return removed


class KubeconfigSynchronizer:
    """Keeps one kubeconfig file in sync with the klusters kluster manages.

    There is no file locking: concurrent kluster invocations against the same
    kubeconfig race and the last writer wins.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path).expanduser() if path else Config.kubeconfig_path()
        self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    def __repr__(self) -> str:
        return f"KubeconfigSynchronizer(path={str(self.path)!r})"

    def _has_content(self) -> bool:
        if not self.path.exists():
            return False
        return any(line.strip() for line in read_lines(self.path))

    def load(self) -> KubeconfigDocument:
        return KubeconfigDocument.load(self.path)

    def save(self, document: KubeconfigDocument) -> None:
        write_text(self.path, document.to_text())

    def merge(self, identity: ClusterIdentity, fragment_lines: Iterable[str]) -> MergeOutcome:
        """Merge a kluster's kubeconfig into the persistent kubeconfig.

        Args:
            identity: The kluster the kubeconfig belongs to
            fragment_lines: The kubeconfig pulled from the kluster, line by line

        Returns:
            CREATED if the file did not exist yet, MERGED if the kluster was
            added, SKIPPED if a cluster with that name was already present

        Raises:
            MissingClusterAddress: If the kluster has no IP address
            ParseFailed: If either document is malformed
        """
        if not identity.ip_addresses:
            raise MissingClusterAddress(identity.name)
        fragment_lines = list(fragment_lines)

        if self._has_content():
            existing = self.load()
            if identity.name in existing.cluster_names():
                logger.info("Kubeconfig %s already has kluster %s, skipping merge", self.path, identity.name)
                return MergeOutcome.SKIPPED
        else:
            existing = None

        with tempfile.TemporaryDirectory(prefix="kluster-kubeconfigs") as workdir:
            staged = Path(workdir) / "new.config"
            write_lines(staged, fragment_lines)
            fragment = KubeconfigDocument.load(staged)

        if existing is None:
            logger.debug(
                "Kubeconfig %s is empty, writing kluster %s kubeconfig to it", self.path, identity.name
            )
            write_lines(self.path, fragment_lines)
            document = self.load()
            document.rewrite_placeholder(identity.name, identity.ip)
            self.save(document)
            logger.info("Created kubeconfig %s for kluster %s", self.path, identity.name)
            return MergeOutcome.CREATED

        merged = existing.merge(fragment)
        merged.rewrite_placeholder(identity.name, identity.ip)
        self.save(merged)
        logger.info("Merged kubeconfig of kluster %s into %s", identity.name, self.path)
        return MergeOutcome.MERGED

    def remove(self, cluster_name: str) -> int:
        """Remove every kubeconfig entry of ``cluster_name``.

        The current context is always cleared, even if it named another cluster.

        Returns:
            Number of entries removed

        Raises:
            FileNotFoundError: If the kubeconfig does not exist
            ParseFailed: If the kubeconfig is malformed
        """
        document = self.load()
        removed = document.remove_entries(cluster_name)
        self.save(document)
        logger.info("Removed %d kubeconfig entries of kluster %s from %s", removed, cluster_name, self.path)
        return removed
