"""
Data models for kluster.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from .errors import ParseFailed


@dataclass
class Memory:
    """Memory allocated to a kluster VM, in bytes."""
    total: float = 0
    used: float = 0


@dataclass
class ClusterIdentity:
    """A kluster, i.e. one multipass VM running k3s."""
    name: str
    ip_addresses: List[str] = field(default_factory=list)
    release: str = ""
    state: str = ""
    memory: Memory = field(default_factory=Memory)

    @property
    def ip(self) -> str:
        """The primary IP address, or an empty string when the VM has none yet."""
        return self.ip_addresses[0] if self.ip_addresses else ""

    def __str__(self) -> str:
        return f"Name {self.name}, Release: {self.release}, State: {self.state}"

    @classmethod
    def from_machine(cls, name: str, data: Dict[str, Any]) -> "ClusterIdentity":
        """Build an identity from one multipass machine record."""
        ipv4 = data.get("ipv4") or []
        if isinstance(ipv4, str):
            ipv4 = [ipv4]
        memory = data.get("memory") or {}
        return cls(
            name=name,
            ip_addresses=[ip for ip in ipv4 if ip],
            release=data.get("image_release") or data.get("release") or "",
            state=data.get("state", ""),
            memory=Memory(total=memory.get("total", 0), used=memory.get("used", 0)),
        )

    @classmethod
    def from_details(cls, payload: Dict[str, Any]) -> "ClusterIdentity":
        """Project a ``multipass info --format=json`` payload into an identity.

        The ``info`` mapping is keyed by the machine name, so it must hold
        exactly one entry.
        """
        info = payload.get("info") if isinstance(payload, dict) else None
        if not isinstance(info, dict):
            raise ParseFailed("multipass info output", "missing 'info' mapping")
        if len(info) != 1:
            raise ParseFailed(
                "multipass info output",
                f"expected exactly one machine, got {len(info)}",
            )
        name, data = next(iter(info.items()))
        if not isinstance(data, dict):
            raise ParseFailed("multipass info output", f"machine {name!r} is not a mapping")
        return cls.from_machine(name, data)


@dataclass
class ClusterList:
    """All multipass VMs known to the local hypervisor."""
    clusters: List[ClusterIdentity] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.clusters)

    def __iter__(self):
        return iter(self.clusters)

    def get(self, name: str) -> Optional[ClusterIdentity]:
        """Return the kluster named ``name`` if it exists."""
        for cluster in self.clusters:
            if cluster.name == name:
                return cluster
        return None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ClusterList":
        """Decode a ``multipass list --format=json`` payload."""
        if not isinstance(payload, dict) or not isinstance(payload.get("list", []), list):
            raise ParseFailed("multipass list output", "missing 'list' array")
        clusters = []
        for entry in payload.get("list", []):
            if not isinstance(entry, dict) or "name" not in entry:
                raise ParseFailed("multipass list output", f"invalid machine entry {entry!r}")
            clusters.append(ClusterIdentity.from_machine(entry["name"], entry))
        return cls(clusters)


class GitHubRelease(BaseModel):
    """The subset of a GitHub release record kluster cares about."""
    tag_name: str
    draft: bool = False
    prerelease: bool = False
