"""Thin wrapper around the multipass CLI.

Every call shells out to ``multipass`` (or ``sudo -E multipass`` when
KLUSTER_WITH_SUDO is set) and decodes its JSON output into kluster models.
"""
import json
import logging
import subprocess
from typing import List, Optional

from ..config import Config
from ..errors import ClusterNotFound, MultipassError, ParseFailed
from ..models import ClusterIdentity, ClusterList

logger = logging.getLogger("kluster.multipass")

K3S_KUBECONFIG = "/etc/rancher/k3s/k3s.yaml"


def _command(args: List[str]) -> List[str]:
    base = [Config.MULTIPASS_BIN]
    if Config.WITH_SUDO:
        logger.debug("Ensuring the command is run with sudo")
        base = ["sudo", "-E"] + base
    return base + list(args)


def run(args: List[str]) -> subprocess.CompletedProcess:
    """Run a multipass sub-command and return the completed process.

    Raises:
        MultipassError: If multipass exits with a non-zero status
    """
    command = _command(args)
    logger.debug("Executing command %s", " ".join(command))
    try:
        result = subprocess.run(command, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise MultipassError(command, f"{command[0]} not found: {e}", 127) from e
    if result.returncode != 0:
        raise MultipassError(command, result.stderr, result.returncode)
    logger.debug("Command %s successfully executed", " ".join(command))
    return result


def _decode(output: str, source: str):
    try:
        return json.loads(output)
    except json.JSONDecodeError as e:
        raise ParseFailed(source, str(e)) from e


def list_clusters() -> ClusterList:
    """List all multipass VMs."""
    result = run(["list", "--format=json"])
    return ClusterList.from_payload(_decode(result.stdout, "multipass list output"))


def cluster_details(name: str) -> ClusterIdentity:
    """Get the details, including IP addresses, of the VM called ``name``.

    Raises:
        ClusterNotFound: If multipass does not know the VM
    """
    try:
        result = run(["info", name, "--format=json"])
    except MultipassError as e:
        if "does not exist" in e.stderr:
            raise ClusterNotFound(name) from e
        raise
    return ClusterIdentity.from_details(_decode(result.stdout, "multipass info output"))


def find_cluster(name: str) -> Optional[ClusterIdentity]:
    return list_clusters().get(name)


def launch(profile: str, memory: str, cpus: int, disk: str, cloud_init: str) -> List[str]:
    """Launch a VM for ``profile`` using the rendered cloud-init file.

    An "already exists" failure is not an error: the existing VM is reused.

    Returns:
        multipass output lines
    """
    args = [
        "launch",
        f"--name={profile}",
        f"--memory={memory}",
        f"--cpus={cpus}",
        f"--disk={disk}",
        f"--cloud-init={cloud_init}",
    ]
    logger.debug("Launching kluster with arguments %s", args)
    try:
        result = run(args)
    except MultipassError as e:
        if f'instance "{profile}" already exists' in e.stderr:
            logger.info("Kluster %s already exists", profile)
            return e.stderr.strip().splitlines()
        raise
    return result.stdout.strip().splitlines()


def delete(profile: str, purge: bool = True) -> List[str]:
    """Delete the VM for ``profile``, purging it by default."""
    args = ["delete", profile]
    if purge:
        args.append("--purge")
    result = run(args)
    logger.debug("Kluster %s successfully deleted", profile)
    return result.stdout.strip().splitlines()


def fetch_kubeconfig(profile: str) -> List[str]:
    """Read the k3s kubeconfig from inside the VM, line by line."""
    logger.debug("Getting kubeconfig from kluster %s", profile)
    result = run(["exec", profile, "--", "sudo", "cat", K3S_KUBECONFIG])
    return result.stdout.splitlines()
