"""cloud-init rendering for kluster VMs."""
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Union

import yaml

logger = logging.getLogger("kluster.cloud_init")

K3S_INSTALL_CMD = (
    'curl -sfL https://get.k3s.io | INSTALL_K3S_VERSION="{version}" '
    'INSTALL_K3S_EXEC="{flags}" K3S_KUBECONFIG_MODE="644" sh -s -'
)
K3S_KUBECONFIG_COPY_CMD = "mkdir -p /home/ubuntu/.kube && cp /etc/rancher/k3s/k3s.yaml /home/ubuntu/.kube/config"

CLOUD_CONFIG_HEADER = "#cloud-config"

DEFAULT_CLOUD_INIT = """
#cloud-config
package_update: true
packages:
  - net-tools
  - traceroute
  - arping
  - bridge-utils
  - jq
bootcmd:
  - sysctl -w net.ipv4.ip_forward=1
  - sysctl -w net.ipv6.conf.all.forwarding=1
  - sysctl -p
runcmd:
  - 'chown -R ubuntu:ubuntu /home/ubuntu/.kube'
  - 'echo "source <(kubectl completion bash)" >> /home/ubuntu/.bashrc'
  - 'echo "alias k=kubectl" >> /home/ubuntu/.bashrc'
  - 'echo "complete -F __start_kubectl k" >> /home/ubuntu/.bashrc'
  - 'curl -L https://raw.githubusercontent.com/ahmetb/kubectx/master/kubectx -o /usr/local/bin/kubectx'
  - 'curl -L https://raw.githubusercontent.com/ahmetb/kubectx/master/kubens -o /usr/local/bin/kubens'
  - 'chmod +x /usr/local/bin/kubectx /usr/local/bin/kubens'
users:
  - default
  - name: ubuntu
    groups: sudo
    shell: /bin/bash
    sudo: ALL=(ALL) NOPASSWD:ALL
"""


@dataclass
class CloudInit:
    """The cloud-config document handed to multipass."""
    package_update: bool = False
    packages: List[str] = field(default_factory=list)
    bootcmd: List[str] = field(default_factory=list)
    runcmd: List[str] = field(default_factory=list)
    # Either the string "default" or a user mapping
    users: List[Any] = field(default_factory=list)

    @classmethod
    def default(cls) -> "CloudInit":
        data = yaml.safe_load(DEFAULT_CLOUD_INIT) or {}
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})

    def add_k3s(self, version: str, server_flags: Optional[List[str]] = None) -> None:
        """Append the k3s install and kubeconfig copy commands to runcmd."""
        flags = " ".join(server_flags or [])
        self.runcmd.append(K3S_INSTALL_CMD.format(version=version, flags=flags))
        self.runcmd.append(K3S_KUBECONFIG_COPY_CMD)

    def to_yaml(self) -> str:
        data = {k: v for k, v in asdict(self).items() if v or k == "users"}
        body = yaml.safe_dump(data, default_flow_style=False, sort_keys=False, width=float("inf"))
        return f"{CLOUD_CONFIG_HEADER}\n{body}"


def render(
    profile: str,
    k3s_version: str,
    directory: Union[str, Path],
    server_flags: Optional[List[str]] = None,
) -> Path:
    """Write the cloud-init file for ``profile`` into ``directory``.

    Returns:
        Path of the generated ``<profile>-cloud-init`` file
    """
    cloud_init = CloudInit.default()
    cloud_init.add_k3s(k3s_version, server_flags)
    path = Path(directory) / f"{profile}-cloud-init"
    path.write_text(cloud_init.to_yaml())
    path.chmod(0o600)
    logger.debug("Generated cloud-init file %s", path)
    return path
