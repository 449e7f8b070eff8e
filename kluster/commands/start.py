import logging
import tempfile
from typing import List, Optional

import typer

from kluster.config import Config
from kluster.errors import KlusterError
from kluster.modules import cloud_init, multipass, releases

from .kubeconfig import sync_kubeconfig

app = typer.Typer()

logger = logging.getLogger("kluster.commands.start")


def launch_kluster(profile: str, memory: str, cpus: int, disk_size: str,
                   k3s_version: Optional[str], k3s_server_flags: List[str]) -> None:
    """Render cloud-init for the requested k3s version and launch the VM."""
    if not k3s_version:
        cache = releases.acquire(Config.RELEASES_CACHE, Config.RELEASES_EXPIRY)
        k3s_version = cache.latest
        logger.info("Using latest k3s version %s (%s)", k3s_version, cache.provenance.value)

    with tempfile.TemporaryDirectory(prefix="kluster-start") as workdir:
        cloud_init_file = cloud_init.render(profile, k3s_version, workdir, k3s_server_flags)
        typer.echo(f"🚀 Launching kluster {profile} with k3s {k3s_version}...")
        out = multipass.launch(profile, memory, cpus, disk_size, str(cloud_init_file))
    logger.info("Kluster %s successfully created %s", profile, "\n".join(out))


@app.command("start")
def start_cmd(
    profile: str = typer.Option("cluster1", "--profile", "-p", help="The profile of the multipass VM, also used as the kube context name"),
    memory: str = typer.Option("4g", "--memory", "-m", help="The memory to allocate to the VM"),
    cpus: int = typer.Option(2, "--cpus", "-c", help="Number of CPUs to allocate to the VM"),
    disk_size: str = typer.Option("40g", "--disk-size", "-d", help="The VM disk size"),
    with_kube_config: bool = typer.Option(True, "--with-kube-config/--no-kube-config", help="Merge the kluster kubeconfig into $KUBECONFIG"),
    k3s_version: Optional[str] = typer.Option(None, "--k3s-version", "-k", help="The k3s version to use, defaults to the latest release"),
    k3s_server_flags: Optional[List[str]] = typer.Option(None, "--k3s-server-flags", "-s", help="Extra k3s server options, passed via INSTALL_K3S_EXEC"),
):
    """Start a k3s cluster with multipass."""
    try:
        if multipass.find_cluster(profile) is None:
            launch_kluster(profile, memory, cpus, disk_size, k3s_version, k3s_server_flags or [])
            typer.echo(f"✅ Kluster {profile} is up")
        else:
            typer.echo(f"ℹ️  Kluster {profile} already exists")

        if with_kube_config:
            sync_kubeconfig(profile)
    except KlusterError as e:
        typer.echo(f"❌ Error starting kluster {profile}: {e}", err=True)
        raise typer.Exit(code=1)
