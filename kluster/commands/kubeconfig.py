import logging
from pathlib import Path
from typing import Optional

import typer

from kluster.errors import KlusterError
from kluster.models import ClusterIdentity
from kluster.modules import multipass
from kluster.modules.kubeconfig import KubeconfigSynchronizer, MergeOutcome

app = typer.Typer()

logger = logging.getLogger("kluster.commands.kubeconfig")


def sync_kubeconfig(profile: str, kubeconfig: Optional[Path] = None) -> MergeOutcome:
    """Pull the kubeconfig of ``profile`` and merge it into ``kubeconfig``."""
    synchronizer = KubeconfigSynchronizer(kubeconfig)
    identity: ClusterIdentity = multipass.cluster_details(profile)
    lines = multipass.fetch_kubeconfig(profile)
    outcome = synchronizer.merge(identity, lines)
    if outcome is MergeOutcome.SKIPPED:
        typer.echo(f"ℹ️  Kubeconfig {synchronizer.path} already has kluster {profile}, nothing to do")
    else:
        typer.echo(f"✅ Wrote kubeconfig for kluster {profile} to {synchronizer.path}")
    return outcome


@app.command("kubeconfig")
def kubeconfig_cmd(
    profile: str = typer.Option(..., "--profile", "-p", help="The profile of the kluster from which to extract the kubeconfig"),
    to_file: Optional[Path] = typer.Option(None, "--to-file", "-f", help="The file to merge the kubeconfig into, defaults to $KUBECONFIG"),
):
    """Get the kubeconfig from the kluster and merge it into $KUBECONFIG."""
    try:
        if multipass.find_cluster(profile) is None:
            typer.echo(f'kluster "{profile}" does not exist')
            return
        sync_kubeconfig(profile, to_file)
    except KlusterError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
