import logging

import typer

from kluster.errors import KlusterError
from kluster.modules import multipass
from kluster.modules.kubeconfig import KubeconfigSynchronizer

app = typer.Typer()

logger = logging.getLogger("kluster.commands.destroy")


def remove_kube_context(profile: str) -> None:
    logger.info("Deleting kluster %s kubecontext entry", profile)
    try:
        KubeconfigSynchronizer().remove(profile)
    except (OSError, KlusterError) as e:
        typer.echo(f"⚠️  Unable to remove {profile} from kubeconfig: {e}", err=True)
        return
    typer.echo(f"🧹 Removed kluster {profile} from kubeconfig")


@app.command("destroy")
def destroy_cmd(
    profile: str = typer.Option(..., "--profile", "-p", help="The profile of the multipass VM to destroy"),
    remove_kube_context_entry: bool = typer.Option(
        False, "--remove-from-kube-context", "-r", help="Remove the kluster kube context entry from $KUBECONFIG"
    ),
):
    """Destroy an existing kluster."""
    logger.debug("Deleting kluster %s", profile)
    try:
        if multipass.find_cluster(profile) is None:
            typer.echo(f'kluster "{profile}" does not exist')
        else:
            multipass.delete(profile, purge=True)
            typer.echo(f"🗑️  Kluster {profile} successfully deleted")
    except KlusterError as e:
        typer.echo(f"❌ Error deleting kluster {profile}: {e}", err=True)
        raise typer.Exit(code=1)

    if remove_kube_context_entry:
        remove_kube_context(profile)
