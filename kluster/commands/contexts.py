from pathlib import Path
from typing import Optional

import typer

from kluster.config import Config
from kluster.errors import KlusterError
from kluster.modules.kubeconfig import KubeconfigDocument

app = typer.Typer()


@app.command("contexts")
def contexts_cmd(
    kubeconfig: Optional[Path] = typer.Option(None, "--file", "-f", help="Kubeconfig to read, defaults to $KUBECONFIG"),
):
    """List the contexts of the kubeconfig, marking the current one."""
    path = kubeconfig.expanduser() if kubeconfig else Config.kubeconfig_path()
    try:
        document = KubeconfigDocument.load(path)
    except FileNotFoundError:
        typer.echo(f"❌ Kubeconfig not found: {path}", err=True)
        raise typer.Exit(code=1)
    except KlusterError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)

    for name in document.context_names():
        marker = "*" if name == document.current_context else " "
        cluster = document.context_cluster(name)
        server = (document.server_of(cluster) if cluster else None) or ""
        typer.echo(f"{marker} {name}\t{server}")
