import typer

from kluster import __version__

app = typer.Typer()


@app.command("version")
def version_cmd():
    """Print the kluster version."""
    typer.echo(f"kluster {__version__}")
