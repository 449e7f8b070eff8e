import logging

import typer

from kluster.commands import contexts, destroy, kubeconfig, releases, start, version
from kluster.logging import setup_logger

app = typer.Typer(help="A simple tool to run k3s using multipass virtual machines.")

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")

# Add all commands
app.add_typer(start.app)
app.add_typer(destroy.app)
app.add_typer(kubeconfig.app)
app.add_typer(releases.app)
app.add_typer(contexts.app)
app.add_typer(version.app)


@app.callback()
def main(
    verbose: str = typer.Option("warning", "--verbose", "-v", help="The logging level to set"),
):
    """kluster - k3s on multipass."""
    if verbose.lower() not in LOG_LEVELS:
        raise typer.BadParameter(f"must be one of {', '.join(LOG_LEVELS)}", param_hint="--verbose")
    setup_logger("kluster", verbose)
    logging.getLogger("kluster").debug("Log level set to %s", verbose)


if __name__ == "__main__":
    app()
