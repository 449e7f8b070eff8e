import typer

from kluster.config import Config
from kluster.errors import KlusterError
from kluster.modules import releases

app = typer.Typer()


@app.command("releases")
def releases_cmd(
    refresh: bool = typer.Option(False, "--refresh", help="Ignore the cache and query the releases API"),
    limit: int = typer.Option(10, "--limit", "-n", help="Number of releases to show, 0 for all"),
):
    """List the k3s releases kluster can install, newest first."""
    expiry = "0s" if refresh else Config.RELEASES_EXPIRY
    try:
        cache = releases.acquire(Config.RELEASES_CACHE, expiry)
    except KlusterError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)

    entries = cache.entries[:limit] if limit else cache.entries
    for tag in entries:
        typer.echo(tag)
    typer.echo(f"📄 {len(cache.entries)} releases ({cache.provenance.value}, cache: {cache.cache_path})", err=True)
