"""
Command-line interface for spotify-exporter.

Backs up the saved-tracks ("Liked Songs") collection of a Spotify account
into numbered snapshots and records what changed between runs.

Commands:
    spotify-exporter snapshot               Capture the collection as a new generation
    spotify-exporter list-snapshots         One line per stored generation
    spotify-exporter show <generation>      Print the changes stored with a generation
    spotify-exporter logout                 Forget the cached tokens

Global options:
    --config <path>                         Explicit config.yaml
    --verbose / -v                          Show DEBUG messages on the console
    --version                               Print the version and exit

Configuration:
    Credentials and the storage location come from environment variables
    (a .env file is honored) or config.yaml; see spotify_exporter.core.config.

Exit codes:
    0    success
    1    configuration error
    2    storage error
    3    Spotify, authorization or callback server error
    4    requested snapshot does not exist
    5    any other exporter error
    130  interrupted by user
"""

import functools
import sys
from pathlib import Path

import click

from spotify_exporter import __version__
from spotify_exporter.auth import AuthorizationFlow
from spotify_exporter.core import (
    AuthorizationError,
    Config,
    ConfigError,
    ExporterError,
    ListenerError,
    NotFoundError,
    SpotifyError,
    StorageError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from spotify_exporter.spotify import SpotifyClient, TokenRecord
from spotify_exporter.storage import Diff, Storage, open_storage


logger = get_logger(__name__)


def handle_error(func):
    """
    Map exporter failures to a message on stderr and a distinct exit code.

    Also owns the per-run logging lifecycle: handlers are shut down however
    the command ends.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)

        except ConfigError as e:
            click.echo(click.style(f"Configuration error: {e.message}", fg='red'), err=True)
            sys.exit(1)

        except StorageError as e:
            click.echo(click.style(f"Storage error: {e.message}", fg='red'), err=True)
            logger.error(f"Storage error: {e.message}", exc_info=True)
            sys.exit(2)

        except SpotifyError as e:
            click.echo(click.style(f"Spotify error: {e.message}", fg='red'), err=True)
            if e.is_auth_error:
                click.echo(
                    "The cached tokens were rejected; run `spotify-exporter logout` and try again",
                    err=True
                )
            logger.error(f"Spotify error: {e.message}", exc_info=True)
            sys.exit(3)

        except (AuthorizationError, ListenerError) as e:
            click.echo(click.style(f"Authorization error: {e.message}", fg='red'), err=True)
            logger.error(f"Authorization error: {e.message}", exc_info=True)
            sys.exit(3)

        except NotFoundError as e:
            click.echo(click.style(f"Not found: {e.message}", fg='yellow'), err=True)
            sys.exit(4)

        except ExporterError as e:
            click.echo(click.style(f"Error: {e.message}", fg='red'), err=True)
            logger.error(f"Error: {e.message}", exc_info=True)
            sys.exit(5)

        except KeyboardInterrupt:
            click.echo(click.style("\nInterrupted by user", fg='yellow'), err=True)
            logger.info("Interrupted by user")
            sys.exit(130)

        except Exception as e:
            click.echo(click.style(f"Unexpected error: {e}", fg='red'), err=True)
            logger.exception("Unexpected error")
            sys.exit(1)

        finally:
            shutdown_logging()

    return wrapper


def _prepare(ctx: click.Context) -> tuple[Config, Storage]:
    """Load configuration, start logging and open the configured backend."""
    config = load_config(ctx.obj.get("config_path"))
    setup_logging(config.storage.log_dir, verbose=ctx.obj.get("verbose", False))
    logger.debug(f"Using {config.storage.backend} storage")
    return config, open_storage(config.storage)


def _format_counts(added: int | None, removed: int | None) -> str:
    if added is None or removed is None:
        return ""
    return f"+{added}/-{removed}"


@click.group()
@click.version_option(__version__, prog_name="spotify-exporter")
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option(
    '--config', 'config_path',
    type=click.Path(dir_okay=False, path_type=Path),
    help='Path to config file'
)
@click.pass_context
def cli(ctx, verbose, config_path):
    """
    spotify-exporter - Back up your Spotify liked songs

    Every `snapshot` run stores the full collection as a new numbered
    generation, together with the tracks added and removed since the
    previous one.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config_path


def _get_tokens(config: Config, storage: Storage, client: SpotifyClient) -> TokenRecord:
    """
    Reuse cached tokens, or run the browser flow once and cache the result.

    Cached tokens are never checked for expiry.
    """
    tokens = storage.tokens.get_cached()
    if tokens is not None:
        logger.info("Using tokens from cache")
        return tokens

    logger.info("No cached tokens, starting Spotify authorization")
    tokens = AuthorizationFlow(client, timeout=config.auth_timeout).acquire_tokens()
    storage.tokens.put(tokens)
    return tokens


@cli.command()
@click.pass_context
@handle_error
def snapshot(ctx):
    """Capture the saved-tracks collection as a new snapshot."""
    config, storage = _prepare(ctx)
    with storage, SpotifyClient(
        config.credentials, config.redirect_uri, timeout=config.http_timeout
    ) as client:
        tokens = _get_tokens(config, storage, client)

        logger.info("Fetching saved tracks...")
        tracks = client.fetch_saved_tracks(tokens.access_token)

        result = storage.snapshots.write(tracks)

    click.echo(f"Snapshot {result.generation} written ({len(result.tracks)} tracks)")
    if result.diff is None:
        click.echo("No previous snapshot to compare with")
    else:
        click.echo(f"Added: {len(result.diff.added)}, removed: {len(result.diff.removed)}")


@cli.command('list-snapshots')
@click.pass_context
@handle_error
def list_snapshots(ctx):
    """List stored snapshots, oldest first."""
    _, storage = _prepare(ctx)
    with storage:
        summaries = storage.snapshots.list_snapshots()

    if not summaries:
        click.echo("No snapshots yet. Run `spotify-exporter snapshot` first.")
        return

    for summary in summaries:
        captured = summary.captured_at.isoformat(timespec="seconds") if summary.captured_at else "unknown"
        line = f"{summary.generation:>6}  {captured:<25}  {summary.track_count:>6} tracks"
        counts = _format_counts(summary.added, summary.removed)
        if counts:
            line += f"  {counts}"
        click.echo(line)


def _print_diff(generation: int, diff: Diff) -> None:
    click.echo(f"Snapshot {generation}: {len(diff.added)} added, {len(diff.removed)} removed")
    for track in diff.added:
        click.echo(click.style(f"  + {track.name} - {track.artist_names} [{track.id}]", fg='green'))
    for track in diff.removed:
        click.echo(click.style(f"  - {track.name} - {track.artist_names} [{track.id}]", fg='red'))


@cli.command()
@click.argument('generation', type=click.IntRange(min=1))
@click.pass_context
@handle_error
def show(ctx, generation):
    """Show the tracks added and removed in GENERATION."""
    _, storage = _prepare(ctx)
    with storage:
        diff = storage.snapshots.read_diff(generation)

    if diff is None:
        click.echo(f"Snapshot {generation} has no stored diff")
        return
    _print_diff(generation, diff)


@cli.command()
@click.pass_context
@handle_error
def logout(ctx):
    """Delete the cached Spotify tokens."""
    _, storage = _prepare(ctx)
    with storage:
        removed = storage.tokens.clear()

    if removed:
        click.echo("Cached tokens removed")
    else:
        click.echo("No cached tokens to remove")


def main() -> None:
    """Entry point for `python -m spotify_exporter`."""
    cli()


if __name__ == "__main__":
    main()
