import json
import uuid
import typer
from typing import List, Optional

from jobguard.errors import ConfigurationError
from jobguard.models import Message, Queue
from jobguard.runtime.detector import DuplicateDetector
from jobguard.runtime.factory import build_atomic_cache_from_settings
from jobguard.settings import settings
from jobguard.utils.logging import setup_logging
from jobguard.utils.metrics import MetricsManager

app = typer.Typer(help="jobguard duplicate-check tooling")


@app.callback()
def main():
    setup_logging()


@app.command()
def check(
    message_ids: List[str] = typer.Argument(..., help="Ids of the messages to claim"),
    queue: str = typer.Option(..., help="Queue url the message was received from"),
    visibility_timeout: Optional[int] = typer.Option(None, help="Queue visibility window in seconds"),
    strategy: Optional[str] = typer.Option(None, help="strict or relaxed (default from settings)"),
    timeout: Optional[int] = typer.Option(None, help="Fallback TTL in seconds (default from settings)"),
    show_metrics: bool = typer.Option(False, "--metrics", help="Print check metrics afterwards"),
):
    """
    Claims message ids in the configured cache and prints one verdict per id.
    """
    try:
        detector = DuplicateDetector(
            cache=build_atomic_cache_from_settings(settings),
            dedupe_strategy=strategy or settings.DEDUPE_STRATEGY,
            timeout=timeout if timeout is not None else settings.DEDUPE_TIMEOUT,
        )
    except ConfigurationError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=2)

    queue_ref = Queue(url=queue, visibility_timeout=visibility_timeout)
    try:
        for message_id in message_ids:
            verdict = detector.found_duplicate(Message(id=message_id, queue=queue_ref))
            typer.echo(f"{message_id}: {'duplicate' if verdict else 'unique'}")
    finally:
        detector.close()

    if show_metrics:
        typer.echo(MetricsManager().exposition())


@app.command()
def config():
    """
    Prints the effective settings as JSON.
    """
    typer.echo(json.dumps(settings.model_dump(), indent=2))


@app.command()
def ping():
    """
    Checks that the configured cache accepts an atomic add.
    """
    try:
        cache = build_atomic_cache_from_settings(settings)
    except ConfigurationError as e:
        typer.echo(f"Configuration error: {e}", err=True)
        raise typer.Exit(code=2)

    key = f"jobguard:ping:{uuid.uuid4()}"
    try:
        cache.add(key, "1", 1)
    except Exception as e:
        typer.echo(f"Cache unreachable ({settings.CACHE_BACKEND} {settings.CACHE_SERVERS}): {e}")
        raise typer.Exit(code=1)
    finally:
        cache.close()
    typer.echo(f"Cache reachable ({settings.CACHE_BACKEND} {settings.CACHE_SERVERS})")


if __name__ == "__main__":
    app()
