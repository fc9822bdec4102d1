"""CLI interface using typer."""

import json
import logging
import threading
from typing import List, Optional

import typer

from .core import HttpClient, HttpVerb, SseEvent
from .crawl import Spider

app = typer.Typer(
    name="fluenthttp",
    help="Fluent HTTP client with SSE and streaming support",
    no_args_is_help=True,
)


def parse_header(header: str) -> tuple[str, str]:
    """Split a curl-style "Name: value" header."""
    name, sep, value = header.partition(":")
    if not sep or not name.strip():
        raise typer.BadParameter(f"Expected 'Name: value', got {header!r}")
    return name.strip(), value.strip()


def parse_query(pair: str) -> tuple[str, str]:
    key, sep, value = pair.partition("=")
    if not sep or not key:
        raise typer.BadParameter(f"Expected 'key=value', got {pair!r}")
    return key, value


def _report(error: Exception):
    typer.echo(f"Error: {error}", err=True)


def _build_client(
    url: str,
    verb: str,
    headers: Optional[List[str]],
    query: Optional[List[str]],
    gzip: bool,
    insecure: bool,
) -> HttpClient:
    client = HttpClient().against_url(url)
    try:
        client.with_verb(verb)
    except ValueError:
        raise typer.BadParameter(f"Unknown HTTP verb {verb!r}")
    for header in headers or []:
        client.add_header(*parse_header(header))
    for pair in query or []:
        client.with_query_parameter(*parse_query(pair))
    if gzip:
        client.using_gzip()
    if insecure:
        client.ignoring_self_signed_cert(True)
    return client


@app.callback()
def main(verbose: bool = typer.Option(False, "-v", "--verbose", help="Log request tracing")):
    """Send HTTP requests from the command line."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


@app.command()
def fetch(
    url: str = typer.Argument(..., help="URL to request"),
    verb: str = typer.Option("GET", "-X", "--request", help="HTTP verb"),
    header: Optional[List[str]] = typer.Option(None, "-H", "--header", help="Header as 'Name: value'"),
    query: Optional[List[str]] = typer.Option(None, "-q", "--query", help="Query parameter as key=value"),
    data: Optional[str] = typer.Option(None, "-d", "--data", help="Request body"),
    gzip: bool = typer.Option(False, "--gzip", help="Ask for a gzip encoded body"),
    insecure: bool = typer.Option(False, "-k", "--insecure", help="Skip TLS certificate checks (unsafe)"),
    output: Optional[str] = typer.Option(None, "-o", "--output", help="Output file (JSON)"),
):
    """Send a single request and print the response."""
    client = _build_client(url, verb, header, query, gzip, insecure)
    if data is not None:
        client.with_data(data)

    response = client.execute(_report)
    if response is None:
        raise typer.Exit(code=1)

    text = response.get_error_text(_report) if response.status_code >= 400 else response.get_response_text(_report)
    if output:
        with open(output, "w") as f:
            json.dump(
                {
                    "url": str(response.src_url),
                    "status": response.status_code,
                    "headers": response.headers,
                    "content": text,
                },
                f,
                indent=2,
                ensure_ascii=False,
            )
        typer.echo(f"Saved to {output}")
        return

    typer.echo(f"URL: {response.src_url}")
    typer.echo(f"Status: {response.status_code}")
    typer.echo("---")
    typer.echo(text)
    if not response.is_valid_response():
        raise typer.Exit(code=2)


@app.command()
def sse(
    url: str = typer.Argument(..., help="Event stream URL"),
    header: Optional[List[str]] = typer.Option(None, "-H", "--header", help="Header as 'Name: value'"),
    insecure: bool = typer.Option(False, "-k", "--insecure", help="Skip TLS certificate checks (unsafe)"),
    limit: int = typer.Option(0, "-n", "--limit", help="Stop after this many events (0 = no limit)"),
):
    """Print Server-Sent-Events as they arrive."""
    stop = threading.Event()
    received = 0

    def on_event(event: SseEvent):
        nonlocal received
        received += 1
        prefix = f"[{event.event}] " if event.event else ""
        suffix = f" (id={event.id})" if event.id else ""
        typer.echo(f"{prefix}{event.data}{suffix}")
        if limit and received >= limit:
            stop.set()

    client = (
        _build_client(url, HttpVerb.GET.value, header, None, False, insecure)
        .with_accept_types("text/event-stream")
        .with_interrupt(stop)
        .as_sse(on_event)
    )
    response = client.execute(_report)
    if response is None:
        raise typer.Exit(code=1)
    if not response.is_valid_response():
        typer.echo(f"Status: {response.status_code}", err=True)
        typer.echo(response.get_error_text(_report), err=True)
        raise typer.Exit(code=2)


@app.command()
def spider(
    start_url: str = typer.Argument(..., help="Starting URL"),
    save_suffix: Optional[List[str]] = typer.Option(None, "--save-suffix", help="Save URLs ending with this"),
    skip_suffix: Optional[List[str]] = typer.Option(None, "--skip-suffix", help="Never follow URLs ending with this"),
    output: Optional[str] = typer.Option(None, "-o", "--output", help="Output file (JSON)"),
):
    """Follow links from a page and save the matching ones."""
    save_suffixes = tuple(save_suffix or [])
    skip_suffixes = tuple(skip_suffix or [])

    def save(url: str) -> bool:
        return bool(save_suffixes) and url.endswith(save_suffixes)

    def follow(url: str) -> bool:
        return url.startswith(start_url) and not (skip_suffixes and url.endswith(skip_suffixes))

    saved = Spider(HttpClient()).do_spider(start_url, follow, save, {}, _report)

    if output:
        with open(output, "w") as f:
            json.dump(
                {url: {"status": r.status_code, "content": r.get_response_text()} for url, r in saved.items()},
                f,
                indent=2,
                ensure_ascii=False,
            )
        typer.echo(f"Saved to {output}")
    else:
        for url, response in saved.items():
            typer.echo(f"{response.status_code} {url}")
    typer.echo(f"\nSaved {len(saved)} pages")


@app.command()
def version():
    """Show version."""
    from . import __version__

    typer.echo(f"fluenthttp {__version__}")


if __name__ == "__main__":
    app()
