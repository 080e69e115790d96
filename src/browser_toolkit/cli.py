"""Command line interface for browser-toolkit."""

from __future__ import annotations

import asyncio
import logging
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version
from pathlib import Path
from typing import Annotated, Any, Optional

import httpx
import typer
from rich.console import Console
from rich.table import Table

from .client import ToolkitClient, ToolkitClientError
from .config import ConfigError, load_config
from .models import ExtractedImage, ExtractionKind

app = typer.Typer(help="Browser Toolkit entry point")
console = Console()


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure logging before executing any command."""

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


@app.command()
def version() -> None:
    """Print the package version."""

    try:
        typer.echo(get_version("browser-toolkit"))
    except PackageNotFoundError:  # pragma: no cover - when running from source tree
        typer.echo("0.0.0")


@app.command()
def serve(
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to YAML configuration."),
    ] = None,
    env_file: Annotated[
        Optional[Path],
        typer.Option("--env-file", help="Path to an .env file with default configuration values."),
    ] = None,
    host: Annotated[
        Optional[str],
        typer.Option("--host", help="Binding address for the HTTP server."),
    ] = None,
    port: Annotated[
        Optional[int],
        typer.Option("--port", help="HTTP port for the server."),
    ] = None,
    endpoint: Annotated[
        Optional[str],
        typer.Option("--endpoint", help="Remote WebDriver endpoint URL."),
    ] = None,
    api_key: Annotated[
        Optional[str],
        typer.Option("--api-key", help="API key required in the API-Key header."),
    ] = None,
) -> None:
    """Serve the page-rendering API."""

    overrides: dict[str, Any] = {}
    if host is not None or port is not None:
        overrides.setdefault("server", {})
        if host is not None:
            overrides["server"]["host"] = host
        if port is not None:
            overrides["server"]["port"] = port
    if endpoint is not None:
        overrides["browser"] = {"endpoint": endpoint}
    if api_key is not None:
        overrides["api_key"] = api_key

    try:
        config = load_config(config_path, env_file=env_file, **overrides)
    except ConfigError as exc:
        typer.secho(str(exc), err=True, fg=typer.colors.RED)
        raise typer.Exit(code=2) from exc
    typer.echo(f"Using WebDriver endpoint {config.browser.endpoint}")

    import uvicorn

    from .api.service import create_app

    uvicorn.run(create_app(config), host=config.server.host, port=config.server.port)


@app.command()
def fetch(
    kind: Annotated[ExtractionKind, typer.Argument(help="What to extract from the page.")],
    url: Annotated[str, typer.Argument(help="URL of the page to render.")],
    delay: Annotated[
        int,
        typer.Option("--delay", min=0, help="Settle delay in milliseconds."),
    ] = 0,
    bypass_paywall: Annotated[
        bool,
        typer.Option("--bypass-paywall", help="Load the page through the paywall-bypass proxy."),
    ] = False,
    base_url: Annotated[
        str,
        typer.Option("--base-url", help="Base URL of a running service."),
    ] = "http://localhost:3000",
    api_key: Annotated[
        Optional[str],
        typer.Option("--api-key", envvar="BROWSER_TOOLKIT_API_KEY", help="API key for the service."),
    ] = None,
) -> None:
    """Extract content from a page through a running service."""

    client = ToolkitClient(base_url, api_key=api_key)
    try:
        result = asyncio.run(
            client.extract(kind, url, delay=delay, bypass_paywall=bypass_paywall)
        )
    except ToolkitClientError as exc:
        console.print(f"[red]Request failed ({exc.status_code}): {exc.message}[/red]")
        raise typer.Exit(code=1) from exc
    except httpx.HTTPError as exc:
        console.print(f"[red]Service unreachable: {exc}[/red]")
        raise typer.Exit(code=1) from exc
    if kind is ExtractionKind.IMAGES:
        console.print(_image_table(result))
    else:
        typer.echo(result)


@app.command()
def probe(
    base_url: Annotated[
        str,
        typer.Option("--base-url", help="Base URL of a running service."),
    ] = "http://localhost:3000",
) -> None:
    """Run the readiness check of a running service."""

    client = ToolkitClient(base_url)
    try:
        asyncio.run(client.readiness())
    except ToolkitClientError as exc:
        console.print(f"[red]NOT READY[/red] {exc.message}")
        raise typer.Exit(code=1) from exc
    except httpx.HTTPError as exc:
        console.print(f"[red]UNREACHABLE[/red] {exc}")
        raise typer.Exit(code=1) from exc
    console.print("[green]READY[/green]")


def _image_table(images: list[ExtractedImage]) -> Table:
    table = Table("url", "alt", "width", "height", "size")
    for image in images:
        table.add_row(
            image.url,
            image.alt or "",
            f"{image.width:g}",
            f"{image.height:g}",
            f"{image.size:g}",
        )
    return table


if __name__ == "__main__":
    app()
