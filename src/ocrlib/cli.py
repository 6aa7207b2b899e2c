"""CLI entry point for the Nanonets OCR client.

Provides commands:
  - analyze: Run OCR on a local image file and print the extracted text
  - config: Manage the Nanonets API key in the system keyring
"""

from __future__ import annotations

import asyncio
import base64
import logging
import mimetypes
from pathlib import Path
from typing import Annotated, Optional

import typer
from keyring.errors import KeyringError
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from ocrlib.config import (
    SERVICE_NAME,
    delete_api_key,
    get_stored_api_key,
    load_ocr_config,
    mask_api_key,
    store_api_key,
)
from ocrlib.models import OCRResult
from ocrlib.ocr.client import NanonetsOCRClient
from ocrlib.ocr.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Nanonets OCR client - extract text from images with rate limiting and retries",
    rich_markup_mode="rich",
)
config_app = typer.Typer(help="Manage configuration (API keys)")
app.add_typer(config_app, name="config")

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )


@app.command()
def analyze(
    image: Annotated[
        Path,
        typer.Argument(help="Image file to OCR", exists=True, dir_okay=False, readable=True),
    ],
    mime_type: Annotated[
        Optional[str],
        typer.Option("--mime-type", "-m", help="MIME type (guessed from the filename if omitted)"),
    ] = None,
    model: Annotated[
        Optional[str],
        typer.Option("--model", help="Nanonets model ID (default: NANONETS_MODEL_ID)"),
    ] = None,
    api_key: Annotated[
        Optional[str],
        typer.Option("--api-key", help="Nanonets API key (default: keyring, then NANONETS_API_KEY)"),
    ] = None,
    config_path: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Path to ocr_config.json"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Run OCR on IMAGE and print the extracted text."""
    _configure_logging(verbose)

    resolved_mime = mime_type or mimetypes.guess_type(image.name)[0] or "image/jpeg"
    image_b64 = base64.b64encode(image.read_bytes()).decode("ascii")
    try:
        client = NanonetsOCRClient(load_ocr_config(config_path))
    except (ConfigurationError, TypeError, ValueError) as exc:
        console.print("[red]Error:[/red] Invalid OCR configuration:", Text(str(exc)))
        raise typer.Exit(code=1)

    async def _run() -> OCRResult:
        async with client:
            return await client.analyze_image(image_b64, resolved_mime, api_key, model)

    result = asyncio.run(_run())

    if not result.ok:
        console.print("[red]Error:[/red]", Text(result.error))
        raise typer.Exit(code=1)

    console.print(Panel(Text(result.text), title=image.name, border_style="green"))


@config_app.command("set-api-key")
def set_api_key(
    key: Annotated[
        str,
        typer.Argument(help="Nanonets API key to store in system keyring"),
    ],
) -> None:
    """Store the Nanonets API key in the system keyring."""
    key = key.strip()
    if not key:
        console.print("[red]Error:[/red] API key cannot be empty")
        raise typer.Exit(code=1)

    try:
        store_api_key(key)
    except KeyringError as exc:
        console.print("[red]Error:[/red] Keyring rejected the API key:", Text(str(exc)))
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] Stored {mask_api_key(key)} under service {SERVICE_NAME}")


@config_app.command("get-api-key")
def show_api_key() -> None:
    """Show the stored Nanonets API key, masked."""
    api_key = get_stored_api_key()
    if api_key is None:
        console.print(
            "[yellow]No API key in keyring.[/yellow] "
            "Run [bold]ocrlib config set-api-key KEY[/bold] or export NANONETS_API_KEY."
        )
        raise typer.Exit(code=1)
    console.print(f"[green]API key:[/green] {mask_api_key(api_key)}")


@config_app.command("remove-api-key")
def remove_api_key() -> None:
    """Delete the stored Nanonets API key from the system keyring."""
    try:
        removed = delete_api_key()
    except KeyringError as exc:
        console.print("[red]Error:[/red] Keyring refused the deletion:", Text(str(exc)))
        raise typer.Exit(code=1)
    if removed:
        console.print(f"[green]✓[/green] API key removed from service {SERVICE_NAME}")
    else:
        console.print("[yellow]No API key in keyring, nothing to remove.[/yellow]")


if __name__ == "__main__":
    app()
