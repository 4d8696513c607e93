"""Command-line interface for chunkvault."""

import json
from pathlib import Path
from typing import Annotated, Optional

import typer

from chunkvault.chunks import (
    ChunkError,
    ChunkListDecrypter,
    load_chunk_list,
    wrap_key,
)
from chunkvault.infrastructure import (
    ConfigError,
    configure_logging,
    load_config,
)
from chunkvault.stores import StoreError, get_store

app = typer.Typer(
    name="chunkvault",
    help="Decrypt storage host chunk list streams into a chunk store",
    add_completion=False,
)


def _load_config(config_file: Optional[Path], store_path: Optional[Path], verbose: bool):
    try:
        config = load_config(config_file)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if store_path is not None:
        config.store.backend = "filesystem"
        config.store.path = str(store_path)
    if verbose:
        config.logging.level = "debug"

    configure_logging(level=config.logging.level, format=config.logging.format)
    return config


@app.command(name="decrypt")
def decrypt_cmd(
    stream_file: Annotated[Path, typer.Argument(help="Chunk list stream to decrypt")],
    chunks_file: Annotated[
        Path,
        typer.Option("--chunks", "-c", help="Chunk list document (YAML or JSON)"),
    ],
    container_index: Annotated[
        int,
        typer.Option("--container-index", "-i", help="Index of the chunk list in its file"),
    ] = 0,
    store_path: Annotated[
        Optional[Path],
        typer.Option("--store", "-s", help="Filesystem chunk store directory"),
    ] = None,
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", help="Configuration file"),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the result as JSON"),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Decrypt a chunk list stream into the chunk store."""
    if not stream_file.exists():
        typer.echo(f"Error: File not found: {stream_file}", err=True)
        raise typer.Exit(1)

    config = _load_config(config_file, store_path, verbose)

    try:
        container = load_chunk_list(chunks_file)
        store = config.store.create()
        decrypter = ChunkListDecrypter(store, config=config)
        result = decrypter.apply_with_metrics(
            open(stream_file, "rb"), container, container_index
        )
    except (ChunkError, StoreError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if as_json:
        output = {
            "chunks": {
                str(reference): chunk.checksum.hex()
                for reference, chunk in sorted(result.chunks.items())
            },
            "metrics": result.metrics.to_dict(),
        }
        typer.echo(json.dumps(output, indent=2))
        return

    for reference, chunk in sorted(result.chunks.items()):
        typer.echo(f"{reference}  {chunk.checksum.hex()}  {chunk.size}")
    metrics = result.metrics
    typer.echo(
        f"Resolved {metrics.resolved} of {len(container)} chunk(s): "
        f"{metrics.store_hits} from store, {metrics.decrypted} decrypted, "
        f"{metrics.duplicates} duplicate(s), {metrics.bytes_consumed:,} bytes read"
    )
    if metrics.terminated:
        typer.echo("Warning: chunk list ended early on a misordered offset", err=True)


@app.command(name="export")
def export_cmd(
    checksum: Annotated[str, typer.Argument(help="Chunk checksum (hex)")],
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Output file path"),
    ],
    store_path: Annotated[
        Optional[Path],
        typer.Option("--store", "-s", help="Filesystem chunk store directory"),
    ] = None,
    config_file: Annotated[
        Optional[Path],
        typer.Option("--config", help="Configuration file"),
    ] = None,
) -> None:
    """Write a stored chunk to a file."""
    config = _load_config(config_file, store_path, verbose=False)

    try:
        key = bytes.fromhex(checksum.removeprefix("0x"))
    except ValueError:
        typer.echo(f"Error: Invalid checksum: {checksum}", err=True)
        raise typer.Exit(1)

    try:
        chunk = config.store.create().lookup(key)
        if chunk is None:
            typer.echo(f"Error: Chunk not found: {checksum}", err=True)
            raise typer.Exit(1)
        output.write_bytes(chunk.read_bytes())
    except StoreError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Wrote {chunk.size:,} bytes to {output}")


@app.command(name="wrap-key")
def wrap_key_cmd(
    key: Annotated[str, typer.Argument(help="Raw 16 byte AES key (hex)")],
) -> None:
    """Print the type 0x01 wrapped form of a raw chunk key."""
    try:
        wrapped = wrap_key(bytes.fromhex(key.removeprefix("0x")))
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    typer.echo(wrapped.hex())


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
