"""CLI for bucketfs."""

import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from .bucket import Bucket
from .config import BucketfsConfig, load_config
from .errors import BucketError
from .registry import registered_schemes, resolve

app = typer.Typer(help="""\
List, read, write, copy, move and delete blobs in any bucket reachable by
URL (file://, s3://, azure://, mem://) or by an alias from the config file.""")

console = Console()


_SIZE_UNITS = ("KiB", "MiB", "GiB", "TiB", "PiB")


def _blob_size(size: int) -> str:
    """Format a blob size; exact bytes below 1 KiB, one decimal above."""
    if size < 1024:
        return f"{size} B"
    scaled = float(size)
    for unit in _SIZE_UNITS:
        scaled /= 1024
        if scaled < 1024 or unit == _SIZE_UNITS[-1]:
            break
    return f"{scaled:.1f} {unit}"


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Config file with bucket aliases"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Uniform access to blob storage buckets."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    try:
        ctx.obj = load_config(config)
    except BucketError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)


@contextmanager
def _bucket(ctx: typer.Context, target: str) -> Iterator[Bucket]:
    """Resolve a URL or alias and report bucket errors uniformly."""
    cfg: BucketfsConfig = ctx.obj or BucketfsConfig()
    try:
        with resolve(cfg.expand(target)) as bucket:
            yield bucket
    except BucketError as e:
        console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)


@app.command()
def ls(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Bucket URL or alias"),
    pattern: str = typer.Argument("**/*", help="Glob pattern; * stays in one segment, ** spans segments"),
    long: bool = typer.Option(False, "--long", "-l", help="Show size, modification time and type"),
):
    """List blobs matching a pattern."""
    with _bucket(ctx, target) as bucket:
        paths = sorted(bucket.ls(pattern))
        if not long:
            for path in paths:
                typer.echo(path)
            return

        table = Table(show_header=True)
        table.add_column("Path")
        table.add_column("Size", justify="right")
        table.add_column("Modified")
        table.add_column("Content type")
        for path in paths:
            info = bucket.info(path)
            table.add_row(
                info.path,
                _blob_size(info.size),
                info.mtime.strftime("%Y-%m-%d %H:%M:%S"),
                info.content_type or "",
            )
        console.print(table)


@app.command()
def info(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Bucket URL or alias"),
    path: str = typer.Argument(..., help="Blob path"),
):
    """Show metadata for a blob."""
    with _bucket(ctx, target) as bucket:
        meta = bucket.info(path)
        console.print(f"[bold]{meta.path}[/bold]")
        console.print(f"  size:         {meta.size} ({_blob_size(meta.size)})")
        console.print(f"  modified:     {meta.mtime.isoformat()}")
        console.print(f"  content type: {meta.content_type or '-'}")
        for key, value in sorted(meta.metadata.items()):
            console.print(f"  meta.{key}: {value}")


@app.command()
def cat(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Bucket URL or alias"),
    path: str = typer.Argument(..., help="Blob path"),
):
    """Write a blob's content to stdout."""
    with _bucket(ctx, target) as bucket:
        typer.echo(bucket.read(path), nl=False)


@app.command()
def put(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Bucket URL or alias"),
    path: str = typer.Argument(..., help="Destination blob path"),
    source: Optional[Path] = typer.Argument(None, help="Local file (default: stdin)"),
    text: Optional[str] = typer.Option(None, "--text", help="Write this text instead of a file"),
    content_type: Optional[str] = typer.Option(None, "--content-type", help="Content type to record"),
    meta: List[str] = typer.Option([], "--meta", help="Metadata as KEY=VALUE, repeatable"),
):
    """Upload a local file, stdin or literal text to a blob."""
    metadata = {}
    for item in meta:
        key, sep, value = item.partition("=")
        if not sep or not key:
            console.print(f"[red]✗[/red] Invalid --meta value '{item}', expected KEY=VALUE")
            raise typer.Exit(1)
        metadata[key] = value

    cfg: BucketfsConfig = ctx.obj or BucketfsConfig()
    with _bucket(ctx, target) as bucket:
        with bucket.create(
            path,
            content_type=content_type,
            metadata=metadata,
            encoding=cfg.default_encoding,
        ) as writer:
            if text is not None:
                writer.write(text)
            elif source is not None:
                with source.open("rb") as f:
                    for chunk in iter(lambda: f.read(1024 * 1024), b""):
                        writer.write(chunk)
            else:
                writer.write(sys.stdin.buffer.read())
        console.print(f"[green]✓[/green] Wrote {writer.tell()} bytes to {path}")


@app.command()
def get(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Bucket URL or alias"),
    path: str = typer.Argument(..., help="Blob path"),
    dest: Path = typer.Argument(..., help="Local destination file"),
):
    """Download a blob to a local file."""
    with _bucket(ctx, target) as bucket:
        dest.parent.mkdir(parents=True, exist_ok=True)
        with bucket.open(path) as reader, dest.open("wb") as f:
            for chunk in iter(lambda: reader.read(1024 * 1024), b""):
                f.write(chunk)
    console.print(f"[green]✓[/green] Downloaded {path} to {dest}")


@app.command()
def cp(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Bucket URL or alias"),
    src: str = typer.Argument(..., help="Source blob path"),
    dst: str = typer.Argument(..., help="Destination blob path"),
):
    """Copy a blob within a bucket."""
    with _bucket(ctx, target) as bucket:
        bucket.cp(src, dst)
    console.print(f"[green]✓[/green] Copied {src} → {dst}")


@app.command()
def mv(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Bucket URL or alias"),
    src: str = typer.Argument(..., help="Source blob path"),
    dst: str = typer.Argument(..., help="Destination blob path"),
):
    """Move a blob within a bucket."""
    with _bucket(ctx, target) as bucket:
        bucket.mv(src, dst)
    console.print(f"[green]✓[/green] Moved {src} → {dst}")


@app.command()
def rm(
    ctx: typer.Context,
    target: str = typer.Argument(..., help="Bucket URL or alias"),
    paths: List[str] = typer.Argument(..., help="Blob paths to delete"),
):
    """Delete blobs. Missing blobs are ignored."""
    with _bucket(ctx, target) as bucket:
        for path in paths:
            bucket.rm(path)
    console.print(f"[green]✓[/green] Removed {len(paths)} path(s)")


@app.command()
def schemes():
    """List registered URL schemes."""
    for scheme in registered_schemes():
        typer.echo(scheme)


if __name__ == "__main__":
    app()
