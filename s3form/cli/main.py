"""s3form CLI - Main commands."""
import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer
from botocore.exceptions import BotoCoreError
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn
from rich.table import Table

app = typer.Typer(
    name="s3form",
    help="Stream files to S3-compatible storage",
    add_completion=False
)
console = Console()


def run_async(coro):
    """Run async function."""
    return asyncio.run(coro)


def create_client(endpoint_url: Optional[str], region: Optional[str]):
    """Create the storage client used by upload and remove."""
    from s3form.integrations import Boto3StorageClient, Boto3ClientConfig
    
    return Boto3StorageClient(config=Boto3ClientConfig(
        endpoint_url=endpoint_url,
        region_name=region
    ))


@app.command()
def sniff(
    paths: List[Path] = typer.Argument(..., help="Local files to inspect", exists=True, dir_okay=False),
):
    """Show the content type detected from each file's first bytes."""
    from s3form.core.content_type import ContentSniffer
    from s3form.core.stream import PeekableStream, file_stream
    
    sniffer = ContentSniffer()
    
    async def detect(path: Path) -> str:
        stream = PeekableStream(file_stream(path))
        try:
            return sniffer.detect(await stream.peek())
        finally:
            await stream.aclose()
    
    async def detect_all():
        return await asyncio.gather(*(detect(path) for path in paths))
    
    table = Table()
    table.add_column("File")
    table.add_column("Content type", style="cyan")
    for path, content_type in zip(paths, run_async(detect_all())):
        table.add_row(str(path), content_type)
    console.print(table)


@app.command()
def upload(
    paths: List[Path] = typer.Argument(..., help="Local files to upload", exists=True, dir_okay=False),
    bucket: str = typer.Option(..., "--bucket", "-b", envvar="S3FORM_BUCKET", help="Destination bucket"),
    prefix: str = typer.Option("", "--prefix", "-p", help="Key prefix"),
    random_keys: bool = typer.Option(False, "--random-keys", help="Use random keys instead of file names"),
    auto_content_type: bool = typer.Option(True, "--auto-content-type/--no-auto-content-type", help="Detect content type from file bytes"),
    content_type: str = typer.Option(None, "--content-type", "-t", help="Fixed content type"),
    acl: str = typer.Option(None, "--acl", help="Canned ACL"),
    sse: str = typer.Option(None, "--sse", help="Server-side encryption mode (AES256, aws:kms)"),
    endpoint_url: str = typer.Option(None, "--endpoint-url", envvar="S3FORM_ENDPOINT_URL", help="Custom S3 endpoint"),
    region: str = typer.Option(None, "--region", help="AWS region"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Upload local files, streaming them through the storage engine."""
    from s3form import S3Storage, AUTO_CONTENT_TYPE, S3FormError, setup_logging
    from s3form.core.options import random_key
    from s3form.core.stream import file_stream
    from s3form.core.upload import IncomingFile, UploadProgress
    
    if verbose:
        logging.basicConfig()
        setup_logging(logging.DEBUG)
    
    def key_for(request, file):
        name = random_key(request, file) if random_keys else file.original_name
        return f"{prefix}{name}"
    
    options = {
        'bucket': bucket,
        'key': key_for,
        'acl': acl,
        'server_side_encryption': sse,
    }
    if content_type:
        options['content_type'] = content_type
    elif auto_content_type:
        options['content_type'] = AUTO_CONTENT_TYPE
    
    try:
        options['client'] = create_client(endpoint_url, region)
    except BotoCoreError as e:
        console.print(f"[red]Cannot create storage client: {e}[/red]")
        raise typer.Exit(1)
    
    try:
        storage = S3Storage(**options)
    except S3FormError as e:
        console.print(f"[red]Invalid options: {e}[/red]")
        raise typer.Exit(1)
    
    async def do_upload():
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console
        ) as progress:
            
            async def upload_one(path: Path):
                task = progress.add_task(f"Uploading {path.name}", total=path.stat().st_size or 1)
                
                def on_progress(p: UploadProgress):
                    progress.update(task, completed=p.bytes_written)
                
                incoming = IncomingFile(
                    field_name='file',
                    original_name=path.name,
                    stream=file_stream(path)
                )
                try:
                    return await storage.handle_file(None, incoming, progress_callback=on_progress)
                except S3FormError as e:
                    return e
                finally:
                    progress.update(task, completed=path.stat().st_size or 1)
            
            return await asyncio.gather(*(upload_one(path) for path in paths))
    
    results = run_async(do_upload())
    
    table = Table()
    table.add_column("File")
    table.add_column("Key", style="cyan")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("ETag", style="dim")
    
    failed = 0
    for path, result in zip(paths, results):
        if isinstance(result, Exception):
            failed += 1
            console.print(f"[red]Failed: {path.name}: {result}[/red]")
            continue
        table.add_row(path.name, result.key, result.content_type, f"{result.size:,}", result.etag)
    
    console.print(table)
    if failed:
        raise typer.Exit(1)


@app.command()
def remove(
    keys: List[str] = typer.Argument(..., help="Object keys to remove"),
    bucket: str = typer.Option(..., "--bucket", "-b", envvar="S3FORM_BUCKET", help="Bucket holding the objects"),
    endpoint_url: str = typer.Option(None, "--endpoint-url", envvar="S3FORM_ENDPOINT_URL", help="Custom S3 endpoint"),
    region: str = typer.Option(None, "--region", help="AWS region"),
):
    """Remove objects (best-effort)."""
    from s3form.core.upload import RemovalHandler
    
    try:
        handler = RemovalHandler(create_client(endpoint_url, region))
    except BotoCoreError as e:
        console.print(f"[red]Cannot create storage client: {e}[/red]")
        raise typer.Exit(1)
    
    async def do_remove():
        return await asyncio.gather(*(handler.remove_object(bucket, key) for key in keys))
    
    failed = 0
    for key, error in zip(keys, run_async(do_remove())):
        if error is None:
            console.print(f"[green]Removed:[/green] {bucket}/{key}")
        else:
            failed += 1
            console.print(f"[yellow]Could not remove {bucket}/{key}: {error.cause}[/yellow]")
    
    if failed:
        raise typer.Exit(1)


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
