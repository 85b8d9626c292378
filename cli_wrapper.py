#!/usr/bin/env python3
"""
Interop command line
Import and export items through the converter modules from a terminal.
"""

import logging
from functools import wraps
from typing import List, Optional

import typer

from converters import FileSystemItem, InteropError, ModuleType, OutputFormat
from services import ExportOptions, ImportOptions, create_service, default_settings

app = typer.Typer(help="Import and export items through pluggable converter modules.")
logger = logging.getLogger(__name__)


def handle_errors(func):
    """Turn fatal run errors into a short message and exit code 1."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except InteropError as exc:
            typer.secho(f"Error: {exc}", fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)

    return wrapper


def report(warnings: List[str]) -> None:
    for warning in warnings:
        typer.secho(f"Warning: {warning}", fg=typer.colors.YELLOW, err=True)
    if warnings:
        typer.echo(f"Completed with {len(warnings)} warning(s).")
    else:
        typer.echo("Completed.")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")):
    settings = default_settings()
    logging.basicConfig(level=logging.DEBUG if verbose else settings.log_level)


@app.command("modules")
def list_modules(
    module_type: Optional[ModuleType] = typer.Option(None, "--type", help="Only list importers or exporters"),
):
    """List available importer and exporter modules."""
    service = create_service()
    for module in service.resolver.registry.modules():
        if module_type is not None and module.type != module_type:
            continue
        location = module.target.value if module.target else "/".join(s.value for s in module.sources)
        extensions = ", ".join(sorted(module.file_extensions)) or "-"
        flags = []
        if module.is_default:
            flags.append("default")
        if not service.resolver.is_available(module):
            flags.append("unavailable")
        typer.echo(
            f"{module.type.value:<9} {module.format:<6} {location:<15} {module.output_format.value:<5} "
            f"{extensions:<18} {module.description}" + (f" [{', '.join(flags)}]" if flags else "")
        )


@app.command("import")
@handle_errors
def import_command(
    path: str = typer.Argument(..., help="File or directory to import"),
    format: str = typer.Option("auto", "--format", "-f", help="Source format, or 'auto' to use the extension"),
    destination: Optional[str] = typer.Option(None, "--destination", "-d", help="Destination container id"),
    output_format: Optional[OutputFormat] = typer.Option(None, "--output-format", help="Body format to produce"),
    module_path: Optional[str] = typer.Option(None, "--module-path", help="Explicit importer implementation"),
):
    """Import items into the store."""
    settings = default_settings()
    service = create_service(settings)
    result = service.import_items(
        ImportOptions(
            path=path,
            format=format,
            destination_container_id=destination,
            output_format=output_format,
            implementation_path=module_path,
        )
    )
    service.store.save_snapshot(settings.store_path)
    report(result.warnings)


@app.command("export")
@handle_errors
def export_command(
    path: str = typer.Argument(..., help="File or directory to export to"),
    format: Optional[str] = typer.Option(None, "--format", "-f", help="Target format"),
    containers: List[str] = typer.Option([], "--container", "-c", help="Container id to export (repeatable)"),
    documents: List[str] = typer.Option([], "--document", "-n", help="Document id to export (repeatable)"),
    target: Optional[FileSystemItem] = typer.Option(None, "--target", help="Write a single file or a directory"),
    module_path: Optional[str] = typer.Option(None, "--module-path", help="Explicit exporter implementation"),
):
    """Export items from the store."""
    settings = default_settings()
    service = create_service(settings)
    result = service.export_items(
        ExportOptions(
            path=path,
            format=format or settings.export_format,
            source_container_ids=list(containers),
            source_document_ids=list(documents),
            target=target,
            implementation_path=module_path,
        )
    )
    report(result.warnings)


if __name__ == "__main__":
    app()
