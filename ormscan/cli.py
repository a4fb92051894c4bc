"""
Command-line interface for the ORM usage scanner.

Provides commands for scanning a project, inspecting single files and
managing configuration.
"""

import json
import sys
from pathlib import Path

import click

from ormscan import __version__
from ormscan.utils.logging_config import setup_logging
from ormscan.utils.validation import validate_batch_size, validate_glob, validate_path


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable verbose output"
)
@click.option(
    "--log-file",
    type=click.Path(),
    help="Path to log file"
)
@click.pass_context
def cli(ctx, verbose, log_file):
    """
    ormscan

    Find TypeORM entities and repository API calls in a TypeScript
    codebase, together with the attributes every query references.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["log_file"] = log_file

    log_level = "DEBUG" if verbose else "INFO"
    setup_logging(level=log_level, log_file=Path(log_file) if log_file else None)


def _fail(ctx, error) -> None:
    click.echo(f"Error: {error}", err=True)
    if ctx.obj.get("verbose"):
        import traceback
        traceback.print_exc()
    sys.exit(1)


@cli.command()
@click.argument("root")
@click.option("--include", help="Glob of files to analyze (default: **/*.ts)")
@click.option("--exclude", help="Glob of paths to skip (default: node_modules)")
@click.option("--batch", type=int, help="Files per batch; output is written after each batch")
@click.option(
    "--output", "-o",
    type=click.Path(),
    help="Output JSON document (default: messages.json)"
)
@click.option(
    "--continue", "continue_",
    is_flag=True,
    help="Resume from an existing output document, skipping done files"
)
@click.option("--workers", type=int, help="Worker threads per batch")
@click.option(
    "--type-resolver",
    type=click.Choice(["declaration", "any"]),
    help="How call targets are typed"
)
@click.option(
    "--config", "-c", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Configuration file"
)
@click.option(
    "--format", "-f",
    type=click.Choice(["json", "text"]),
    default="json",
    help="Summary printed after the scan (default: json, prints nothing)"
)
@click.pass_context
def scan(ctx, root, include, exclude, batch, output, continue_, workers,
         type_resolver, config_path, format):
    """
    Scan a project directory.

    ROOT is the directory whose files are analyzed; reported paths are
    relative to it.

    Examples:

        ormscan scan ./backend

        ormscan scan ./backend --include "src/**/*.ts" --batch 100 --continue
    """
    is_valid, error = validate_path(root)
    if not is_valid:
        click.echo(f"Error: {error}", err=True)
        sys.exit(1)

    for glob in (include, exclude):
        if glob is not None:
            is_valid, error = validate_glob(glob)
            if not is_valid:
                click.echo(f"Error: {error}", err=True)
                sys.exit(1)

    if batch is not None:
        is_valid, error = validate_batch_size(batch)
        if not is_valid:
            click.echo(f"Error: {error}", err=True)
            sys.exit(1)

    from ormscan.core.config import Config

    try:
        if config_path:
            config = Config.load_from_file(config_path)
        else:
            config = Config.load_from_env()
    except (ValueError, TypeError, OSError) as e:
        _fail(ctx, e)

    if config.verbose and not ctx.obj.get("verbose"):
        ctx.obj["verbose"] = True
        log_file = ctx.obj.get("log_file")
        setup_logging(level="DEBUG", log_file=Path(log_file) if log_file else None)

    if include is not None:
        config.discovery.include = include
    if exclude is not None:
        config.discovery.exclude = exclude
    if batch is not None:
        config.output.batch_size = batch
    if output is not None:
        config.output.output_path = output
    if continue_:
        config.output.continue_from_existing = True
    if workers is not None:
        config.analysis.max_workers = workers
    if type_resolver is not None:
        config.analysis.type_resolver = type_resolver

    from ormscan.engine import ScanEngine
    from ormscan.reporting.formatter import format_output

    try:
        engine = ScanEngine(config)
        result = engine.scan(root)
    except Exception as e:
        _fail(ctx, e)

    scan_output = result["output"]
    if format == "text":
        click.echo(format_output(scan_output, "text"))

    click.echo(
        f"Wrote {len(scan_output.results)} results for "
        f"{len(scan_output.done_files)} files to {result['output_path']}"
    )
    if result["errors"]:
        click.echo(f"{len(result['errors'])} files could not be analyzed", err=True)


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--type-resolver",
    type=click.Choice(["declaration", "any"]),
    default="declaration",
    help="How call targets are typed"
)
@click.pass_context
def inspect(ctx, file, type_resolver):
    """
    Analyze a single file and print its results as JSON.

    Example:

        ormscan inspect src/user.service.ts
    """
    from ormscan.core.config import ScanConfig
    from ormscan.engine import ScanEngine

    config = ScanConfig()
    config.analysis.type_resolver = type_resolver

    try:
        results = ScanEngine(config).inspect_file(file)
    except Exception as e:
        _fail(ctx, e)

    click.echo(json.dumps([r.to_dict() for r in results], indent=4))


@cli.command()
@click.option(
    "--output", "-o",
    type=click.Path(),
    default="ormscan.json",
    help="Output path for configuration file"
)
def init(output):
    """
    Initialize configuration file.

    Creates a default configuration file that can be customized.
    """
    from ormscan.core.config import Config

    Config.reset()
    Config.save_to_file(output)
    click.echo(f"Configuration saved to: {output}")


@cli.command()
def list_rules():
    """List the available rules."""
    from ormscan.analysis import rules  # noqa: F401
    from ormscan.analysis.registry import RuleRegistry

    click.echo("Available Rules:")
    click.echo("-" * 40)
    for name in sorted(RuleRegistry.list_rules()):
        rule_class = RuleRegistry.get_rule_class(name)
        click.echo(f"  {name}: {rule_class.DESCRIPTION}")


def main():
    """Entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
