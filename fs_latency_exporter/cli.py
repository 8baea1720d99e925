import signal
import sys
import click
from rich.console import Console
from rich.table import Table
from fs_latency_exporter.config import Config, parse_listen_address
from fs_latency_exporter.core.errors import ConfigurationError
from fs_latency_exporter.server.context import Context
from fs_latency_exporter.utils.observability import configure_logging

console = Console(stderr=True)

def _require_target(filename):
    target = filename or Config.TARGET_FILE
    if not target:
        raise click.UsageError("Missing filename (argument or FSLAT_TARGET)")
    return target

@click.group()
@click.option("--log-level", default=Config.LOG_LEVEL, show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
def cli(log_level):
    """Measures random direct-read latency of a file and exports it to Prometheus."""
    configure_logging(log_level.upper())

@cli.command()
@click.argument("filename", required=False)
@click.option("--metrics", "metrics_addr", default=Config.METRICS_ADDR, show_default=True,
              help="Expose the statistics on HOST:PORT (or just PORT)")
@click.option("--interval", default=Config.INTERVAL, show_default=True, type=click.FloatRange(min=0),
              help="Wait SECONDS between measurements (0 = as fast as the storage allows)")
@click.option("--direct/--buffered", default=Config.DIRECT_IO, show_default=True,
              help="Bypass the page cache when the platform allows it")
def run(filename, metrics_addr, interval, direct):
    """Probes FILENAME forever and serves GET /metrics"""
    target = _require_target(filename)
    context = None
    try:
        listen = parse_listen_address(metrics_addr)
        context = Context.build(target, listen=listen, interval=interval, direct=direct)
        context.exporter.start()
    except ConfigurationError as e:
        if context is not None:
            context.reader.close()
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    console.print(
        f"[bold green]Probing[/bold green] {target} ([cyan]{context.reader.mode}[/cyan]), "
        f"metrics on {context.exporter.url}"
    )

    def handle_signal(sig, frame):
        console.print("\n[yellow]Shutting down...[/yellow]")
        context.probe.stop()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    try:
        context.probe.run()
    finally:
        context.close()

@cli.command()
@click.argument("filename", required=False)
@click.option("--count", default=1000, show_default=True, type=click.IntRange(min=1),
              help="Number of reads to perform")
@click.option("--direct/--buffered", default=Config.DIRECT_IO, show_default=True)
def sample(filename, count, direct):
    """Runs COUNT probe reads against FILENAME and prints the histogram"""
    target = _require_target(filename)
    try:
        context = Context.build(target, direct=direct)
    except ConfigurationError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    try:
        with console.status(f"[bold blue]Reading {count} random blocks..."):
            context.probe.run(iterations=count)
        snap = context.registry.snapshot()
        mode = context.reader.mode
    finally:
        context.close()

    table = Table(title=f"read_time_seconds ({mode})", show_header=True, header_style="bold magenta")
    table.add_column("le (seconds)", style="cyan", justify="right")
    table.add_column("Cumulative", style="white", justify="right")
    table.add_column("Share", style="green", justify="right")

    les = [f"{b:g}" for b in snap.bounds] + ["+Inf"]
    for le, cumulative in zip(les, snap.cumulative_counts):
        share = cumulative / snap.count if snap.count else 0.0
        table.add_row(le, str(cumulative), f"{share:.1%}")

    errors_style = "red" if snap.errors else "green"
    out = Console()
    out.print(table)
    out.print(
        f"[bold]Reads:[/bold] {snap.count}  "
        f"[bold]Errors:[/bold] [{errors_style}]{snap.errors}[/{errors_style}]  "
        f"[bold]Mean:[/bold] {snap.mean_seconds * 1000:.3f} ms"
    )

def main():
    cli()

if __name__ == '__main__':
    main()
