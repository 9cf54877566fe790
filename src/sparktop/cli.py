"""CLI commands for sparktop."""

from pathlib import Path

import click

from sparktop.config import Config


def _load_config(
    path: Path | None,
    delay: float | None,
    ewma_weight: float | None,
    ttl: int | None,
) -> Config:
    """Load the config file and apply command-line overrides."""
    try:
        config = Config.load(path)
        if delay is not None:
            config.engine.tick_interval = delay
        if ewma_weight is not None:
            config.engine.ewma_weight = ewma_weight
        if ttl is not None:
            config.engine.tombstone_ttl = ttl
        config.validate()
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    return config


@click.group(invoke_without_command=True)
@click.version_option(package_name="sparktop")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file (default: ~/.config/sparktop/config.toml)",
)
@click.option("--delay", "-d", type=float, default=None, help="Seconds between samples")
@click.option(
    "--ewma-weight", "-e", type=float, default=None, help="Weight of new samples, in (0, 1]"
)
@click.option("--ttl", type=int, default=None, help="Ticks an exited process stays visible")
@click.pass_context
def main(
    ctx,
    config_path: Path | None,
    delay: float | None,
    ewma_weight: float | None,
    ttl: int | None,
) -> None:
    """Watch per-process CPU, memory and disk activity as sparklines.

    Runs the interactive dashboard when no command is given.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["config"] = _load_config(config_path, delay, ewma_weight, ttl)

    if ctx.invoked_subcommand is None:
        ctx.invoke(tui)


@main.command()
@click.pass_context
def tui(ctx) -> None:
    """Launch interactive dashboard."""
    from sparktop import logging as slog
    from sparktop.app import run_tui

    config = ctx.obj["config"]
    slog.configure(config)
    run_tui(config)


@main.command()
@click.option(
    "--iterations", "-n", type=click.IntRange(min=1), default=None, help="Stop after N ticks"
)
@click.pass_context
def watch(ctx, iterations: int | None) -> None:
    """Print a live process table to the terminal (no dashboard)."""
    from sparktop import logging as slog
    from sparktop.console import run_console

    config = ctx.obj["config"]
    slog.configure(config)
    engine = config.engine
    slog.monitor_started(engine.tick_interval, engine.ewma_weight, engine.tombstone_ttl)
    run_console(config, iterations=iterations)


@main.group()
def config() -> None:
    """Manage configuration."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx) -> None:
    """Display the effective configuration."""
    cfg = ctx.obj["config"]
    path = ctx.obj["config_path"] or cfg.config_path

    click.echo(f"Config file: {path}")
    click.echo(f"Exists: {path.exists()}")
    click.echo(f"Log file: {cfg.log_path}")
    click.echo()
    click.echo(cfg.dumps().rstrip())


@config.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
@click.pass_context
def config_init(ctx, force: bool) -> None:
    """Write a config file with default values."""
    from sparktop import logging as slog

    cfg = Config()
    path = ctx.obj["config_path"] or cfg.config_path
    if path.exists() and not force:
        slog.config_exists(str(path))
        return
    cfg.save(path)
    slog.config_created(str(path))
