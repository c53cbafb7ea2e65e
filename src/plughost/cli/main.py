"""
PlugHost CLI Main Entry Point.

Command-line front end for listing, installing and removing plugins.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click
import humanize
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from plughost import __version__
from plughost.core.config import PlugHostConfig, load_config
from plughost.core.logging import setup_logging
from plughost.platform.file_ops import directory_size
from plughost.plugins.manager import PluginManager

console = Console()


def get_manager(ctx: click.Context) -> PluginManager:
    """Get or create the plugin manager from context."""
    if "manager" not in ctx.obj:
        config: PlugHostConfig = ctx.obj.get("config") or load_config()
        setup_logging(config.logging)
        manager = PluginManager(config)
        manager.load_plugins()
        ctx.obj["manager"] = manager
    return ctx.obj["manager"]


@click.group()
@click.version_option(version=__version__, prog_name="PlugHost")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file",
)
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.pass_context
def cli(ctx: click.Context, config: Path | None, json_output: bool, quiet: bool) -> None:
    """
    PlugHost - plugin lifecycle manager.

    Discover, install and uninstall host application plugins.
    """
    ctx.ensure_object(dict)

    if config:
        ctx.obj["config"] = PlugHostConfig.load(config)
    else:
        ctx.obj["config"] = load_config()

    ctx.obj["json_output"] = json_output
    ctx.obj["quiet"] = quiet


@cli.command("list")
@click.option("--capability", "-t", help="Only show plugins with this capability tag")
@click.pass_context
def list_plugins(ctx: click.Context, capability: str | None) -> None:
    """List loaded plugins."""
    manager = get_manager(ctx)
    plugins = manager.get_plugins(capability) if capability else manager.all_plugins

    if ctx.obj.get("json_output", False):
        click.echo(json.dumps([p.to_dict() for p in plugins], indent=2))
        return

    table = Table(title="Plugins")
    table.add_column("Name", style="cyan")
    table.add_column("Version", style="green")
    table.add_column("ID", style="dim")
    table.add_column("Kind", style="yellow")
    table.add_column("Author", style="white")
    table.add_column("Capabilities", style="magenta")
    table.add_column("Size", style="blue")

    for plugin in plugins:
        table.add_row(
            plugin.name,
            plugin.version,
            plugin.plugin_id,
            "preinstalled" if plugin.is_pre_plugin else "user",
            plugin.author,
            ", ".join(sorted(plugin.capabilities)),
            humanize.naturalsize(directory_size(plugin.plugin_directory), binary=True),
        )

    console.print(table)


@cli.command("info")
@click.argument("plugin_id")
@click.pass_context
def plugin_info(ctx: click.Context, plugin_id: str) -> None:
    """Show details for one plugin."""
    manager = get_manager(ctx)
    plugin = manager.get_plugin(plugin_id)
    if plugin is None:
        console.print(f"[red]Plugin not found: {plugin_id}[/red]")
        sys.exit(1)

    if ctx.obj.get("json_output", False):
        click.echo(json.dumps(plugin.to_dict(), indent=2))
        return

    console.print(
        Panel(
            f"""[cyan]Name:[/cyan] {plugin.name}
[cyan]Version:[/cyan] {plugin.version}
[cyan]Author:[/cyan] {plugin.author or '-'}
[cyan]Assembly:[/cyan] {plugin.assembly_name}
[cyan]Capabilities:[/cyan] {', '.join(sorted(plugin.capabilities))}
[cyan]Directory:[/cyan] {plugin.plugin_directory}
[cyan]Settings:[/cyan] {plugin.plugin_settings_directory_path}
[cyan]Cache:[/cyan] {plugin.plugin_cache_directory_path}""",
            title=plugin.display_name,
        )
    )


@cli.command("install")
@click.argument("package", type=click.Path(path_type=Path))
@click.pass_context
def install(ctx: click.Context, package: Path) -> None:
    """Install a plugin package."""
    manager = get_manager(ctx)

    with console.status(f"Installing {package.name}..."):
        result = manager.install_plugin(package)

    if not result.ok:
        console.print(f"[red]Install failed: {escape(result.message)}[/red]")
        sys.exit(1)

    plugin = result.value
    if ctx.obj.get("json_output", False):
        click.echo(json.dumps(plugin.to_dict(), indent=2))
    elif not ctx.obj.get("quiet", False):
        console.print(f"[green]Installed {plugin.display_name}[/green] ({plugin.plugin_id})")


@cli.command("uninstall")
@click.argument("plugin_id")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.pass_context
def uninstall(ctx: click.Context, plugin_id: str, yes: bool) -> None:
    """Schedule a plugin for removal on next start."""
    manager = get_manager(ctx)
    plugin = manager.get_plugin(plugin_id)
    if plugin is None:
        console.print(f"[red]Plugin not found: {plugin_id}[/red]")
        sys.exit(1)

    if not yes and not click.confirm(f"Uninstall {plugin.display_name}?"):
        console.print("[yellow]Cancelled[/yellow]")
        return

    manager.uninstall_plugin(plugin)
    if not ctx.obj.get("quiet", False):
        console.print(
            f"[green]{plugin.display_name} will be removed the next time plugins are loaded[/green]"
        )


@cli.command("cleanup")
@click.pass_context
def cleanup(ctx: click.Context) -> None:
    """Remove leftover package extraction files."""
    config: PlugHostConfig = ctx.obj["config"]
    setup_logging(config.logging)
    PluginManager(config).cleanup_temp_files()
    if not ctx.obj.get("quiet", False):
        console.print("[green]Temporary plugin files removed[/green]")


def main() -> None:
    """Main entry point."""
    try:
        cli(obj={})
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
