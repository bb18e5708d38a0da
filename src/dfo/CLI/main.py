"""
Command Line Interface for DFO.
"""
import logging
import click
from pydantic import ValidationError

from .. import __version__
from ..exceptions import DfoError
from ..CONVERTERS.manifest_report import ManifestRenderer
from ..MANAGERS.container_inspector import ContainerInspector
from ..MANAGERS.file_retriever import ContainerFileRetriever
from ..MODELS.resolver_config import ResolverConfig
from ..RUNNERS.dependency_resolver import DependencyResolver
from ..RUNNERS.environment_probe import ShellEnvironmentProbe
from ..UTILS.config_loader import load_config
from ..UTILS.logging_setup import setup_logging

logger = logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.option('--config', '-c', 'config_path', type=click.Path(exists=True, dir_okay=False),
              help='YAML file with resolver settings')
@click.option('--log-level', default=None, help='Logging level (DEBUG, INFO, WARNING, ERROR)')
@click.option('--log-file', default=None, help='Also append logs to this file')
@click.pass_context
def cli(ctx, config_path, log_level, log_file):
    """
    DFO - Dockerfile optimizer.

    Finds the binaries and shared libraries a running container's
    entrypoint needs. Without a subcommand, resolves the first running
    container.
    """
    ctx.ensure_object(dict)
    try:
        config = load_config(config_path, log_level=log_level)
    except (ValidationError, ValueError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")
    ctx.obj['config'] = config
    if ctx.invoked_subcommand != 'version':
        setup_logging(config.log_level, log_file)

    if ctx.invoked_subcommand is None:
        ctx.invoke(resolve)


@cli.command()
def version():
    """Print the version number"""
    click.echo(__version__)


@cli.command('list')
@click.pass_context
def list_containers(ctx):
    """List running containers and their entrypoints"""
    inspector = _inspector(ctx)
    try:
        images = inspector.list_images()
    except DfoError as e:
        raise click.ClickException(str(e))

    click.echo(f"{'CONTAINER ID':14} {'IMAGE':30} {'ENTRYPOINT':30} {'CMD'}")
    for image in images:
        click.echo(f"{image.short_id:14} {image.name:30} {' '.join(image.entrypoint):30} {' '.join(image.cmd)}")


@cli.command()
@click.argument('container', required=False)
@click.option('--config', '-c', 'config_path', type=click.Path(exists=True, dir_okay=False),
              help='YAML file with resolver settings')
@click.option('--format', '-f', 'fmt', type=click.Choice(ManifestRenderer.FORMATS), default=None,
              help='Output format')
@click.option('--output', '-o', type=click.Path(dir_okay=False, writable=True), default=None,
              help='Write the manifest to this file instead of stdout')
@click.option('--binary-closure/--no-binary-closure', default=None,
              help='Compute library closure for binary entrypoints')
@click.option('--recursive/--no-recursive', default=None,
              help='Introspect discovered libraries as well')
@click.option('--timeout', type=float, default=None, help='Seconds to wait for each external tool')
@click.pass_context
def resolve(ctx, container=None, config_path=None, fmt=None, output=None, binary_closure=None, recursive=None, timeout=None):
    """Resolve the dependency closure of a container's entrypoint"""
    updates = {
        'output_format': fmt,
        'compute_library_closure_for_binaries': binary_closure,
        'recursive_library_closure': recursive,
        'command_timeout': timeout,
    }
    try:
        base = load_config(config_path) if config_path else ctx.obj['config']
        config = ResolverConfig(**{
            **base.model_dump(),
            **{k: v for k, v in updates.items() if v is not None},
        })
    except (ValidationError, ValueError) as e:
        raise click.ClickException(f"Invalid configuration: {e}")

    inspector = _inspector(ctx)
    retriever = ctx.obj.get('retriever') or ContainerFileRetriever(inspector.client)
    probe = ctx.obj.get('probe') or ShellEnvironmentProbe(
        shell=config.shell,
        ldd_command=config.ldd_command,
        timeout=config.command_timeout,
    )
    resolver = DependencyResolver(probe, retriever, config=config)

    try:
        image = inspector.inspect(container) if container else inspector.first_container()
        manifest = resolver.resolve(image)
    except DfoError as e:
        logger.error("%s", e)
        raise click.ClickException(str(e))

    content = ManifestRenderer().render(manifest, config.output_format)
    if output:
        with open(output, 'w') as f:
            f.write(content)
        click.echo(f"Manifest written to {output}")
    else:
        click.echo(content)


def _inspector(ctx):
    """Returns the container inspector, connecting to Docker on first use."""
    if 'inspector' not in ctx.obj:
        try:
            ctx.obj['inspector'] = ContainerInspector()
        except DfoError as e:
            raise click.ClickException(str(e))
        ctx.call_on_close(ctx.obj['inspector'].close)
    return ctx.obj['inspector']


def main():
    """
    Main entry point for the CLI.
    """
    cli(obj={})


if __name__ == '__main__':
    main()
