# cli.py
import click
import logging
from file_repository.config.settings import get_settings
from file_repository.main import configure_logging

# Configure logging
logger = logging.getLogger(__name__)

@click.group()
def cli():
    """CLI commands for the file repository API"""
    pass

@cli.command()
def show_config():
    """Show current configuration"""
    settings = get_settings()

    click.echo("Current Configuration:")
    click.echo(f"  App Name: {settings.app_name}")
    click.echo(f"  Storage Dir: {settings.storage_dir}")
    click.echo(f"  Staging Dir Name: {settings.staging_dir_name}")
    click.echo(f"  Host: {settings.host}")
    click.echo(f"  Port: {settings.port}")
    click.echo(f"  Allowed Origins: {', '.join(settings.allowed_origins)}")
    click.echo(f"  Default Page Size: {settings.default_page_size}")
    click.echo(f"  Max Delete Workers: {settings.max_delete_workers}")
    click.echo(f"  Log Level: {settings.log_level}")

@cli.command()
@click.option("--host", default=None, help="Interface to bind (defaults to settings)")
@click.option("--port", type=int, default=None, help="Port to listen on (defaults to settings)")
@click.option("--reload", is_flag=True, default=False, help="Reload on code changes")
def serve(host, port, reload):
    """Run the API server"""
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level)

    host = host or settings.host
    port = port or settings.port
    logger.info(f"Serving files from {settings.storage_dir} on {host}:{port}")
    uvicorn.run(
        "file_repository.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )

if __name__ == "__main__":
    cli()
