# tabwright/command/tabwright_server.py

import sys

import click
import uvicorn

from tabwright.command.command_utils import load_browser_config, setup_command_logger
from tabwright.context import BrowserControlPlane
from tabwright.media_store import MediaStore
from tabwright.server import create_app
from tabwright.service import BrowserToolService


@click.command(name="tabwright-server")
@click.option(
    '--config', '-c',
    default=None,
    help='Path to the configuration file (YAML or JSON).',
    type=click.Path(exists=True, dir_okay=False)
)
@click.option(
    '--port', '-p',
    default=None,
    type=int,
    help='Control port to listen on (defaults to the configured control port).',
)
@click.option(
    '--media-dir',
    default=None,
    help='Directory for screenshots, PDFs and traces.',
    type=click.Path(file_okay=False)
)
@click.option(
    '--verbose', '-v',
    is_flag=True,
    help='Enable verbose logging.'
)
def run(config, port, media_dir, verbose):
    """
    Starts the tabwright browser control server on the loopback interface.
    """
    logger = setup_command_logger(
        log_filename="tabwright-server.log",
        verbose=verbose,
    )

    try:
        browser_config = load_browser_config(config, port)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load configuration: {e}")
        click.echo(f"Error: Failed to load configuration: {e}")
        sys.exit(1)

    if not browser_config.enabled:
        click.echo("Browser control is disabled by configuration.")
        return
    if not browser_config.is_loopback_control():
        logger.info(
            f"Browser control URL is non-loopback ({browser_config.control_url}); "
            "skipping local server start"
        )
        return

    plane = BrowserControlPlane(browser_config)
    service = BrowserToolService(plane, media_store=MediaStore(media_dir))
    app = create_app(plane, service)

    host = "127.0.0.1"
    try:
        logger.info(f"Starting browser control at http://{host}:{browser_config.control_port}/")
        uvicorn.run(app, host=host, port=browser_config.control_port)
    except Exception as e:
        logger.error(f"Server encountered an error: {e}")
        sys.exit(1)
    finally:
        logger.info("Browser control server has been stopped.")


if __name__ == "__main__":
    run()
