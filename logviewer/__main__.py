"""
Allow running the Log Viewer as a module: python -m logviewer
"""
import sys
from typing import Optional

import click

from logviewer.config import ConfigError, load_config
from logviewer.server import run_server


@click.command()
@click.option('--config', 'config_path', type=click.Path(exists=True, dir_okay=False), default=None,
              help='Path to config.yml')
@click.option('--host', default=None, help='Host to bind to (env: HOST)')
@click.option('--port', type=int, default=None, help='Port to bind to (env: PORT)')
@click.option('--shutdown-timeout', type=int, default=None,
              help='Milliseconds to wait for in-flight requests before forcing exit (env: SHUTDOWN_TIMEOUT)')
@click.option('--log-dir', type=click.Path(file_okay=False), default=None,
              help='Directory holding errors/ and successes/ (env: LOG_DIR)')
@click.option('--no-static', is_flag=True, default=False, help='Do not serve /static assets')
def main(config_path: Optional[str], host: Optional[str], port: Optional[int],
         shutdown_timeout: Optional[int], log_dir: Optional[str], no_static: bool):
    """Run the Log Viewer server"""
    try:
        config = load_config(
            config_path,
            host=host,
            port=port,
            shutdown_timeout_ms=shutdown_timeout,
            log_dir=log_dir,
            serve_static=False if no_static else None,
        )
    except ConfigError as e:
        click.echo(f'Configuration error: {e}', err=True)
        sys.exit(1)

    click.echo(f'Starting Log Viewer on {config.host}:{config.port}')
    click.echo(f'Browse logs at http://localhost:{config.port}/logs/errors')
    run_server(config)


if __name__ == '__main__':
    main()
