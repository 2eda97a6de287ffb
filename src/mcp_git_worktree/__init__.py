import asyncio
import logging
from pathlib import Path

import click

from .config import ServerConfig
from .logging_config import configure_logging, verbosity_to_level
from .server import TRANSPORTS, serve

__version__ = "0.1.0"


@click.command()
@click.option("--repository", "-r", type=Path, help="Git repository path (overrides GIT_REPO_PATH)")
@click.option("-v", "--verbose", count=True, help="Increase verbosity")
@click.option(
    "--transport",
    type=click.Choice(TRANSPORTS),
    default="line",
    show_default=True,
    help="Built-in line-delimited JSON-RPC loop or the MCP SDK server",
)
def main(repository: Path | None, verbose: int, transport: str) -> None:
    """MCP Git Server - branch, worktree and commit tools over stdio"""
    configure_logging(verbosity_to_level(verbose))
    config = ServerConfig.from_environment(repository)
    logging.getLogger(__name__).info(f"Using repository at {config.repository}")

    asyncio.run(serve(config, transport))


if __name__ == "__main__":
    main()
