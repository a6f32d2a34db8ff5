"""knativecatalog: run the Knative entity providers standalone.

Run on schedule until interrupted:
    python -m knativecatalog --config app-config.toml

Run every provider once and exit:
    python -m knativecatalog --config app-config.toml --once

Write each provider's last snapshot as JSON:
    python -m knativecatalog --once --output-dir ./snapshots
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO"):
    """Setup logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def load_host_config(path: str | Path) -> Dict[str, Any]:
    """Load the host configuration tree from a TOML file."""
    config_file = Path(path)
    if not config_file.exists():
        raise FileNotFoundError(f"Config file not found: {config_file}")
    with open(config_file, "rb") as f:
        return tomllib.load(f)


async def run_providers(
    config_root: Dict[str, Any],
    once: bool = False,
    output_dir: Optional[str] = None,
) -> List[Any]:
    """Build, connect and run all configured providers.

    Returns the connections (one per provider).
    """
    from .config import get_config
    from .connection import LoggingConnection
    from .providers.fetcher import RemoteFetcher
    from .providers.scheduler import ApschedulerTaskScheduler
    from .registry import build_all_providers

    settings = get_config()
    scheduler = ApschedulerTaskScheduler(tz=settings.scheduler_timezone)

    providers = build_all_providers(
        config_root,
        schedule=settings.default_schedule(),
        scheduler=scheduler,
        fetcher=RemoteFetcher(timeout=settings.http_timeout),
    )
    if not providers:
        logger.warning("No providers configured under catalog.providers")
        return []

    connections = []
    for provider in providers:
        connection = LoggingConnection(provider.get_provider_name(), output_dir=output_dir)
        connections.append(connection)
        if once:
            provider.attach(connection)
            await provider.task.execute()
        else:
            await provider.connect(connection)

    if once:
        return connections

    scheduler.start()
    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        scheduler.shutdown()


def main():
    """CLI entry point."""
    load_dotenv()

    parser = argparse.ArgumentParser(description="Knative event type providers for the software catalog")
    parser.add_argument(
        "--config",
        "-c",
        default=None,
        help="Host configuration file (default: CATALOG_CONFIG_PATH env or app-config.toml)",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run every provider once and exit instead of scheduling",
    )
    parser.add_argument(
        "--output-dir",
        default=None,
        help="Directory to write each provider's entity snapshot as JSON",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: LOG_LEVEL env or INFO)",
    )

    args = parser.parse_args()

    from .config import get_config
    from .errors import ConfigurationError

    settings = get_config()
    setup_logging(args.log_level or settings.log_level)

    try:
        config_root = load_host_config(args.config or settings.config_path)
        connections = asyncio.run(run_providers(config_root, once=args.once, output_dir=args.output_dir))
    except (ConfigurationError, FileNotFoundError, tomllib.TOMLDecodeError) as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(2)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
        sys.exit(0)

    failed = [c.provider_name for c in connections if c.mutation_count == 0]
    if failed:
        logger.error(f"{len(failed)} provider(s) submitted no entities: {', '.join(failed)}")
        sys.exit(1)


if __name__ == "__main__":
    main()
