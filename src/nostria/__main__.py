"""CLI entry point for Nostria services.

The gateway runs in one-shot mode (``--once``: start, run a single
maintenance cycle, stop) or continuously with a Prometheus metrics server.

Configuration comes from a YAML file when one exists at ``--config``
(default ``config/gateway.yaml``); otherwise it is read from the
environment (``PORT``, ``DEFAULT_RELAYS``, ``RELAY_TIMEOUT``...).

Examples:
    ```bash
    python -m nostria gateway
    python -m nostria gateway --log-level DEBUG
    python -m nostria gateway --config config/gateway.yaml
    ```
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any, NamedTuple

from nostria.core import ConfigurationError, start_metrics_server
from nostria.core.base_service import BaseService
from nostria.core.logger import Logger, StructuredFormatter
from nostria.core.yaml import load_yaml
from nostria.models.constants import ServiceName
from nostria.services.gateway import Gateway, GatewayConfig


CONFIG_BASE = Path("config")


class ServiceEntry(NamedTuple):
    """Registry entry mapping a service to its class and default config path."""

    cls: type[BaseService[Any]]
    config_path: Path


SERVICE_REGISTRY: dict[str, ServiceEntry] = {
    ServiceName.GATEWAY: ServiceEntry(Gateway, CONFIG_BASE / "gateway.yaml"),
}

logger = Logger("cli")


async def run_service(
    service_name: str,
    service: BaseService[Any],
    *,
    once: bool,
) -> int:
    """Run a service in one-shot or continuous mode.

    In one-shot mode, the service runs a single cycle and exits.
    In continuous mode, a Prometheus metrics server is started and the
    service runs until a shutdown signal is received.

    Returns:
        Exit code: 0 for success, 1 for failure.
    """
    if once:
        try:
            async with service:
                await service.run()
            logger.info(f"{service_name}_completed")
            return 0
        except Exception as e:  # Intentionally broad: CLI error boundary for one-shot mode
            logger.error(f"{service_name}_failed", error=str(e))
            return 1

    metrics_config = service.config.metrics
    metrics_server = await start_metrics_server(metrics_config)

    if metrics_config.enabled:
        logger.info(
            "metrics_server_started",
            host=metrics_config.host,
            port=metrics_config.port,
            path=metrics_config.path,
        )

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        service.request_shutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        async with service:
            await service.run_forever()
        return 0
    except Exception as e:  # Intentionally broad: CLI error boundary for continuous mode
        logger.error(f"{service_name}_failed", error=str(e))
        return 1
    finally:
        await metrics_server.stop()
        if metrics_config.enabled:
            logger.info("metrics_server_stopped")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the service runner."""
    parser = argparse.ArgumentParser(
        prog="nostria",
        description="Nostria Service Runner",
    )

    parser.add_argument(
        "service",
        choices=list(SERVICE_REGISTRY.keys()),
        help="Service to run",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Service config path (default: config/<service>.yaml, else environment)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    parser.add_argument(
        "--once",
        action="store_true",
        help="Run once and exit (default: run continuously)",
    )

    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Configure the root logger with structured formatting.

    Installs a ``StructuredFormatter`` on the root handler so that all
    log output -- from both ``Logger`` (with ``structured_kv`` extra) and
    plain ``logging.getLogger()`` calls in models -- is unified as
    ``level name message key=value ...``.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def build_service(entry: ServiceEntry, config_path: Path) -> BaseService[Any]:
    """Instantiate a service from YAML when *config_path* exists, else from the environment."""
    if config_path.exists():
        logger.info("config_loaded", path=str(config_path))
        return entry.cls.from_dict(load_yaml(config_path))

    logger.info("config_from_env", path=str(config_path))
    return entry.cls(config=GatewayConfig.from_env())


async def main(argv: list[str] | None = None) -> int:
    """Main entry point: parse args, build the service, and run it."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    entry = SERVICE_REGISTRY[args.service]
    config_path = args.config or entry.config_path

    try:
        service = build_service(entry, config_path)
    except (ConfigurationError, ValueError) as e:
        logger.error("config_invalid", error=str(e))
        return 1

    try:
        return await run_service(args.service, service, once=args.once)
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
