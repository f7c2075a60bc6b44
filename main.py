#!/usr/bin/env python3
"""Entry point for the Starknet memecoin sniper service.

Runs the launch pipeline until interrupted, or prints a one-off token radar
(``--inspect``), wallet bag check (``--peek``) or wallet position (``--spot``).
"""

import argparse
import asyncio
import logging
import os
import sys


# Configure logging before any other imports create loggers
def setup_logging(level: str = "INFO") -> None:
    """Configure logging for the application.

    Args:
        level: Logging level as string (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    log_level: int = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


# Get logger for this module
logger = logging.getLogger(__name__)

from meme_sniper.config import SniperConfig
from meme_sniper.info_aggregator import InfoAggregator
from meme_sniper.messages import peek_reply, radar_reply, spot_reply
from meme_sniper.pipeline import LaunchPipeline


async def lookup(config: SniperConfig, args: argparse.Namespace) -> str:
    """Render a one-off token radar, bag check or position using the pipeline's clients."""
    pipeline = LaunchPipeline(config)
    try:
        info_aggregator = InfoAggregator(
            pipeline.aggregator,
            pipeline.quote_client,
            pipeline.explorer,
            config.chain.ekubo_core_address,
        )
        services = config.services
        if args.peek:
            return await peek_reply(info_aggregator, args.peek)
        if args.spot:
            wallet, token = args.spot
            return await spot_reply(info_aggregator, wallet, token, services.dex_url)
        return await radar_reply(info_aggregator, args.inspect, services.dex_url, services.explorer_url)
    finally:
        await pipeline.close()


async def main() -> None:
    """Main entry point for the memecoin sniper.

    Parses startup arguments, loads configuration from environment,
    and starts the pipeline that continuously polls for launches.

    Raises:
        SystemExit: On configuration or runtime errors
    """
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        description="Starknet memecoin sniper - launch alerts with starting market cap",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""Environment Variables:
  STARKNET_RPC_URL        - Starknet JSON-RPC endpoint (required)
  START_BLOCK             - First block to scan (default: 0)
  POLLING_INTERVAL        - Live polling interval in seconds (default: 15)
  MAX_CONCURRENT_HANDLERS - Launches processed in parallel (default: 5)
  TELEGRAM_TOKEN          - Bot token for alerts (optional)
  TELEGRAM_CHAT_IDS       - Comma separated chat ids (optional)
  LOG_LEVEL               - Logging level (can be overridden with --log-level)
        """
    )
    parser.add_argument(
        "--inspect",
        metavar="TOKEN",
        default=None,
        help="Print the token radar for TOKEN and exit"
    )
    parser.add_argument(
        "--peek",
        metavar="WALLET",
        default=None,
        help="Print the memecoins held by WALLET and exit"
    )
    parser.add_argument(
        "--spot",
        nargs=2,
        metavar=("WALLET", "TOKEN"),
        default=None,
        help="Print the position of WALLET in TOKEN and exit"
    )
    parser.add_argument(
        "--log-level",
        default=os.environ.get("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level (default: INFO)"
    )
    args: argparse.Namespace = parser.parse_args()

    setup_logging(args.log_level)

    logger.info("=== Memecoin Sniper Starting ===")
    logger.info("Loading configuration from environment...")

    try:
        config: SniperConfig = SniperConfig.from_env()
        logger.info("Configuration loaded successfully")

        if args.inspect or args.peek or args.spot:
            print(await lookup(config, args))
            return

        config.log_config()
        pipeline: LaunchPipeline = LaunchPipeline(config)
        logger.info("LaunchPipeline created, starting main loop...")
        await pipeline.run()

    except ValueError as e:
        logger.error(f"Configuration Error: {e}")
        logger.error("Please check your environment variables:")
        logger.error("  - STARKNET_RPC_URL: Starknet JSON-RPC endpoint")
        logger.error("  - START_BLOCK: First block to scan")
        logger.error("  - TELEGRAM_TOKEN / TELEGRAM_CHAT_IDS: Alert delivery")
        sys.exit(1)

    except KeyboardInterrupt:
        logger.info("\nReceived interrupt signal, shutting down gracefully...")
        sys.exit(0)

    except Exception as e:
        logger.error(f"Fatal Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    asyncio.run(main())
