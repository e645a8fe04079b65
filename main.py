import asyncio
import logging

from kuru import main as run_server

logger = logging.getLogger("kuru")


def main():
    """Launch the Kuru Exchange MCP Server"""
    logger.info("Starting Kuru Exchange MCP Server...")
    asyncio.run(run_server())

if __name__ == "__main__":
    main()
