"""Command line interface for running the marketplace API server."""
import asyncio
import logging
import signal

import uvicorn

from config import settings_conf

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

class UvicornServer:
    """Wrapper for running uvicorn with proper lifecycle management."""

    def __init__(self, app_path: str = "api:app", host: str = "0.0.0.0", port: int = 8000):
        self.config = uvicorn.Config(
            app_path,
            host=host,
            port=port,
            log_level="info"
        )
        self.server = uvicorn.Server(self.config)

    async def run(self):
        """Run the server in a way that can be stopped."""
        await self.server.serve()

    def stop(self):
        """Ask the server to exit; the app lifespan drains the scan queue and pool."""
        self.server.should_exit = True

async def main():
    """Run the API server until SIGINT or SIGTERM."""
    server = UvicornServer(
        host=settings_conf['api_host'],
        port=settings_conf['api_port']
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, server.stop)

    logger.info(f"Starting API on {settings_conf['api_host']}:{settings_conf['api_port']}")
    try:
        await server.run()
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        raise
    finally:
        logger.info("Shutdown complete.")

def run():
    asyncio.run(main())

if __name__ == "__main__":
    run()
