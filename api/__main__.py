"""Command line interface for running the API server."""
import argparse
import asyncio
import logging
import os
import uvicorn

from database import init_db, close as db_close

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

class UvicornServer:
    """Wrapper for running uvicorn with proper lifecycle management."""

    def __init__(self, app_path: str = "api:app", host: str = "0.0.0.0", port: int = 5000):
        self.config = uvicorn.Config(
            app_path,
            host=host,
            port=port,
            log_level="info"
        )
        self.server = uvicorn.Server(self.config)

    async def run(self):
        """Run the server until it is asked to exit."""
        await self.server.serve()

    async def stop(self):
        """Stop the server."""
        self.server.should_exit = True

async def main(host: str, port: int):
    """Initialize the database, serve the API, then close the pool."""
    server = None
    try:
        logger.info("Initializing database...")
        await init_db()

        server = UvicornServer(host=host, port=port)
        logger.info(f"Server is running on http://{host}:{port}")
        await server.run()

    except Exception as e:
        logger.error(f"Fatal error: {e}")
        raise
    finally:
        if server:
            await server.stop()
        logger.info("Closing database connections...")
        await db_close()
        logger.info("Cleanup complete.")

def parse_args():
    parser = argparse.ArgumentParser(description="Run the storefront API server")
    parser.add_argument('--host', default='0.0.0.0')
    parser.add_argument('--port', type=int, default=int(os.getenv('PORT', 5000)))
    return parser.parse_args()

if __name__ == "__main__":
    args = parse_args()
    asyncio.run(main(args.host, args.port))
