import asyncio
import sys
import logging
from dotenv import load_dotenv
from aiohttp import web

from portfolio.settings import Settings
from portfolio.infrastructure.database import PostgresBlogStore
from portfolio.infrastructure.web import create_app
from portfolio.application.blog_service import BlogService, SharedSecretGate
from portfolio.domain.exceptions import StoreError

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)


async def main():
    # Load environment variables from .env file
    load_dotenv()
    settings = Settings.from_env()

    if not settings.admin_secret:
        logger.error("ADMIN_SECRET is not set in the environment.")
        sys.exit(1)

    if not settings.database_url:
        logger.error("DATABASE_URL is not set in the environment.")
        sys.exit(1)

    store = PostgresBlogStore(db_url=settings.database_url)

    # Never serve traffic against a store that failed to initialize.
    try:
        await store.init()
    except StoreError:
        logger.error("Could not initialize the blog store. Exiting.")
        await store.close()
        sys.exit(1)

    service = BlogService(store=store, gate=SharedSecretGate(settings.admin_secret))
    runner = web.AppRunner(create_app(service))
    await runner.setup()

    try:
        site = web.TCPSite(runner, port=settings.port)
        await site.start()
        logger.info(f"Server running on port {settings.port}")
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()
        await store.close()


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Server stopped by user. Exiting gracefully.")


if __name__ == "__main__":
    run()
