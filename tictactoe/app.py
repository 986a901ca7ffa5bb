from typing import Optional

from tictactoe.config import Config
from tictactoe.database.database import Database
from tictactoe.services.arbiter_service import ArbiterService
from tictactoe.utils.logger import setup_logger

logger = setup_logger(__name__)


async def create_service(database_url: Optional[str] = None, rng=None) -> ArbiterService:
    """Validate configuration, initialize the database and wire the service"""
    Config.validate()

    database = Database(database_url)
    await database.initialize()

    logger.info("Arbiter service ready")
    return ArbiterService(database, rng=rng)
