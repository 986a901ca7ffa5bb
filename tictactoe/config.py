import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Arbiter configuration settings"""

    # Database settings
    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///tictactoe.db')

    # Runtime settings
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
    LOG_DIR = os.getenv('LOG_DIR', 'logs')  # Empty string disables file logging

    # Board settings
    BOARD_SIZE = int(os.getenv('BOARD_SIZE', 3))
    WIN_CONDITION_LENGTH = int(os.getenv('WIN_CONDITION_LENGTH', 3))

    # Chaos rule: every Nth move may have its mark swapped to the opponent's
    CHAOS_MOVE_INTERVAL = int(os.getenv('CHAOS_MOVE_INTERVAL', 3))
    CHAOS_PROBABILITY = float(os.getenv('CHAOS_PROBABILITY', 0.10))

    # Search settings
    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100

    @classmethod
    def get_async_database_url(cls, database_url: str = None) -> str:
        """Convert a plain sqlite URL to its aiosqlite form"""
        url = database_url or cls.DATABASE_URL
        if url.startswith('sqlite:///'):
            url = url.replace('sqlite:///', 'sqlite+aiosqlite:///')
        return url

    @classmethod
    def validate(cls):
        """Validate that configuration values are consistent"""
        if cls.BOARD_SIZE < 1:
            raise ValueError("BOARD_SIZE must be a positive integer")
        if not 1 <= cls.WIN_CONDITION_LENGTH <= cls.BOARD_SIZE:
            raise ValueError("WIN_CONDITION_LENGTH must be between 1 and BOARD_SIZE")
        if cls.CHAOS_MOVE_INTERVAL < 1:
            raise ValueError("CHAOS_MOVE_INTERVAL must be a positive integer")
        if not 0.0 <= cls.CHAOS_PROBABILITY <= 1.0:
            raise ValueError("CHAOS_PROBABILITY must be between 0 and 1")
        if not 1 <= cls.DEFAULT_PAGE_SIZE <= cls.MAX_PAGE_SIZE:
            raise ValueError("DEFAULT_PAGE_SIZE must be between 1 and MAX_PAGE_SIZE")
