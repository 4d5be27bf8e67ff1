"""
Configuration management for Buzzberry
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


class Config:
    """Application configuration"""

    # Supabase
    SUPABASE_URL: str = os.getenv('SUPABASE_URL', '')
    SUPABASE_SERVICE_KEY: str = os.getenv('SUPABASE_SERVICE_KEY', '')

    # Creator store
    CREATORS_TABLE: str = os.getenv('CREATORS_TABLE', 'creatordata')

    # Discover page
    CREATORS_PER_PAGE: int = _int_env('CREATORS_PER_PAGE', 24)
    AI_BATCH_SIZE: int = _int_env('AI_BATCH_SIZE', 100)

    # PostgREST caps a single response at 1000 rows by default
    CHUNK_SIZE_FOR_DB_OPS: int = _int_env('CHUNK_SIZE_FOR_DB_OPS', 1000)

    # Thumbnail prefetch
    MAX_CONCURRENT_DOWNLOADS: int = _int_env('MAX_CONCURRENT_DOWNLOADS', 3)
    PREFETCH_TIMEOUT_SECONDS: float = float(os.getenv('PREFETCH_TIMEOUT_SECONDS', '5.0'))

    # Client-local persisted discover state (CLI)
    DISCOVER_STATE_PATH: Path = Path(
        os.getenv('DISCOVER_STATE_PATH', str(Path.home() / '.buzzberry' / 'discover_state.json'))
    )

    @classmethod
    def validate(cls) -> bool:
        """Validate required configuration"""
        required = {
            'SUPABASE_URL': cls.SUPABASE_URL,
            'SUPABASE_SERVICE_KEY': cls.SUPABASE_SERVICE_KEY,
        }

        missing = [k for k, v in required.items() if not v]

        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

        if cls.CREATORS_PER_PAGE < 1:
            raise ValueError("CREATORS_PER_PAGE must be at least 1")

        return True
