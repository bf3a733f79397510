# Import all models so they're registered with SQLAlchemy metadata
from .token_store import TokenStoreRecord

__all__ = ["TokenStoreRecord"]
