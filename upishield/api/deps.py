from upishield.database import SessionLocal
from upishield.services.sql_store import SqlStore


def get_store() -> SqlStore:
    """Database-backed store; tests override this dependency."""
    return SqlStore(SessionLocal)
