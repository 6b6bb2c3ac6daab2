import logging
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from base import Base
from config import config

logger = logging.getLogger(__name__)

DATABASE_URL = config.DATABASE_URL

# SQLite connections are shared across Flask worker threads
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def init_db() -> None:
    """
    Creates all tables defined in the storefront schema.
    """
    import schema
    Base.metadata.create_all(bind=engine)
    logger.info(f"Database schema initialized at {DATABASE_URL}")

def get_db():
    """
    Dependency for generating a new SQLAlchemy session.

    Yields:
        An active database session.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

if __name__ == "__main__":
    init_db()
