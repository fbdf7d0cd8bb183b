"""
Database Configuration for the Foreign Operator Permit System
SQLAlchemy 2.0 engine and session factory
"""

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from fop_system.core.config import get_settings

settings = get_settings()


def build_engine(database_url: str, echo: bool = False):
    """Create an engine; pool sizing only applies to server databases"""
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=echo,
        )
    return create_engine(
        database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_pre_ping=True,  # Verify connections before use
        echo=echo,
    )


engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    Database dependency for FastAPI
    Provides a database session that automatically closes after request
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def test_database_connection():
    """Test database connection and return status (useful for health checks)"""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True, "Database connection successful"
    except Exception as e:
        return False, f"Database connection failed: {str(e)}"


def create_tables(bind=None):
    """Create all database tables"""
    from fop_system.models.base import Base

    # Import all models to ensure they're registered with Base.metadata
    from fop_system.models import operator, fee_configuration, application, permit, audit  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
