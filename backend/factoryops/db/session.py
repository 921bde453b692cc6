"""
Database session management
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from factoryops.core.config import settings
from factoryops.logging_config import get_logger

logger = get_logger(__name__)

connection_string = settings.database_url

# Log connection info (without password)
logger.info(
    "Database connection configured",
    extra={"database": make_url(connection_string).render_as_string(hide_password=True)},
)

engine = create_engine(
    connection_string,
    echo=False,  # Set to True for SQL query logging
    pool_pre_ping=True,  # Verify connections before using
    pool_recycle=3600,  # Recycle connections after 1 hour
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    Dependency for getting database session

    Usage in FastAPI endpoints:
        @router.get("/purchase-orders")
        def list_orders(db: Session = Depends(get_db)):
            return db.query(PurchaseOrder).all()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
