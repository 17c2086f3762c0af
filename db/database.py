from contextlib import contextmanager
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from config.settings import DATABASE_URL
from db.models import Base

SessionLocal = sessionmaker(autocommit=False, autoflush=False)
engine: Engine | None = None


def configure(url: str = DATABASE_URL) -> Engine:
    """(Re)bind the session factory to a database URL."""
    global engine
    if url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every session sees an empty database
        engine = create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    else:
        engine = create_engine(url, pool_pre_ping=True)
    SessionLocal.configure(bind=engine)
    return engine


configure()


def init_db():
    """Create all tables."""
    Base.metadata.create_all(engine)


@contextmanager
def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
