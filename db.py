from contextlib import contextmanager
from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from core.config import settings
from core.exceptions import StorageUnavailable

DATABASE_URL = settings.database_url

if not DATABASE_URL:
    raise ValueError("DATABASE_URL is not set (check your .env file)")


def build_engine(url: str, echo: bool = False):
    """Create an engine with pool settings suited to the backend"""
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every session sees an empty database
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)

    return create_engine(
        url,
        echo=echo,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        pool_recycle=3600,
        connect_args={"connect_timeout": 10},
    )


engine = build_engine(DATABASE_URL, echo=settings.debug)

Base = declarative_base()


def enum_values(enum_cls):
    """Persist enum values ('draft') rather than member names ('DRAFT')"""
    return [e.value for e in enum_cls]


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    FastAPI dependency: yields a session and closes it after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db):
    """
    Commit everything staged inside the block, or nothing. Database failures
    surface as StorageUnavailable so the client knows it can retry.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        raise StorageUnavailable() from e
    except Exception:
        db.rollback()
        raise


def check_connection():
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
            print("Database connection OK")
    except Exception as e:
        print("Database connection failed:")
        print(e)


if __name__ == "__main__":
    check_connection()
