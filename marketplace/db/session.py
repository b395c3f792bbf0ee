from contextlib import contextmanager
import os
from pathlib import Path
from typing import Callable, ContextManager, Optional, Tuple
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..models.base import Base


DEFAULT_DATABASE_URL = "sqlite:///data/marketplace.db"

SessionFactory = Callable[[], ContextManager[Session]]


def create_engine_for(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            # a single shared connection keeps the in-memory database alive
            return create_engine(
                database_url,
                future=True,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        # Ensure sqlite file parent directory exists to avoid 'unable to open database file'
        db_path = database_url.split("sqlite:///")[-1]
        Path(db_path).expanduser().resolve().parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, future=True)


def make_session_factory(engine: Engine) -> SessionFactory:
    maker = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)

    @contextmanager
    def session_scope():
        session = maker()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    return session_scope


def init_db(engine: Engine) -> None:
    """Create every table known to the models package."""
    from ..models import category, order, order_item, product, supplier  # noqa: F401

    Base.metadata.create_all(engine)


def setup_database(database_url: Optional[str] = None) -> Tuple[Engine, SessionFactory]:
    engine = create_engine_for(database_url or os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL))
    init_db(engine)
    return engine, make_session_factory(engine)


_default_factory: Optional[SessionFactory] = None


@contextmanager
def get_session():
    global _default_factory
    if _default_factory is None:
        _, _default_factory = setup_database()
    with _default_factory() as session:
        yield session
