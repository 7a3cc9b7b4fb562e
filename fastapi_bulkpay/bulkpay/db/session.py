from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from bulkpay.core.config import settings
from bulkpay.models import Base


# SQLite connections are shared with the threadpool that runs sync endpoints.
connect_args = {"check_same_thread": False} if settings.is_sqlite else {}

engine = create_engine(
    settings.database_url,
    echo=settings.db_echo,
    pool_pre_ping=True,
    connect_args=connect_args,
)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


def init_db() -> None:
    Base.metadata.create_all(bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
