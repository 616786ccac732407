from sqlmodel import SQLModel, create_engine, Session
from sqlalchemy.engine import Engine
from .core.config import settings

# Choose engine options based on database scheme
db_url = settings.DATABASE_URL
engine_kwargs = {}

if db_url.startswith("sqlite"):
    # Writers queue on the database lock instead of failing immediately
    engine_kwargs.update({
        "connect_args": {"check_same_thread": False, "timeout": 30}
    })
else:
    # Better resiliency for managed Postgres
    engine_kwargs.update({
        "pool_pre_ping": True,
        "pool_recycle": 300,
        "pool_size": 5,
        "max_overflow": 10,
    })

engine = create_engine(db_url, echo=settings.DEBUG, **engine_kwargs)

def create_db_and_tables(bind: Engine = None):
    # Register the tables on SQLModel.metadata before create_all
    from .db import models  # noqa: F401
    SQLModel.metadata.create_all(bind or engine)

def get_session():
    with Session(engine) as session:
        yield session
