from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.engine.url import make_url

from storefront.config import settings

DATABASE_URL = settings.DATABASE_URL

# SQLite needs the same-thread check off because requests run in a threadpool
url = make_url(DATABASE_URL)
connect_args = {}
engine_kwargs = {"pool_pre_ping": True}
if url.get_backend_name() == "sqlite":
    connect_args["check_same_thread"] = False
else:
    engine_kwargs.update(pool_size=5, max_overflow=10)

engine = create_engine(DATABASE_URL, connect_args=connect_args, **engine_kwargs)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
