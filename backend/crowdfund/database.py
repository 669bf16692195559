from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from .config import Settings

DATABASE_URL = Settings.from_env().database_url

# sqlite connections are shared with the threadpool that runs sync routes
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith('sqlite') else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args, pool_pre_ping=True)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    """One session per request, closed when the response is done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
