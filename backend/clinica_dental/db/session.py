from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from clinica_dental.core.settings import settings


def _engine_options(database_url: str) -> dict:
    # FastAPI runs sync endpoints in a threadpool.
    if database_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
