from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

Base = declarative_base()


def build_engine(database_url: str):
    return create_engine(
        database_url,
        connect_args={"check_same_thread": False} if database_url.startswith("sqlite") else {}
    )


def build_session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db(request: Request):
    """Yield one session per request and close it once the response is sent."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
