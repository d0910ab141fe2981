# app/db.py

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine, Session


def make_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False  # required for SQLite + FastAPI
    return create_engine(database_url, echo=False, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)


# Dependency: one session per request
def get_session(request: Request):
    with Session(request.app.state.engine) as session:
        yield session
