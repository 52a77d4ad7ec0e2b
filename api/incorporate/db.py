from sqlalchemy import event
from sqlmodel import SQLModel, create_engine, Session
from .config import DATABASE_URL


def make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    eng = create_engine(url, echo=False, pool_pre_ping=True, connect_args=connect_args)
    if url.startswith("sqlite"):
        event.listen(eng, "connect", _enable_sqlite_foreign_keys)
    return eng


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


engine = make_engine(DATABASE_URL)


def init_db():
    from .models import User, Company, Founder, Investor, Document, DocumentSignature, Task, CapTableEntry, ChatMessage
    SQLModel.metadata.create_all(engine)


def get_session():
    with Session(engine) as session:
        yield session
