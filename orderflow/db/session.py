from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy import create_engine

class Base(DeclarativeBase): pass

def make_session_factory(dsn: str, **engine_kwargs) -> sessionmaker:
    engine = create_engine(dsn, pool_pre_ping=True, **engine_kwargs)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
