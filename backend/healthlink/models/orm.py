"""
SQLAlchemy mapping for the persistent backend.

Every entity kind shares one table: the entity is stored as a JSON payload,
``seq`` keeps insertion order so scans return records in the order they were
created.
"""
from sqlalchemy import Column, Integer, String, JSON, UniqueConstraint, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


class EntityRow(Base):
    __tablename__ = "entities"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    kind = Column(String(50), nullable=False, index=True)  # e.g. "consent_sessions"
    id = Column(String(36), nullable=False)
    payload = Column(JSON, nullable=False)

    __table_args__ = (
        UniqueConstraint("kind", "id", name="uq_entities_kind_id"),
    )


def create_session_factory(database_url: str) -> sessionmaker:
    """Build an engine for ``database_url``, create tables, return a session factory."""
    connect_args = {}
    engine_kwargs = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        if ":memory:" in database_url:
            # One shared connection, otherwise each session sees an empty database
            engine_kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, connect_args=connect_args, **engine_kwargs)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
