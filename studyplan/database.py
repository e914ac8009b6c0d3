from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from studyplan.config import settings

connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def init_db():
    """Create all tables"""
    # Models must be imported so they register on Base.metadata
    import studyplan.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
