"""SQLite database setup via SQLAlchemy."""
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase

# Default DB lives in data/ directory (gitignored)
_DB_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "data")
DATABASE_URL = os.getenv("CALCGRAPH_DATABASE_URL")
if not DATABASE_URL:
    os.makedirs(_DB_DIR, exist_ok=True)
    DATABASE_URL = f"sqlite:///{os.path.join(_DB_DIR, 'calcgraph.db')}"

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

class Base(DeclarativeBase):
    pass

def init_db():
    """Create all tables."""
    import backend.models_db  # noqa: F401  (registers tables on Base.metadata)
    Base.metadata.create_all(bind=engine)
