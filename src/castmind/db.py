from sqlmodel import SQLModel, create_engine
from castmind.config import settings
from castmind.logging import logger

DATA_DIR = settings.DATA_DIR
DB_URL = settings.database_url

engine = create_engine(DB_URL, echo=False)

def init_db():
    if not DATA_DIR.exists():
        DATA_DIR.mkdir(parents=True, exist_ok=True)

    # Import all table models so SQLModel registers them before create_all
    from castmind.models import memory, analytics  # noqa: F401

    logger.info(f"Initializing database at {DB_URL}")
    SQLModel.metadata.create_all(engine)