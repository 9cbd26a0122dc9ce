from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from bpm.core.config import settings

url = make_url(settings.DATABASE_URL)
connect_args = {}
engine_options = {"pool_pre_ping": True}

if url.get_backend_name().startswith("postgresql"):
    connect_args["options"] = "-c timezone=utc"
elif url.get_backend_name() == "sqlite":
    # Sessions cross into worker threads (sync endpoints, websocket handlers)
    connect_args["check_same_thread"] = False
    if not url.database or url.database == ":memory:":
        # In-memory databases only exist on a single shared connection
        engine_options["poolclass"] = StaticPool

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args, **engine_options)
SessionLocal = sessionmaker(autoflush=False, bind=engine)
