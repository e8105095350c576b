import os
import ssl
from datetime import datetime, timezone
from urllib.parse import urlparse

from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# --- CONSOLE LOGGING START ---
print("\n" + "="*60)
print(" >> INITIALIZING DATABASE CONNECTION")
print("-" * 60)

# 1. Retrieve original URL
database_url = os.getenv("DATABASE_URL")

if not database_url:
    print(" [!] ERROR: DATABASE_URL not found in environment variables.")
    print("="*60 + "\n")
    raise ValueError("DATABASE_URL is missing")

engine_kwargs = {"echo": False}

if database_url.startswith("sqlite"):
    # Local file databases (tests, offline development)
    print(" [-] SQLite database detected, using aiosqlite driver...")
    if not database_url.startswith("sqlite+aiosqlite"):
        database_url = database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
else:
    # 2. asyncpg fails if it sees "sslmode" in the URL
    if "?sslmode=" in database_url:
        print(" [-] Cleaning URL parameters (removing sslmode)...")
        database_url = database_url.split("?sslmode=")[0]

    # 3. Replace scheme for asyncpg
    print(" [-] Updating protocol to postgresql+asyncpg...")
    database_url = database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgresql+asyncpg://", 1)

    # 4. Decide if SSL should be used (remote) or not (local/docker)
    host = urlparse(database_url).hostname or ""
    connect_args = {}

    if host not in ("db", "localhost", "127.0.0.1"):
        print(" [-] Creating secure SSL context (remote DB)...")
        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE
        connect_args["ssl"] = ssl_context
    else:
        print(" [-] Local/Docker DB detected, SSL disabled.")

    engine_kwargs["connect_args"] = connect_args
    engine_kwargs["poolclass"] = NullPool  # Supabase pooler handles connection reuse

# 5. Configure the engine
print(" [-] Creating async engine...")
engine = create_async_engine(database_url, **engine_kwargs)

if engine.dialect.name == "sqlite":
    # pysqlite defers BEGIN, which breaks SAVEPOINT; emit it ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def _sqlite_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _sqlite_begin(conn):
        conn.exec_driver_sql("BEGIN")

print(" >> DATABASE CONFIGURATION COMPLETE")
print("="*60 + "\n")

# Create the session factory (Session Local)
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
)

# Scripts import the factory under this name
async_session_maker = AsyncSessionLocal


# Base class for models (Tables)
class Base(DeclarativeBase):
    pass


# Dependency to get DB session in FastAPI endpoints
async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


def utc_now() -> datetime:
    """Timezone-aware UTC timestamp used as Python-side column default."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes returned by backends without timezone support."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)
