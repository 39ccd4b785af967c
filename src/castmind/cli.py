import sys
from datetime import datetime
from typing import Optional

import typer
from sqlmodel import Session

from castmind.config import settings
from castmind.errors import CastMindError
from castmind.logging import configure_logging, logger, get_run_id

app = typer.Typer(no_args_is_help=True)

@app.callback()
def main():
    """
    Feed memory alignment CLI.
    """
    configure_logging(settings.LOG_LEVEL)

@app.command(name="doctor")
def doctor():
    """
    Check system configuration and environment health.
    """
    logger.info("Running doctor check...")

    print("\n🩺 CastMind Doctor\n")

    print(f"Python: {sys.version.split()[0]}")
    print(f"Prefix: {sys.prefix}")
    print(f"Run ID: {get_run_id()}")

    print("\n[Configuration]")
    print(f"NEYNAR_BASE_URL:          {settings.NEYNAR_BASE_URL}")
    print(f"OWNER_FID:                {settings.OWNER_FID if settings.OWNER_FID is not None else '❌ Missing'}")
    print(f"FEED_TARGET_LIMIT:        {settings.FEED_TARGET_LIMIT}")
    print(f"FEED_PAGE_DELAY_SECONDS:  {settings.FEED_PAGE_DELAY_SECONDS}")
    print(f"OPENAI_EMBEDDING_MODEL:   {settings.OPENAI_EMBEDDING_MODEL}")

    # Mask API keys
    neynar_status = "✅ Set" if settings.NEYNAR_API_KEY and settings.NEYNAR_API_KEY.get_secret_value() else "❌ Missing"
    openai_status = "✅ Set" if settings.OPENAI_API_KEY and settings.OPENAI_API_KEY.get_secret_value() else "❌ Missing"
    print(f"NEYNAR_API_KEY:           {neynar_status}")
    print(f"OPENAI_API_KEY:           {openai_status}")

    data_dir = settings.DATA_DIR
    if data_dir.exists() and data_dir.is_dir():
        print(f"\n[Data Directory]          ✅ Found: {data_dir.absolute()}")
    else:
        print(f"\n[Data Directory]          ❌ Missing: {data_dir.absolute()} (run `castmind db init`)")

    print("\nDoctor check complete.")


db_app = typer.Typer(help="Database management commands.")
app.add_typer(db_app, name="db")

@db_app.command("init")
def init():
    """Initialize the database tables."""
    from castmind.db import init_db
    try:
        init_db()
        logger.info("Database initialized successfully.")
        print("✅ Database initialized.")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        print(f"❌ Failed: {e}")
        raise typer.Exit(code=1)


@app.command("fetch")
def fetch(fid: int, limit: Optional[int] = typer.Option(None, help="Maximum casts to fetch")):
    """Fetch a user's casts and the owner's likes without building memory."""
    from castmind.feed import FeedFetcher, NeynarClient, ReactionFetcher
    try:
        config = settings.neynar_config()
        with NeynarClient(config) as client:
            posts = FeedFetcher(client, config).fetch_user_posts(fid, limit)
            liked = ReactionFetcher(client, config).fetch_liked_posts()
    except CastMindError as e:
        logger.error(f"Fetch failed: {e}")
        print(f"❌ Failed: {e}")
        raise typer.Exit(code=1)

    print(f"Fetched {len(posts)} casts for fid {fid} and {len(liked)} liked casts for owner {config.owner_fid}.")


@app.command("run")
def run(
    fid: int,
    metric: str = typer.Option("centroid_cosine", help="centroid_cosine or best_match"),
    keep_memory: bool = typer.Option(False, "--keep-memory", help="Upsert into existing tiers instead of rebuilding"),
):
    """Fetch, build both memory tiers and record their alignment."""
    from castmind.db import engine, init_db
    from castmind.memory import OpenAIEmbedder
    from castmind.pipeline import run_pipeline
    try:
        config = settings.neynar_config()
        init_db()
        with Session(engine) as session:
            result = run_pipeline(
                config,
                session,
                OpenAIEmbedder.from_settings(settings),
                user_id=fid,
                metric=metric,
                fresh=not keep_memory,
            )
            score = result.score
            print(f"✅ Alignment {score.value:.4f} ({score.metric})")
            print(f"   long-term: {score.long_term_size} records, short-term: {score.short_term_size} records")
    except CastMindError as e:
        print(f"❌ Failed: {e}")
        raise typer.Exit(code=1)


@app.command("history")
def history(since: Optional[datetime] = typer.Option(None, help="Only scores computed at or after this time (UTC)")):
    """Show recorded similarity scores, oldest first."""
    from castmind.db import engine, init_db
    from castmind.analytics import AnalyticsStore
    init_db()
    with Session(engine) as session:
        rows = AnalyticsStore(session).history(since)
    if not rows:
        print("No scores recorded.")
        return

    print(f"Found {len(rows)} scores:")
    for row in rows:
        print(f"{row.computed_at.isoformat()}  {row.value:.4f}  {row.metric}  ({row.long_term_size}/{row.short_term_size})")

if __name__ == "__main__":
    app()
