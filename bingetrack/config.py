from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///data/bingetrack.db"
    tmdb_api_key: str = ""
    tmdb_base_url: str = "https://api.themoviedb.org/3"
    tmdb_image_base_url: str = "https://image.tmdb.org/t/p/w300"
    tmdb_language: str = "en-US"
    request_timeout: float = 10.0
    default_region: str = "US"
    stale_after_days: int = 30
    lenient_timestamps: bool = False
    prefetch_seasons: bool = True
    log_level: str = "INFO"

    class Config:
        env_prefix = "BINGETRACK_"


settings = Settings()


async def load_settings_from_db():
    """Load runtime settings from database on startup."""
    from bingetrack.database import async_session
    from bingetrack.models import AppSettings
    from sqlalchemy import select

    async with async_session() as session:
        result = await session.execute(select(AppSettings))
        app_settings = result.scalar_one_or_none()

        if app_settings:
            settings.stale_after_days = app_settings.stale_after_days
            settings.lenient_timestamps = app_settings.lenient_timestamps
            settings.prefetch_seasons = app_settings.prefetch_seasons


async def save_settings(stale_after_days: int, lenient_timestamps: bool, prefetch_seasons: bool):
    """Save runtime settings to database."""
    from bingetrack.database import async_session
    from bingetrack.models import AppSettings
    from sqlalchemy import select

    async with async_session() as session:
        result = await session.execute(select(AppSettings))
        app_settings = result.scalar_one_or_none()

        if app_settings:
            app_settings.stale_after_days = stale_after_days
            app_settings.lenient_timestamps = lenient_timestamps
            app_settings.prefetch_seasons = prefetch_seasons
        else:
            app_settings = AppSettings(
                stale_after_days=stale_after_days,
                lenient_timestamps=lenient_timestamps,
                prefetch_seasons=prefetch_seasons
            )
            session.add(app_settings)

        await session.commit()

    settings.stale_after_days = stale_after_days
    settings.lenient_timestamps = lenient_timestamps
    settings.prefetch_seasons = prefetch_seasons
