from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    LOG_LEVEL: str = "INFO"
    # Record budget per ingestion run (accepted records)
    MAX_RECORDS: int = 5000
    # Trajectory points retained per vessel
    TRAJECTORY_CAPACITY: int = 100
    # Accepted records between progress events
    PROGRESS_INTERVAL: int = 1000
    # Bounded progress queue (events beyond this are dropped, never blocked on)
    PROGRESS_QUEUE_SIZE: int = 100
    # Rows parsed per batch when reading a whole CSV document
    CSV_BATCH_ROWS: int = 1000
    # Concurrent runs when ingesting several files
    INGEST_MAX_WORKERS: int = 4
    DATA_DIR: str = "data"
    # NOAA historical AIS
    NOAA_BASE_URL: str = "https://coast.noaa.gov/htdata/CMSP/AISDataHandler"
    DATA_FETCH_TIMEOUT: float = 120.0
    # Upload limits
    MAX_UPLOAD_SIZE_MB: int = 500
    # CORS origins (comma-separated string for env var support)
    CORS_ORIGINS: str = "http://localhost:5173"


settings = Settings()
