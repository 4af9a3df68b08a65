from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    PROJECT_NAME: str = "Factory Records Repository"

    # Durable storage: "json" writes one file per entity type, "memory" keeps nothing.
    STORAGE_BACKEND: str = "json"
    STORAGE_DIR: str = "data"

    # Write-behind: persist each mutation right after it is committed in memory.
    # When off, callers persist with flush().
    AUTO_PERSIST: bool = True

    # Sequence numbers look like INV-0007
    SEQUENCE_SEPARATOR: str = "-"
    SEQUENCE_WIDTH: int = 4

    LOG_LEVEL: str = "INFO"

    class Config:
        case_sensitive = True

settings = Settings()
