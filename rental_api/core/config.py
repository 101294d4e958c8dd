from functools import lru_cache
from typing import List

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./rental.db"
    debug: bool = False
    log_level: str = "INFO"
    log_utc: bool = False  # Timestamps in UTC instead of server local time

    # Vendor CSV exports
    source_encoding: str = "cp932"  # Shift-JIS with the Windows extensions vendor exports use
    source_timezone: str = "Asia/Tokyo"

    # Write pipeline
    import_batch_size: int = 200  # Records per bulk put
    import_max_concurrent_writes: int = 8  # Worker pool size for batch puts and merge transactions
    rooms_import_page_size: int = 200  # Rooms persisted per ck-rooms request

    # Read side
    property_search_limit: int = 20

    allowed_origins: str = "http://localhost:5173,http://localhost:3000"

    model_config = ConfigDict(env_file=".env", extra="ignore")

    @property
    def allowed_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
