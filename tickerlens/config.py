from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    api_base_url: str = "https://stockalert.pro"
    request_timeout: float = 15.0
    storage_path: str = ".tickerlens/storage.json"
    # quiet period before a structural change triggers a rescan
    rescan_debounce: float = 0.5
    viewport_width: int = 1280
    viewport_height: int = 800
    overlay_width: int = 300
    overlay_height: int = 180
    # gap between the pointer and the overlay panel, in pixels
    overlay_offset: int = 10
    toast_duration: float = 3.0
    layout_columns: int = 120
    char_width: float = 8.0
    line_height: float = 18.0
    skip_hosts: list[str] = ["stockalert.pro"]
    rate_limit_requests: int = 100
    rate_limit_window: float = 3600.0
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_prefix": "TICKERLENS_"}


settings = Settings()
