from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./channel_order.db"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    # Remote authority used by the client-side persister.
    # API_TOKEN is sent as a bearer token when set.
    API_BASE_URL: str = "http://localhost:8000"
    API_TOKEN: str = ""
    REQUEST_TIMEOUT: float = 10.0  # seconds

    # Pointer travel (px) before a press turns into a drag.
    # The admin editor is more eager than the sidebar, where rows are also click targets.
    EDITOR_DRAG_DISTANCE: float = 5.0
    SIDEBAR_DRAG_DISTANCE: float = 8.0

    model_config = {"env_file": ".env"}


settings = Settings()
