import os


class Settings:
    # API Settings
    PROJECT_NAME: str = "Metrics JSON API"
    VERSION: str = "1.0.0"
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", 8081))
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Metrics Document Settings
    METRICS_SHOW_RUNTIME: bool = os.getenv("METRICS_SHOW_RUNTIME", "true").lower() == "true"
    # Value of the "class" filter that selects only the runtime section
    RUNTIME_SELECTOR: str = "runtime"

    # Directory Settings
    METRICS_LOG_DIR: str = os.getenv(
        "METRICS_LOG_DIR",
        os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "logs"),
    )


settings = Settings()
