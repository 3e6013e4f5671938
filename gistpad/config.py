from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Backend: "local" (SQLite emulation) or "firebase"
    backend: str = "local"

    # Local backend
    database_path: str = "./data/gistpad.db"
    sign_in_attempts_per_minute: int = 5

    # Firebase
    firebase_api_key: str = ""
    firebase_project_id: str = ""
    identity_toolkit_url: str = "https://identitytoolkit.googleapis.com/v1"
    secure_token_url: str = "https://securetoken.googleapis.com/v1"
    firestore_url: str = "https://firestore.googleapis.com/v1"
    credentials_path: str = "./data/credentials.enc"
    app_secret_key: str = "change-me-in-production"

    # HTTP
    http_timeout: float = 10.0
    retry_count: int = 3

    # Live snapshots (Firebase backend polls runQuery)
    snapshot_poll_seconds: float = 2.0

    # "client": subscribe to every comment and filter by gist locally
    # "server": push the gistId predicate into the subscription
    comment_filter_mode: str = "client"

    # Logging
    log_level: str = "info"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
