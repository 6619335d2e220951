from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    
    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """
    
    # Environment
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    
    # Application
    app_name: str = "Short Link Service"
    app_version: str = "1.0.0"
    
    # Database
    database_url: str = "sqlite:///./shortlink.db"
    store_backend: str = "sqlalchemy"  # Options: "sqlalchemy", "memory"
    
    # Link lifecycle
    public_base_url: str = "http://localhost:8080"
    default_ttl_seconds: int = 86400  # Ceiling TTL applied at creation
    default_click_limit: int = 10  # Floor click limit applied at creation
    max_mint_retries: int = 5
    
    # Queue settings (notification events)
    queue_backend: str = "redis_streams"  # Options: "redis_streams", "memory"
    redis_url: str = "redis://localhost:6379/0"
    notification_queue_name: str = "link_notifications"
    queue_consumer_group: str = "mail_workers"
    queue_batch_size: int = 50
    queue_worker_interval: int = 5  # Worker poll interval in seconds
    queue_reclaim_idle_ms: int = 60000  # Pending Redis entries older than this are redelivered
    
    # Email delivery
    mail_backend: str = "log"  # Options: "smtp", "log"
    mail_sender: str = "no-reply@localhost"
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    smtp_timeout_seconds: float = 10.0
    notifier_timeout_seconds: float = 2.0
    mail_max_attempts: int = 5  # Deliveries tried before a notification is dropped
    mail_worker_embedded: bool = True
    
    # Expired link sweep (daily at sweep_hour:sweep_minute UTC)
    sweep_enabled: bool = True
    sweep_hour: int = 0
    sweep_minute: int = 0
    
    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
