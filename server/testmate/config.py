from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration settings"""

    # Application
    app_name: str = "TestMate Exam Platform"
    debug: bool = False
    api_version: str = "v1"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 5000

    # Database
    database_url: str = "sqlite:///./testmate.db"

    # Security
    secret_key: str
    algorithm: str = "HS256"
    session_token_days: int = 3
    bcrypt_rounds: int = 12

    # One-time tokens
    otp_length: int = 4
    otp_ttl_minutes: int = 10
    reset_ttl_minutes: int = 10

    # Mail
    mail_sender: str = "no-reply@testmate.local"
    reset_url_base: str = "http://localhost:5000/reset-password"

    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def session_token_seconds(self) -> int:
        return self.session_token_days * 24 * 60 * 60

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
