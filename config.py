"""
Service Configuration

Settings are read from the environment (and a .env file in the working
directory) once, when the application starts.
"""

from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATABASE_HOST = "bistro.b2prnxq.mongodb.net"


class Settings(BaseSettings):
    # JWT
    token_secret: str = Field(min_length=1, validation_alias="ACCESS_TOKEN_JWT")

    # Database
    database_url: Optional[str] = Field(None, validation_alias="DATABASE_URL")
    database_user: Optional[str] = Field(None, validation_alias="SECRET_User")
    database_password: Optional[str] = Field(None, validation_alias="SECRET_KEY")
    database_host: str = Field(DEFAULT_DATABASE_HOST, validation_alias="DATABASE_HOST")
    database_name: str = Field("Bistro", validation_alias="DATABASE_NAME")

    # Stripe
    payment_secret_key: str = Field("", validation_alias="Payment_Security_Key")

    # Server
    port: int = Field(3000, validation_alias="PORT")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def build_database_url(self) -> "Settings":
        """Fall back to the Atlas connection string built from SECRET_User / SECRET_KEY."""
        if self.database_url:
            return self
        if not (self.database_user and self.database_password):
            raise ValueError("Database not configured. Set DATABASE_URL, or SECRET_User and SECRET_KEY.")
        self.database_url = (
            f"mongodb+srv://{quote_plus(self.database_user)}:{quote_plus(self.database_password)}"
            f"@{self.database_host}/?retryWrites=true&w=majority"
        )
        return self


def load_settings() -> Settings:
    return Settings()
