"""Service configuration read from the environment."""

import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field


class Settings(BaseModel):
    """Runtime settings for the shop service.

    Attributes:
        store_backend (str): Persistence backend, 'mongo' or 'memory'.
        mongo_uri (str): MongoDB connection string.
        mongo_db (str): MongoDB database name.
        stripe_api_secret (str): Stripe secret API key.
        jwt_secret (str): Secret used to verify identity tokens.
        jwt_algorithm (str): Signing algorithm of identity tokens.
        kafka_bootstrap_servers (str): Kafka brokers; event publishing is off when empty.
        frontend_uris (list[str]): Origins allowed by CORS.
        log_level (str): loguru level.
        log_file (str | None): Optional rotating log file.
        port (int): Port used by the uvicorn entry point.
    """

    store_backend: Literal["mongo", "memory"] = "mongo"
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "shop"
    stripe_api_secret: str = ""
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    kafka_bootstrap_servers: str = ""
    frontend_uris: list[str] = Field(default_factory=list)
    log_level: str = "INFO"
    log_file: str | None = None
    port: int = 4000

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> "Settings":
        """Build settings from environment variables, loading a .env file first if present.

        Args:
            dotenv_path: Optional explicit path to a .env file.

        Returns:
            Settings: The populated settings.
        """
        load_dotenv(dotenv_path)
        origins = os.getenv("FRONTEND_URIS", "")
        return cls(
            store_backend=os.getenv("STORE_BACKEND", "mongo"),
            mongo_uri=os.getenv("MONGO_URI", "mongodb://localhost:27017"),
            mongo_db=os.getenv("MONGO_DB", "shop"),
            stripe_api_secret=os.getenv("STRIPE_API_SECRET", ""),
            jwt_secret=os.getenv("JWT_SECRET", ""),
            jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
            kafka_bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", ""),
            frontend_uris=[o.strip() for o in origins.split(",") if o.strip()],
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE") or None,
            port=int(os.getenv("PORT", "4000")),
        )
