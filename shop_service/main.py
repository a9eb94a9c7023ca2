"""Main entry point for the Shop Service."""

import uvicorn

from shop_service.config import Settings
from shop_service.logger import setup_service_logger
from shop_service.server import build_app


def main() -> None:
    settings = Settings.from_env()
    setup_service_logger("shop-service", log_level=settings.log_level, log_file=settings.log_file)
    uvicorn.run(build_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
