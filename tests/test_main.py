"""Tests for the entry point and logger setup."""

from unittest.mock import patch

from loguru import logger as loguru_logger

from shop_service.config import Settings
from shop_service.logger import setup_service_logger
from shop_service.main import main


@patch("shop_service.main.uvicorn.run")
@patch("shop_service.main.build_app")
@patch("shop_service.main.setup_service_logger")
@patch("shop_service.main.Settings.from_env")
def test_main_configures_logging_once(mock_from_env, mock_setup, mock_build_app, mock_run):
    settings = Settings(store_backend="memory", log_level="DEBUG", log_file="shop.log", port=5001)
    mock_from_env.return_value = settings

    main()

    mock_setup.assert_called_once_with("shop-service", log_level="DEBUG", log_file="shop.log")
    mock_build_app.assert_called_once_with(settings)
    mock_run.assert_called_once_with(mock_build_app.return_value, host="0.0.0.0", port=5001)


def test_setup_service_logger_writes_file_sink(tmp_path):
    log_file = tmp_path / "shop.log"
    try:
        service_logger = setup_service_logger("shop-service", log_level="WARNING", log_file=str(log_file))
        service_logger.info("quiet")
        service_logger.warning("stock running low")
    finally:
        loguru_logger.remove()

    content = log_file.read_text()
    assert "stock running low" in content
    assert "quiet" not in content
