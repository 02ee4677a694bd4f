import logging
from pathlib import Path
from configuration import Configuration as Config


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def build_logger(name: str, log_file_name: str) -> logging.Logger:
    # Create a custom logger
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)  # Set the minimum logging level

    # Re-importing a logger module must not stack handlers
    if logger.handlers:
        return logger

    # Create handlers for file and console
    Config.log_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(Path(Config.log_dir, log_file_name), mode='w')
    console_handler = logging.StreamHandler()

    # Set the logging level for each handler
    file_handler.setLevel(logging.INFO)
    console_handler.setLevel(logging.WARNING)

    # Create a logging format
    formatter = logging.Formatter(LOG_FORMAT)
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    # Add the handlers to the logger
    logger.addHandler(file_handler)
    logger.addHandler(console_handler)
    return logger
