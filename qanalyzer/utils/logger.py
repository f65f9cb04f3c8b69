"""
Logging configuration for sql-qanalyzer.
Sets up console and file logging with appropriate formatting.
"""
import logging
from pathlib import Path

LOGGER_NAME = 'qanalyzer'


def setup_logger(output_dir: Path) -> logging.Logger:
    """Configure logging with console and file handlers."""
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # repeated setup (tests, multiple runs) must not duplicate output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler()
    console.setLevel(logging.INFO)
    console.setFormatter(logging.Formatter('%(message)s'))

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(output_dir / 'analysis.log')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(
        logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )

    logger.addHandler(console)
    logger.addHandler(file_handler)

    return logger
