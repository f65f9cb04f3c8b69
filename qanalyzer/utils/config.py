"""
Configuration loading utilities for sql-qanalyzer.
"""
from typing import Optional
from pathlib import Path
import yaml
from dataclasses import dataclass

from ..core.database import DEFAULT_PORTS, VENDOR_DIALECTS, DatabaseConfig
from ..core.errors import UnsupportedVendorError
from ..core.parser import dialect_from_url

DEFAULT_ROW_THRESHOLD = 10000
DEFAULT_OUTPUT_DIR = 'reports'


@dataclass
class AppConfig:
    """Application configuration."""
    query: Path
    database: Optional[DatabaseConfig] = None
    dialect: Optional[str] = None
    row_threshold: int = DEFAULT_ROW_THRESHOLD
    output_dir: Path = Path(DEFAULT_OUTPUT_DIR)


class ConfigLoader:
    """Loads and validates configuration from YAML files."""

    @staticmethod
    def load_config(config_path: Path) -> AppConfig:
        """Load configuration from YAML file."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}

        if not isinstance(config_data, dict):
            raise ValueError(f"Config file must contain a mapping: {config_path}")

        # Validate required fields
        if 'query' not in config_data:
            raise ValueError("Missing required field in config: query")

        query = Path(config_data['query'])
        if not query.exists():
            raise FileNotFoundError(f"Query file not found: {query}")

        db_config = None
        if config_data.get('database'):
            db_config = ConfigLoader._load_database(config_data['database'])

        dialect = config_data.get('dialect') or (db_config.dialect if db_config else None)

        row_threshold = config_data.get('row_threshold', DEFAULT_ROW_THRESHOLD)
        if not isinstance(row_threshold, int) or isinstance(row_threshold, bool) or row_threshold < 0:
            raise ValueError(f"row_threshold must be a non-negative integer, got: {row_threshold!r}")

        return AppConfig(
            query=query,
            database=db_config,
            dialect=dialect,
            row_threshold=row_threshold,
            output_dir=Path(config_data.get('output_dir', DEFAULT_OUTPUT_DIR)),
        )

    @staticmethod
    def _load_database(db_data: dict) -> DatabaseConfig:
        for field in ('dbname', 'user'):
            if field not in db_data:
                raise ValueError(f"Missing required field in database config: {field}")

        if 'vendor' in db_data:
            vendor = str(db_data['vendor']).lower()
        elif db_data.get('url'):
            # e.g. jdbc:mysql://host/db or postgresql://host/db
            try:
                vendor = dialect_from_url(db_data['url'])
            except UnsupportedVendorError as e:
                raise ValueError(str(e)) from e
        else:
            vendor = 'postgres'
        if vendor not in VENDOR_DIALECTS:
            raise ValueError(f"Unsupported database vendor: {vendor}")

        return DatabaseConfig(
            host=db_data.get('host', 'localhost'),
            port=db_data.get('port', DEFAULT_PORTS[VENDOR_DIALECTS[vendor]]),
            dbname=db_data['dbname'],
            user=db_data['user'],
            password=db_data.get('password', ''),
            vendor=vendor,
        )
