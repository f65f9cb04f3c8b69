"""
Database connection and EXPLAIN execution.
Supports PostgreSQL (psycopg2) and MySQL/MariaDB (pymysql).
"""
import logging
from dataclasses import dataclass
from typing import Any, List
from contextlib import contextmanager

import psycopg2
import pymysql

from .errors import DbExecutionError
from .models import ExplainRow
from .plan import PlanFlattener

logger = logging.getLogger(__name__)

VENDOR_DIALECTS = {
    'postgres': 'postgres',
    'postgresql': 'postgres',
    'mysql': 'mysql',
    'mariadb': 'mysql',
}
DEFAULT_PORTS = {
    'postgres': 5432,
    'mysql': 3306,
}


@dataclass
class DatabaseConfig:
    host: str
    port: int
    dbname: str
    user: str
    password: str
    vendor: str = 'postgres'

    @property
    def dialect(self) -> str:
        return VENDOR_DIALECTS[self.vendor.lower()]


class DatabaseManager:
    def __init__(self, config: DatabaseConfig):
        self.config = config

    @property
    def dialect(self) -> str:
        return self.config.dialect

    @contextmanager
    def get_connection(self) -> Any:
        """Create a database connection using context manager."""
        conn = None
        try:
            if self.dialect == 'mysql':
                conn = pymysql.connect(
                    host=self.config.host,
                    port=self.config.port,
                    database=self.config.dbname,
                    user=self.config.user,
                    password=self.config.password
                )
            else:
                conn = psycopg2.connect(
                    host=self.config.host,
                    port=self.config.port,
                    dbname=self.config.dbname,
                    user=self.config.user,
                    password=self.config.password
                )
            yield conn
        finally:
            if conn:
                conn.close()

    def run_explain(self, query: str) -> List[ExplainRow]:
        """Run EXPLAIN (without executing the statement) and return its rows."""
        try:
            with self.get_connection() as conn:
                with conn.cursor() as cursor:
                    if self.dialect == 'mysql':
                        cursor.execute(f"EXPLAIN {query}")
                        columns = [desc[0] for desc in cursor.description]
                        return [
                            ExplainRow({name: ('' if value is None else value) for name, value in zip(columns, row)})
                            for row in cursor.fetchall()
                        ]
                    cursor.execute(f"EXPLAIN (FORMAT JSON) {query}")
                    plan = cursor.fetchall()[0][0]
                    return PlanFlattener.flatten(plan)
        except (psycopg2.Error, pymysql.MySQLError) as e:
            logger.debug("EXPLAIN failed: %s", e)
            raise DbExecutionError.from_driver_error(e) from e
