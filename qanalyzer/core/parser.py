"""
SQL parsing via sqlglot.

The parse context is an immutable value passed into each call; results carry
either the parsed statements or the syntax errors, never both.
"""
from typing import List, Optional
from dataclasses import dataclass, field

import sqlglot
from sqlglot.errors import ErrorLevel, ParseError, TokenError

from .errors import UnsupportedVendorError
from .statement import Statement, to_statement

# connection URL prefix -> sqlglot dialect
URL_DIALECTS = [
    ('jdbc:mysql:', 'mysql'),
    ('jdbc:mariadb:', 'mysql'),
    ('mysql', 'mysql'),
    ('mariadb', 'mysql'),
    ('jdbc:postgresql:', 'postgres'),
    ('postgres', 'postgres'),
    ('jdbc:oracle:', 'oracle'),
    ('oracle', 'oracle'),
    ('jdbc:sqlserver:', 'tsql'),
    ('mssql', 'tsql'),
    ('sqlserver', 'tsql'),
]


def dialect_from_url(url: str) -> str:
    """Determine the SQL dialect from a connection URL."""
    lowered = (url or '').strip().lower()
    for prefix, dialect in URL_DIALECTS:
        if lowered.startswith(prefix):
            return dialect
    raise UnsupportedVendorError(f"Could not determine database vendor from URL: {url}")


@dataclass(frozen=True)
class ParseContext:
    dialect: Optional[str] = None


@dataclass(frozen=True)
class SyntaxErrorEntry:
    line: int
    column: int
    near_text: str
    description: str = ''

    def __str__(self) -> str:
        return f"Line: {self.line}, Col: {self.column} (Near '{self.near_text}')"


@dataclass
class ParseResult:
    statements: List[Statement] = field(default_factory=list)
    errors: List[SyntaxErrorEntry] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def error_text(self) -> Optional[str]:
        if not self.errors:
            return None
        return ''.join(f"{entry}\n" for entry in self.errors)


class SqlParser:
    def __init__(self, context: ParseContext):
        self.context = context

    def parse(self, sql: str) -> ParseResult:
        """Parse a SQL script into statements, or collect its syntax errors."""
        try:
            nodes = sqlglot.parse(sql, read=self.context.dialect, error_level=ErrorLevel.RAISE)
        except ParseError as e:
            return ParseResult(errors=self._syntax_errors(e))
        except TokenError as e:
            return ParseResult(errors=[SyntaxErrorEntry(line=0, column=0, near_text='', description=str(e))])

        statements = [to_statement(node, self.context.dialect) for node in nodes if node is not None]
        return ParseResult(statements=statements)

    @staticmethod
    def _syntax_errors(error: ParseError) -> List[SyntaxErrorEntry]:
        entries = []
        for detail in error.errors or []:
            entries.append(SyntaxErrorEntry(
                line=detail.get('line') or 0,
                column=detail.get('col') or 0,
                near_text=(detail.get('highlight') or '').strip(),
                description=detail.get('description') or '',
            ))
        if not entries:
            entries.append(SyntaxErrorEntry(line=0, column=0, near_text='', description=str(error)))
        return entries
