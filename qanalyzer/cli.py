#!/usr/bin/env python3
"""
sql-qanalyzer

A command-line tool for SQL statement performance analysis.
Reports structural anti-patterns in a query and, when a database is
configured, correlates its EXPLAIN plan with the columns the query uses.
"""

import sys
from datetime import datetime
from pathlib import Path

from .core.analyzer import AnalysisContext, QueryAnalyzer
from .core.database import DatabaseManager
from .utils.config import ConfigLoader
from .utils.logger import setup_logger
from .utils.report import ReportGenerator


def main():
    """Main entry point"""
    if len(sys.argv) < 2:
        print("Usage: python -m qanalyzer.cli <config_file>")
        sys.exit(1)

    try:
        config = ConfigLoader.load_config(Path(sys.argv[1]))
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    logger = setup_logger(config.output_dir)

    sql = config.query.read_text()
    analyzer = QueryAnalyzer(AnalysisContext(
        dialect=config.dialect,
        row_threshold=config.row_threshold,
    ))
    db_manager = DatabaseManager(config.database) if config.database else None

    report = analyzer.run(sql, db_manager=db_manager, progress=logger.info)

    # Generate reports
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    text_report = config.output_dir / f"report_{timestamp}.txt"
    html_report = config.output_dir / f"report_{timestamp}.html"
    text_report.write_text(ReportGenerator.generate_text_report(report))
    html_report.write_text(ReportGenerator.generate_html_report(report))
    print(f"Reports generated: {text_report}, {html_report}")

    if not report.analysis.is_valid:
        logger.error("SQL parse error:\n%s", report.analysis.error)
        sys.exit(1)


if __name__ == '__main__':
    main()
