"""
Report generation utilities for SQL statement analysis.
"""
from typing import List, Optional, Tuple
from datetime import datetime
from html import escape

from ..core.analyzer import AnalysisReport
from ..core.correlator import WarningLedger
from ..core.models import ExplainRow, KnownTable, TableFlag, TableUsage

# (category, item, notes)
SectionRow = Tuple[str, str, str]

SPACER: SectionRow = ('', '', '')

FLAG_CLASSES = {
    TableFlag.SEVERE: 'severe',
    TableFlag.WARN: 'warning',
}


class ReportGenerator:
    @staticmethod
    def generate_text_report(report: AnalysisReport) -> str:
        """Generate text report from analysis results."""
        lines = [
            "SQL Statement Performance Analysis Report",
            "========================================",
            f"Generated on: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            "",
        ]

        analysis = report.analysis
        if not analysis.is_valid:
            lines.extend(["--- SQL Parse Error ---", (analysis.error or '').rstrip()])
            return "\n".join(lines)

        lines.extend([
            "--- Query Structure Analysis ---",
            f"Statement Type: {analysis.statement_type}",
            "",
            "--- Query Statistics ---",
        ])
        if analysis.query_statistics:
            lines.extend(f"{key}: {value}" for key, value in analysis.query_statistics.items())
        else:
            lines.append("(No specific stats gathered)")

        if analysis.hints:
            lines.extend(["", "--- Performance Hints (Structural) ---"])
            for hint in analysis.hints:
                lines.extend([str(hint), ""])

        lines.extend(ReportGenerator._format_explain_text(report))

        for title, flag, rows in ReportGenerator.table_sections(report):
            marker = f" [{flag.name}]" if flag else ""
            lines.extend(["", f"Table: {title}{marker}", "--------------------"])
            lines.extend(ReportGenerator._format_section_row_text(row) for row in rows)

        return "\n".join(lines)

    @staticmethod
    def generate_html_report(report: AnalysisReport) -> str:
        """Generate HTML report from analysis results."""
        html = [
            "<!DOCTYPE html>",
            "<html>",
            "<head>",
            "<title>SQL Statement Performance Analysis Report</title>",
            "<style>",
            "body { font-family: monospace; line-height: 1.4; margin: 20px; }",
            "h1, h2, h3, h4 { color: #333; margin: 1em 0 0.5em 0; }",
            "h1 { border-bottom: 2px solid #333; padding-bottom: 0.2em; }",
            "h2 { border-bottom: 1px solid #666; }",
            "table { border-collapse: collapse; width: 100%; margin: 1em 0; }",
            "th, td { text-align: left; padding: 0.3em 1em; font-family: monospace; }",
            "th { border-bottom: 1px solid #666; }",
            ".severe { color: #dc3545; }",
            ".warning { color: #fd7e14; }",
            ".info { color: #333; }",
            "div.hint { padding: 0.5em; margin: 0.5em 0; }",
            "pre { background-color: #f8f9fa; padding: 1em; border-radius: 4px; overflow-x: auto; }",
            "</style>",
            "</head>",
            "<body>",
            "<h1>SQL Statement Performance Analysis Report</h1>",
            f"<p>Generated on: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}</p>",
        ]

        analysis = report.analysis
        if not analysis.is_valid:
            html.extend([
                "<h2>SQL Parse Error</h2>",
                f"<pre>{escape(analysis.error or '')}</pre>",
                "</body>",
                "</html>",
            ])
            return '\n'.join(html)

        html.extend([
            "<h2>Query Structure Analysis</h2>",
            f"<p>Statement Type: {escape(str(analysis.statement_type))}</p>",
            "<h3>Query Statistics</h3>",
            ReportGenerator._format_statistics_html(report),
            "<h2>Performance Hints (Structural)</h2>",
            ReportGenerator._format_hints_html(report),
            "<h2>EXPLAIN Plan</h2>",
            ReportGenerator._format_explain_html(report),
        ])

        for title, flag, rows in ReportGenerator.table_sections(report):
            css = f' class="{FLAG_CLASSES[flag]}"' if flag else ''
            html.append(f"<h2{css}>Table: {escape(title)}</h2>")
            html.append(ReportGenerator._format_section_html(rows))

        html.extend(["</body>", "</html>"])
        return '\n'.join(html)

    @staticmethod
    def table_sections(report: AnalysisReport) -> List[Tuple[str, Optional[TableFlag], List[SectionRow]]]:
        """One (title, flag, rows) section per table usage, EXPLAIN warnings first."""
        ledger = WarningLedger()
        flagged = {}
        if report.correlation is not None:
            ledger.record(report.correlation.warnings)
            flagged = report.correlation.flagged_tables

        sections = []
        for key, usage in report.analysis.table_usages.items():
            rows: List[SectionRow] = []
            flag = None
            if isinstance(key, KnownTable):
                rows.extend(ReportGenerator._warning_rows(ledger, key.name))
                flag = flagged.get(key.name)
            rows.extend(ReportGenerator._usage_rows(usage))
            sections.append((str(key), flag, rows))
        return sections

    @staticmethod
    def _warning_rows(ledger: WarningLedger, table: str) -> List[SectionRow]:
        rows: List[SectionRow] = []
        for warning in ledger.warnings_for(table):
            rows.append(("--- WARNING ---", warning.warning_type.label, warning.short_message))
            rows.append(SPACER)
            rows.extend(warning.suggestion_rows)
            if warning.index_sql:
                rows.append(("-> SQL", warning.index_sql, ""))
            rows.append(SPACER)
        return rows

    @staticmethod
    def _usage_rows(usage: TableUsage) -> List[SectionRow]:
        rows: List[SectionRow] = [("General", "Alias Used", usage.alias_used or "N/A"), SPACER]

        if usage.function_where_columns:
            rows.append(("--- WARNING ---", "Function on WHERE column(s)", "May prevent index usage"))
            rows.extend(("", f"- {col}", "(Function applied)") for col in sorted(usage.function_where_columns))
            rows.append(SPACER)

        rows.append(("--- ALL COLUMNS USED ---", f"({len(usage.all_columns)} found)", ""))
        if usage.all_columns:
            rows.extend(("Column", col, "") for col in sorted(usage.all_columns))
        else:
            rows.append(("", "(None Detected)", ""))
        rows.append(SPACER)

        rows.append(("--- WHERE/JOIN COLUMNS ---", f"({len(usage.where_columns)} found)", ""))
        if usage.where_columns:
            for col in sorted(usage.where_columns):
                notes = "(Function applied)" if col in usage.function_where_columns else ""
                rows.append(("Filtering", col, notes))
        else:
            rows.append(("", "(None)", ""))

        for title, category, columns in (("--- GROUP BY COLUMNS ---", "Grouping", usage.group_by_columns),
                                         ("--- ORDER BY COLUMNS ---", "Sorting", usage.order_by_columns)):
            rows.append(SPACER)
            rows.append((title, f"({len(columns)} found)", ""))
            if columns:
                rows.extend((category, col, "") for col in sorted(columns))
            else:
                rows.append(("", "(None)", ""))
        return rows

    @staticmethod
    def _format_section_row_text(row: SectionRow) -> str:
        category, item, notes = row
        return f"{category:<26}{item:<40}{notes}".rstrip()

    @staticmethod
    def _format_explain_text(report: AnalysisReport) -> List[str]:
        lines = ["", "--- EXPLAIN ---"]
        if report.explain_sql is None:
            lines.append("No explainable (SELECT/INSERT/UPDATE/DELETE) statement found in script.")
            return lines
        if report.explain_error is not None:
            lines.append(report.explain_error.remediation)
            return lines
        if report.correlation is None:
            lines.append("(No database configured; EXPLAIN skipped)")
            return lines

        lines.append(f"Explain Time: {report.explain_duration_ms} ms")
        lines.extend(ReportGenerator._format_explain_rows_text(report.explain_rows))
        lines.append("")
        lines.append(report.correlation.narrative.rstrip())
        return lines

    @staticmethod
    def _format_explain_rows_text(rows: List[ExplainRow]) -> List[str]:
        if not rows:
            return []
        columns = list(rows[0].keys())
        lines = [" | ".join(columns)]
        for row in rows:
            lines.append(" | ".join(row.text(col, '') for col in columns))
        return lines

    @staticmethod
    def _format_statistics_html(report: AnalysisReport) -> str:
        stats = report.analysis.query_statistics
        if not stats:
            return "<p>(No specific stats gathered)</p>"
        html = ['<table class="metric-table">']
        for key, value in stats.items():
            html.append(f"<tr><td>{escape(key)}</td><td>{escape(str(value))}</td></tr>")
        html.append('</table>')
        return '\n'.join(html)

    @staticmethod
    def _format_hints_html(report: AnalysisReport) -> str:
        html = []
        for hint in report.analysis.hints:
            css = hint.severity.name.lower() if hint.severity.name != 'WARN' else 'warning'
            html.extend([
                f'<div class="hint {css}">',
                f"<h3>[{hint.severity.value}] {escape(hint.title)}</h3>",
                f"<p>Why: {escape(hint.explanation)}</p>",
                f"<p>Suggestion: {escape(hint.suggestion)}</p>",
                '</div>',
            ])
        return '\n'.join(html)

    @staticmethod
    def _format_explain_html(report: AnalysisReport) -> str:
        if report.explain_sql is None:
            return "<p>No explainable (SELECT/INSERT/UPDATE/DELETE) statement found in script.</p>"
        if report.explain_error is not None:
            return f'<p class="severe">{escape(report.explain_error.remediation)}</p>'
        if report.correlation is None:
            return "<p>(No database configured; EXPLAIN skipped)</p>"

        html = [f"<p>Explain Time: {report.explain_duration_ms} ms</p>"]
        if report.explain_rows:
            columns = list(report.explain_rows[0].keys())
            html.append('<table class="plan-table">')
            html.append("<tr>" + "".join(f"<th>{escape(col)}</th>" for col in columns) + "</tr>")
            for row in report.explain_rows:
                html.append("<tr>" + "".join(f"<td>{escape(row.text(col, ''))}</td>" for col in columns) + "</tr>")
            html.append('</table>')
        html.append(f"<pre>{escape(report.correlation.narrative)}</pre>")
        return '\n'.join(html)

    @staticmethod
    def _format_section_html(rows: List[SectionRow]) -> str:
        html = ['<table>', '<tr><th>Category</th><th>Item</th><th>Notes</th></tr>']
        for category, item, notes in rows:
            html.append(f"<tr><td>{escape(category)}</td><td>{escape(item)}</td><td>{escape(notes)}</td></tr>")
        html.append('</table>')
        return '\n'.join(html)
