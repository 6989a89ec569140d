# File: hugin/report/__init__.py
"""hugin.report: генерация отчётов (JSON и HTML) по результатам поиска для CLI и тестов."""

from hugin.report.html_report import render_html
from hugin.report.json_report import render_json

__all__ = ["render_json", "render_html"]
