# File: registry_scout/report/__init__.py
"""registry_scout.report: Сохранение результатов обхода для CLI и тестов."""

from registry_scout.report.json_report import dump_payload, render_json

__all__ = ["dump_payload", "render_json"]
