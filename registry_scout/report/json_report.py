# registry_scout/report/json_report.py

"""
Генерация JSON-отчёта для проекта RegistryScout.

Сериализация результата обхода (CrawlResult) в файл.
"""
import json
from pathlib import Path
from typing import Any, Dict, Union

from registry_scout.crawler.models import CrawlResult


def dump_payload(result: CrawlResult, *, pretty: bool = False) -> str:
    """Возвращает JSON-строку с полезной нагрузкой результата."""
    return json.dumps(result.to_payload(), ensure_ascii=False, indent=2 if pretty else None)


def render_json(result: Union[CrawlResult, Dict[str, Any]], output_path: Union[Path, str]) -> Path:
    """
    Сохраняет результат обхода в формате JSON по указанному пути.

    :param result: CrawlResult (или готовый словарь полезной нагрузки)
    :param output_path: путь к JSON-файлу
    :return: Path сохранённого файла

    Пример:
    ```python
    from registry_scout.report.json_report import render_json
    report_path = render_json(result, 'reports/acme.json')
    print(f"JSON report saved to: {report_path}")
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    data = result if isinstance(result, dict) else result.to_payload()

    # Запись в файл с отступами и Unicode
    with output.open('w', encoding='utf-8') as f:
        json.dump(data, f, ensure_ascii=False, indent=2)

    return output
