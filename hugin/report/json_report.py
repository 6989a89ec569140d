# hugin/report/json_report.py

"""
Генерация JSON-отчёта для проекта Hugin.

Сериализация результатов поиска (SearchResponse) в файл.
"""
import json
from pathlib import Path

from hugin.search.engine import SearchResponse


def render_json(response: SearchResponse, output_path: Path | str, *, pretty: bool = True) -> Path:
    """
    Сохраняет результаты поиска в формате JSON по указанному пути.

    :param response: объект SearchResponse
    :param output_path: путь к JSON-файлу
    :param pretty: форматировать с отступом 2
    :return: Path сохранённого файла

    Пример:
    ```python
    from hugin.report.json_report import render_json
    report_path = render_json(response, 'reports/search.json')
    print(f"JSON report saved to: {report_path}")
    ```
    """
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)

    with output.open('w', encoding='utf-8') as f:
        json.dump(response.to_dict(), f, ensure_ascii=False, indent=2 if pretty else None)

    return output
