# === FILE: hugin/config.py ===
"""
Модуль для загрузки и валидации конфигурации краулера Hugin.
Используется Pydantic для описания схемы и проверки данных.
Значения из файла можно переопределить переменными окружения
(COUCHDB_URL, CRAWLER_MAX_PAGES, DEVELOPMENT_MODE и т.д.).
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Callable, List, Literal, Mapping, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


class StorageConfig(BaseModel):
    """Параметры подключения к хранилищу документов."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    backend: Literal["couchdb", "memory"] = Field("couchdb", description="Тип хранилища.")
    url: str = Field("http://localhost:5984", description="Адрес CouchDB.")
    database: str = Field("hugin", min_length=1, description="Имя базы данных.")
    user: Optional[str] = Field(None, description="Пользователь CouchDB.")
    password: Optional[str] = Field(None, description="Пароль CouchDB.")
    timeout: float = Field(30.0, gt=0, description="Таймаут запроса к хранилищу (секунд).")

    @field_validator("url", mode="before")
    def _strip_trailing_slash(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.rstrip("/")
        return v


class HuginConfig(BaseModel):
    """Конфигурация краулера и поискового движка."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    user_agent: str = Field("Hugin-Webcrawler/0.0.1", min_length=1, description="Заголовок User-Agent.")
    robots_agent: str = Field("Hugin-Webcrawler", min_length=1, description="Имя агента для robots.txt.")
    max_pages: int = Field(100, ge=1, description="Жесткий лимит по числу страниц за один обход.")
    default_max_depth: int = Field(3, ge=0, description="Глубина обхода по умолчанию.")
    default_delay: float = Field(1.0, ge=0, description="Пауза между запросами (секунд).")
    allowed_suffixes: List[str] = Field(
        default_factory=lambda: [".ygg", ".anon"],
        description="Суффиксы доменов, разрешённых для обхода.",
    )
    allow_local_hosts: bool = Field(False, description="Разрешить localhost и частные сети.")
    renderer: Literal["browser", "http"] = Field("browser", description="Способ загрузки страниц.")
    navigation_timeout: float = Field(30.0, gt=0, description="Таймаут загрузки страницы (секунд).")
    settle_delay: float = Field(3.0, ge=0, description="Ожидание динамического контента (секунд).")
    robots_timeout: float = Field(5.0, gt=0, description="Таймаут загрузки robots.txt (секунд).")
    sitemap_timeout: float = Field(10.0, gt=0, description="Таймаут загрузки sitemap (секунд).")
    robots_cache_ttl: float = Field(24 * 60 * 60, gt=0, description="Время жизни кэша robots.txt (секунд).")
    robots_cache_size: int = Field(10_000, ge=1, description="Порог очистки кэша robots.txt.")
    visited_limit: Optional[int] = Field(None, ge=1, description="Максимум запомненных URL (None = без лимита).")
    retry_times: int = Field(2, ge=0, description="Число повторных попыток при 5xx.")
    search_candidate_limit: int = Field(1000, ge=1, description="Максимум кандидатов для ранжирования.")
    recrawl_stagger: float = Field(5.0, ge=0, description="Пауза между запусками повторных обходов.")
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @field_validator("allowed_suffixes")
    def _lower_suffixes(cls, v: List[str]) -> List[str]:
        return [s.lower() for s in v if s]


_DEFAULT_CFG = Path("configs/default.yaml")

_PARSERS: dict[str, tuple[str, Callable[[str], Any], type[Exception]]] = {
    ".yaml": ("YAML", yaml.safe_load, yaml.YAMLError),
    ".yml": ("YAML", yaml.safe_load, yaml.YAMLError),
    ".json": ("JSON", json.loads, json.JSONDecodeError),
}

# переменная окружения -> (путь поля, преобразование)
ENV_OVERRIDES: dict[str, tuple[tuple[str, ...], Callable[[str], Any]]] = {
    "COUCHDB_URL": (("storage", "url"), str),
    "COUCHDB_DATABASE": (("storage", "database"), str),
    "COUCHDB_USER": (("storage", "user"), str),
    "COUCHDB_PASSWORD": (("storage", "password"), str),
    "CRAWLER_MAX_PAGES": (("max_pages",), int),
    "CRAWLER_MAX_DEPTH": (("default_max_depth",), int),
    "CRAWLER_DELAY_MS": (("default_delay",), lambda v: int(v) / 1000),
    "DEVELOPMENT_MODE": (("allow_local_hosts",), lambda v: v.strip().lower() == "true"),
}


def _read_mapping(path: Path) -> dict[str, Any]:
    suffix = path.suffix.lower()
    if suffix not in _PARSERS:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")
    kind, parse, error = _PARSERS[suffix]
    try:
        data = parse(path.read_text(encoding="utf-8")) or {}
    except error as exc:
        raise ValueError(f"Неправильный {kind} в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень {kind} должен быть mapping, получено {type(data).__name__}")
    return data


def apply_env(data: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Накладывает переменные окружения (см. ``ENV_OVERRIDES``) поверх данных файла.

    Пустые значения игнорируются; нечисловое значение числовой переменной
    даёт ``ValueError`` с именем переменной.
    """
    merged = dict(data)
    for name, (field_path, convert) in ENV_OVERRIDES.items():
        raw = environ.get(name)
        if raw is None or not raw.strip():
            continue
        try:
            value = convert(raw)
        except ValueError as exc:
            raise ValueError(f"Некорректное значение {name}={raw!r}: {exc}") from exc
        target = merged
        for key in field_path[:-1]:
            target[key] = dict(target.get(key) or {})
            target = target[key]
        target[field_path[-1]] = value
    return merged


def load_config(path: Union[str, Path, None], environ: Optional[Mapping[str, str]] = None) -> HuginConfig:
    """
    Читает YAML или JSON, накладывает переменные окружения и возвращает
    проверенный HuginConfig. Если файла нет, бросает FileNotFoundError.

    *environ* по умолчанию ``os.environ``; тесты передают свой словарь.
    """
    path_obj = _DEFAULT_CFG if path is None else Path(path).expanduser().resolve()
    if not path_obj.is_file():
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    data = apply_env(_read_mapping(path_obj), os.environ if environ is None else environ)
    return HuginConfig(**data)


__all__ = ["HuginConfig", "StorageConfig", "load_config", "apply_env", "ENV_OVERRIDES"]
