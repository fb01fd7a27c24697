# === FILE: registry_scout/config.py ===
"""
Модуль для загрузки и валидации конфигурации краулера RegistryScout.
Используется Pydantic для описания схемы и проверки данных.
Селекторы целевого сайта вынесены в отдельную секцию, чтобы изменение
разметки сайта не затрагивало логику обхода.
"""
from __future__ import annotations

import errno
import json
import os
import re
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    ValidationError,
    field_validator,
)

_DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class BrowserConfig(_Section):
    """Параметры запуска браузера и контекста."""

    headless: bool = True
    viewport_width: int = Field(1920, ge=1)
    viewport_height: int = Field(1000, ge=1)
    user_agent: str = Field(_DEFAULT_USER_AGENT, min_length=1)
    action_timeout: float = Field(30.0, gt=0, description="Таймаут одного действия (секунд).")


class SelectorMap(_Section):
    """Логические цели на странице и их CSS-селекторы."""

    interstitials: List[str] = Field(default_factory=lambda: ["#btnWarning", ".cwc-accept-button"])
    query_field: str = "#key-word"
    submit_key: str = "Enter"
    table: str = "#fixTable"
    table_rows: str = "#fixTable tr td"
    next_page: str = "#next"
    next_hidden_class: str = "hide"
    tab_menu: str = "#menu2"
    profile_tabs: Dict[str, str] = Field(
        default_factory=lambda: {
            "summary": 'a[href="#tab21"]',
            "statement": 'a[href="#tab22"]',
            "history": 'a[href="#tab23"]',
        }
    )
    content_region: str = ".page-content"
    profile_marker: str = "profile"

    @field_validator("profile_tabs")
    def _tabs_not_empty(cls, v: Dict[str, str]) -> Dict[str, str]:
        if not v:
            raise ValueError("profile_tabs must name at least one tab")
        return v


class TimingConfig(_Section):
    """Паузы (секунды), которых требует асинхронная отрисовка сайта."""

    landing: float = Field(2.0, ge=0)
    typing: float = Field(0.5, ge=0)
    hover: float = Field(1.0, ge=0)
    panel: float = Field(0.5, ge=0)
    page: float = Field(2.0, ge=0)


class RetryConfig(_Section):
    attempts: int = Field(3, ge=1, description="Число попыток для каждого действия.")
    delay: float = Field(1.0, ge=0, description="Пауза между попытками (секунд).")
    backoff: float = Field(1.0, ge=1.0, description="Множитель паузы; 1.0 означает фиксированную паузу.")


class CacheConfig(_Section):
    """Настройки перехвата запросов и кеша ресурсов."""

    mode: Literal["ttl", "permanent", "off"] = "ttl"
    directory: Path = Path(".cache/resources")
    snapshot: Optional[Path] = None
    blocked_resource_types: List[str] = Field(default_factory=lambda: ["font", "media"])
    blocked_hosts: List[str] = Field(
        default_factory=lambda: [
            "google-analytics.com",
            "googletagmanager.com",
            "doubleclick.net",
            "facebook.net",
        ]
    )
    storable_resource_types: List[str] = Field(
        default_factory=lambda: ["script", "stylesheet", "image"]
    )
    uncached_url_patterns: List[str] = Field(default_factory=list)

    @field_validator("uncached_url_patterns")
    def _patterns_compile(cls, v: List[str]) -> List[str]:
        for pattern in v:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"invalid pattern {pattern!r}: {exc}") from exc
        return v

    @field_validator("blocked_hosts")
    def _lower_hosts(cls, v: List[str]) -> List[str]:
        return [h.lower().lstrip(".") for h in v]


class ServerConfig(_Section):
    host: str = "127.0.0.1"
    port: int = Field(3000, ge=1, le=65535)


class ScraperConfig(BaseModel):
    """Конфигурация краулера реестра."""
    model_config = ConfigDict(extra="forbid", frozen=True, validate_default=True)

    base_url: HttpUrl = Field(
        "https://datawarehouse.dbd.go.th/index", description="Стартовая страница с формой поиска."
    )
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    selectors: SelectorMap = Field(default_factory=SelectorMap)
    timings: TimingConfig = Field(default_factory=TimingConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    crawl_timeout: Optional[float] = Field(None, gt=0, description="Общий таймаут одного обхода (секунд).")
    max_pages: Optional[int] = Field(None, ge=1, description="Жесткий лимит по числу страниц таблицы.")


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Неправильный YAML в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень YAML должен быть mapping, получено {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Неправильный JSON в {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Верхний уровень JSON должен быть mapping, получено {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> ScraperConfig:
    """
    Читает YAML или JSON и возвращает проверенный объект ScraperConfig.
    Без пути использует configs/default.yaml, а если его нет, то встроенные значения.
    При отсутствии явно указанного файла бросает FileNotFoundError.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            return ScraperConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Неподдерживаемый формат конфига: {suffix}")

    try:
        return ScraperConfig(**data)
    except ValidationError:
        raise
