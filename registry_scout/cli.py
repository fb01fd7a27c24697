# === FILE: registry_scout/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для запуска краулера RegistryScout через командную строку.

Команды:
  search    Выполнить один поиск в реестре и вывести/сохранить результат
  serve     Запустить HTTP API (GET /api/search?from=...)
  config    Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml, если есть)
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования (e.g. "%(asctime)s %(levelname)s %(message)s")

Команда search опции:
  --json PATH         Сохранить результат в JSON-файл
  --pretty            Преформатировать JSON-вывод (отступ 2)

Дополнительно:
  --version, -v       Показать версию RegistryScout

Пример:
  registry-scout search "Acme" --json reports/acme.json
"""
import asyncio
import sys
from pathlib import Path

import click

from registry_scout import __version__
from registry_scout.config import load_config
from registry_scout.engine import run_search
from registry_scout.logger import DEFAULT_FORMAT, init_logging
from registry_scout.report.json_report import dump_payload, render_json
from registry_scout.server import run_server

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='RegistryScout, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Уровень логирования'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Путь к файлу логов (stdout, если не указан)'
)
@click.option(
    '--log-format', 'log_format',
    default=DEFAULT_FORMAT,
    show_default=True,
    help='Строка формата для логов'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """Группа команд RegistryScout CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('search', context_settings=CONTEXT_SETTINGS)
@click.argument('query')
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить результат в JSON-файл'
)
@click.option(
    '--pretty', is_flag=True,
    help='Преформатировать JSON-вывод (отступ 2)'
)
@click.pass_context
def search(ctx, query, json_output, pretty):
    """Найти компанию по названию или регистрационному номеру."""
    cfg = ctx.obj['config']
    try:
        result = asyncio.run(run_search(cfg, query))
    except Exception as e:
        print_error(f'Ошибка при поиске: {e}')

    if not json_output:
        click.echo(dump_payload(result, pretty=pretty))
        return

    try:
        saved = render_json(result, json_output)
        click.echo(f'JSON report: {saved}')
    except Exception as e:
        print_error(f'Ошибка при сохранении JSON: {e}')


@cli.command('serve', context_settings=CONTEXT_SETTINGS)
@click.option('--host', default=None, help='Адрес для HTTP API (override server.host)')
@click.option('--port', type=int, default=None, help='Порт для HTTP API (override server.port)')
@click.pass_context
def serve(ctx, host, port):
    """Запустить HTTP API."""
    run_server(ctx.obj['config'], host=host, port=port)


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
