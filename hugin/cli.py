# === FILE: hugin/cli.py ===
#!/usr/bin/env python3
"""
Точка входа для краулера и поиска Hugin через командную строку.

Команды:
  crawl URL     Обойти сайт и дождаться завершения задачи
  search QUERY  Поиск по сохранённым страницам
  status ID     Показать статус задачи обхода
  jobs          Список задач пользователя
  page URL      Показать сохранённую страницу
  recrawl       Повторно обойти все известные сайты
  config        Показать текущую конфигурацию

Общие опции:
  --config PATH       Путь к YAML/JSON-конфигу (default: configs/default.yaml)
  --limit INT         Макс. число страниц за обход (override max_pages)
  --renderer NAME     browser | http (override renderer)
  --allow-local       Разрешить обход localhost и частных сетей
  --log-level LEVEL   Уровень логирования (DEBUG, INFO, ...)
  --log-file PATH     Файл для логов (stdout, если не указан)
  --log-format FORMAT Формат логирования

Пример:
  hugin --config configs/default.yaml crawl http://site.ygg/ --depth 2
  hugin search "yggdrasil" --domain site.ygg --pretty
"""
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Optional

import click

from hugin import __version__
from hugin.config import HuginConfig, load_config
from hugin.engine import Engine
from hugin.logger import DEFAULT_FORMAT, init_logging
from hugin.report.html_report import render_html
from hugin.report.json_report import render_json
from hugin.storage.base import DocumentNotFound, StorageError

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def echo_json(data: Any, pretty: bool = True) -> None:
    click.echo(json.dumps(data, ensure_ascii=False, indent=2 if pretty else None))


# --------------------------------------------------------------------------- #
# Async runners (module level so tests can replace them)                      #
# --------------------------------------------------------------------------- #


async def run_crawl(cfg: HuginConfig, url: str, depth: Optional[int], user: str) -> dict:
    async with Engine(cfg) as engine:
        crawl_id = await engine.submit(url, depth, submitted_by=user)
        await engine.wait_for_jobs()
        job = await engine.job_status(crawl_id)
    return job.as_dict()


async def run_search(cfg: HuginConfig, query: str, domain: Optional[str], limit: int, offset: int):
    async with Engine(cfg) as engine:
        return await engine.search(query, domain=domain, limit=limit, offset=offset)


async def run_status(cfg: HuginConfig, crawl_id: str) -> dict:
    async with Engine(cfg) as engine:
        return (await engine.job_status(crawl_id)).as_dict()


async def run_jobs(cfg: HuginConfig, user: str) -> list:
    async with Engine(cfg) as engine:
        return [job.as_dict() for job in await engine.list_jobs(user)]


async def run_page(cfg: HuginConfig, url: str) -> Optional[dict]:
    async with Engine(cfg) as engine:
        page = await engine.get_page(url)
    if page is None:
        return None
    return {k: v for k, v in page.to_doc().items() if not k.startswith("_")}


async def run_recrawl(cfg: HuginConfig) -> list:
    async with Engine(cfg) as engine:
        crawl_ids = await engine.recrawl_known_sites()
        await engine.wait_for_jobs()
    return crawl_ids


# --------------------------------------------------------------------------- #
# Commands                                                                    #
# --------------------------------------------------------------------------- #


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='Hugin, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Путь к файлу конфигурации YAML/JSON (по умолчанию configs/default.yaml).'
)
@click.option(
    '--limit', '-l', 'limit',
    type=click.IntRange(min=1),
    default=None,
    help='Макс. число страниц за обход (override max_pages)'
)
@click.option(
    '--renderer', 'renderer',
    type=click.Choice(['browser', 'http']),
    default=None,
    help='Способ загрузки страниц (override renderer)'
)
@click.option(
    '--allow-local', is_flag=True, default=False,
    help='Разрешить обход localhost и частных сетей'
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
def cli(ctx, config_path, limit, renderer, allow_local, log_level, log_file, log_format):
    """Группа команд Hugin CLI."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    try:
        cfg = load_config(config_path)
    except Exception as e:
        print_error(f'Ошибка загрузки конфигурации: {e}')
    overrides: dict[str, Any] = {}
    if limit is not None:
        overrides['max_pages'] = limit
    if renderer is not None:
        overrides['renderer'] = renderer
    if allow_local:
        overrides['allow_local_hosts'] = True
    if overrides:
        cfg = cfg.model_copy(update=overrides)
    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option('--depth', '-d', type=click.IntRange(min=0), default=None, help='Максимальная глубина обхода')
@click.option('--user', '-u', default='cli', show_default=True, help='Кто запустил обход')
@click.pass_context
def crawl(ctx, url, depth, user):
    """Обойти сайт начиная с URL и вывести итоговую задачу."""
    cfg = ctx.obj['config']
    try:
        job = asyncio.run(run_crawl(cfg, url, depth, user))
    except ValueError as e:
        print_error(f'Некорректный запрос: {e}')
    except StorageError as e:
        print_error(f'Ошибка хранилища: {e}')
    echo_json(job)
    if job.get('status') == 'failed':
        sys.exit(2)


@cli.command('search', context_settings=CONTEXT_SETTINGS)
@click.argument('query')
@click.option('--domain', default=None, help='Искать только на этом домене')
@click.option('--limit', 'limit', type=click.IntRange(min=0), default=20, show_default=True)
@click.option('--offset', 'offset', type=click.IntRange(min=0), default=0, show_default=True)
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить JSON-отчёт в файл'
)
@click.option(
    '--html', 'html_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Сохранить HTML-отчёт в файл'
)
@click.option(
    '--template', '-t', 'template_dir',
    default=None,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help='Папка с Jinja2-шаблонами'
)
@click.option('--pretty', is_flag=True, help='Преформатировать JSON-вывод (отступ 2)')
@click.pass_context
def search(ctx, query, domain, limit, offset, json_output, html_output, template_dir, pretty):
    """Поиск по сохранённым страницам."""
    cfg = ctx.obj['config']
    try:
        response = asyncio.run(run_search(cfg, query, domain, limit, offset))
    except ValueError as e:
        print_error(f'Некорректный запрос: {e}')
    except StorageError as e:
        print_error(f'Ошибка поиска: {e}')

    if not json_output and not html_output:
        echo_json(response.to_dict(), pretty)
        return

    if json_output:
        try:
            saved_json = render_json(response, json_output, pretty=pretty)
            click.echo(f'JSON report: {saved_json}')
        except Exception as e:
            print_error(f'Ошибка при сохранении JSON: {e}')

    if html_output:
        try:
            saved_html = render_html(response, html_output, template_dir)
            click.echo(f'HTML report: {saved_html}')
        except Exception as e:
            print_error(f'Ошибка при сохранении HTML: {e}')


@cli.command('status', context_settings=CONTEXT_SETTINGS)
@click.argument('crawl_id')
@click.pass_context
def status(ctx, crawl_id):
    """Показать статус задачи обхода."""
    try:
        job = asyncio.run(run_status(ctx.obj['config'], crawl_id))
    except DocumentNotFound:
        print_error(f'Задача {crawl_id} не найдена')
    except StorageError as e:
        print_error(f'Ошибка хранилища: {e}')
    echo_json(job)


@cli.command('jobs', context_settings=CONTEXT_SETTINGS)
@click.option('--user', '-u', default='cli', show_default=True, help='Чьи задачи показать')
@click.pass_context
def jobs(ctx, user):
    """Последние 50 задач пользователя (новые первыми)."""
    try:
        items = asyncio.run(run_jobs(ctx.obj['config'], user))
    except StorageError as e:
        print_error(f'Ошибка хранилища: {e}')
    echo_json({'jobs': items})


@cli.command('page', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.pass_context
def page(ctx, url):
    """Показать сохранённую страницу по URL."""
    try:
        doc = asyncio.run(run_page(ctx.obj['config'], url))
    except StorageError as e:
        print_error(f'Ошибка хранилища: {e}')
    if doc is None:
        print_error(f'Страница {url} не найдена')
    echo_json(doc)


@cli.command('recrawl', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def recrawl(ctx):
    """Повторно обойти все сайты, страницы которых уже сохранены."""
    try:
        crawl_ids = asyncio.run(run_recrawl(ctx.obj['config']))
    except StorageError as e:
        print_error(f'Ошибка хранилища: {e}')
    echo_json({'crawlIds': crawl_ids})


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Показать текущую конфигурацию в JSON."""
    cfg = ctx.obj['config']
    click.echo(cfg.model_dump_json(indent=2))


if __name__ == "__main__":
    cli()
