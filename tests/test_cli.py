# File: tests/test_cli.py
"""Тесты для CLI (`hugin/cli.py`) с использованием click.testing.CliRunner.
Проверяют команды `crawl`, `search`, `status`, `jobs`, `page`, `recrawl`,
`config`, `--version`, а также обработку ошибок.
"""
import importlib
import json

import pytest
from click.testing import CliRunner

cli_module = importlib.import_module("hugin.cli")
from hugin.cli import cli
from hugin.logger import init_logging
from hugin.search.engine import SearchResponse, SearchResult
from hugin.storage.base import DocumentNotFound


@pytest.fixture(autouse=True)
def restore_logging():
    """CLI перенастраивает логгер на поток CliRunner; возвращаем консольный вывод."""
    yield
    init_logging()


@pytest.fixture()
def cfg_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("max_pages: 10\nstorage:\n  backend: memory\n", encoding="utf-8")
    return path


@pytest.fixture()
def calls(monkeypatch):
    """Патчим асинхронные раннеры, чтобы CLI не запускал реальный обход."""
    recorded = {}

    async def fake_crawl(cfg, url, depth, user):
        recorded["crawl"] = (cfg, url, depth, user)
        return {"crawlId": "1_abc", "url": url, "status": "completed", "pagesProcessed": 2}

    async def fake_search(cfg, query, domain, limit, offset):
        recorded["search"] = (query, domain, limit, offset)
        result = SearchResult(
            url="http://site.ygg/",
            title="<b>Home</b>",
            domain="site.ygg",
            snippet="welcome home",
            meta_description="",
            meta_keywords="",
            meta_author="",
            crawled_at="2024-01-01T00:00:00.000Z",
            score=120.0,
        )
        return SearchResponse(query=query, total=1, limit=limit, offset=offset, results=[result])

    async def fake_status(cfg, crawl_id):
        if crawl_id == "missing":
            raise DocumentNotFound("not_found")
        return {"crawlId": crawl_id, "status": "running"}

    async def fake_jobs(cfg, user):
        recorded["jobs"] = user
        return [{"crawlId": "1_abc", "submittedBy": user}]

    async def fake_page(cfg, url):
        if url.endswith("missing"):
            return None
        return {"url": url, "title": "Home"}

    async def fake_recrawl(cfg):
        return ["scheduled_1_abc"]

    monkeypatch.setattr(cli_module, "run_crawl", fake_crawl)
    monkeypatch.setattr(cli_module, "run_search", fake_search)
    monkeypatch.setattr(cli_module, "run_status", fake_status)
    monkeypatch.setattr(cli_module, "run_jobs", fake_jobs)
    monkeypatch.setattr(cli_module, "run_page", fake_page)
    monkeypatch.setattr(cli_module, "run_recrawl", fake_recrawl)
    return recorded


def test_version_option():
    runner = CliRunner()
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "Hugin" in result.output


def test_show_config_with_overrides(cfg_file):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "--limit", "5", "--allow-local", "config"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["max_pages"] == 5
    assert data["allow_local_hosts"] is True
    assert data["storage"]["backend"] == "memory"


def test_invalid_config_reports_error(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("max_pages: -3\n", encoding="utf-8")
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(bad), "config"])
    assert result.exit_code == 1
    assert "Ошибка загрузки конфигурации" in result.output


def test_crawl_prints_job(cfg_file, calls):
    runner = CliRunner()
    result = runner.invoke(cli, ["--config", str(cfg_file), "crawl", "http://site.ygg/", "--depth", "2", "--user", "bob"])
    assert result.exit_code == 0
    assert json.loads(result.output)["status"] == "completed"
    cfg, url, depth, user = calls["crawl"]
    assert (url, depth, user) == ("http://site.ygg/", 2, "bob")
    assert cfg.max_pages == 10


def test_crawl_failed_job_exit_code(cfg_file, monkeypatch):
    async def failed(cfg, url, depth, user):
        return {"crawlId": "x", "status": "failed", "error": "browser unavailable"}

    monkeypatch.setattr(cli_module, "run_crawl", failed)
    result = CliRunner().invoke(cli, ["--config", str(cfg_file), "crawl", "http://site.ygg/"])
    assert result.exit_code == 2
    assert json.loads(result.output)["error"] == "browser unavailable"


def test_crawl_rejected_url(cfg_file, monkeypatch):
    async def reject(cfg, url, depth, user):
        raise ValueError("Domain not allowed for crawling: example.com")

    monkeypatch.setattr(cli_module, "run_crawl", reject)
    result = CliRunner().invoke(cli, ["--config", str(cfg_file), "crawl", "http://example.com/"])
    assert result.exit_code == 1
    assert "Некорректный запрос" in result.output


def test_search_stdout(cfg_file, calls):
    result = CliRunner().invoke(
        cli, ["--config", str(cfg_file), "search", "home", "--domain", "site.ygg", "--limit", "5", "--offset", "1"]
    )
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["total"] == 1
    assert data["results"][0]["url"] == "http://site.ygg/"
    assert calls["search"] == ("home", "site.ygg", 5, 1)


def test_search_json_and_html_files(cfg_file, calls, tmp_path):
    json_out = tmp_path / "out" / "results.json"
    html_out = tmp_path / "out" / "results.html"
    result = CliRunner().invoke(
        cli, ["--config", str(cfg_file), "search", "home", "--json", str(json_out), "--html", str(html_out)]
    )
    assert result.exit_code == 0
    assert json.loads(json_out.read_text(encoding="utf-8"))["results"][0]["score"] == 120.0
    html = html_out.read_text(encoding="utf-8")
    assert "&lt;b&gt;Home&lt;/b&gt;" in html
    assert "welcome home" in html


def test_status_and_missing_job(cfg_file, calls):
    runner = CliRunner()
    ok = runner.invoke(cli, ["--config", str(cfg_file), "status", "1_abc"])
    assert ok.exit_code == 0
    assert json.loads(ok.output)["status"] == "running"

    missing = runner.invoke(cli, ["--config", str(cfg_file), "status", "missing"])
    assert missing.exit_code == 1
    assert "не найдена" in missing.output


def test_jobs_page_and_recrawl(cfg_file, calls):
    runner = CliRunner()
    jobs = runner.invoke(cli, ["--config", str(cfg_file), "jobs", "--user", "carol"])
    assert json.loads(jobs.output)["jobs"][0]["submittedBy"] == "carol"

    page = runner.invoke(cli, ["--config", str(cfg_file), "page", "http://site.ygg/"])
    assert json.loads(page.output)["title"] == "Home"
    missing = runner.invoke(cli, ["--config", str(cfg_file), "page", "http://site.ygg/missing"])
    assert missing.exit_code == 1

    recrawl = runner.invoke(cli, ["--config", str(cfg_file), "recrawl"])
    assert json.loads(recrawl.output) == {"crawlIds": ["scheduled_1_abc"]}
