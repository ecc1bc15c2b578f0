# File: tests/test_cli.py
import json

import pytest
from typer.testing import CliRunner

import catalog_crawler.cli as cli_module
from catalog_crawler import __version__
from catalog_crawler.cli import app
from catalog_crawler.models import PipelineReport, ProductRecord

runner = CliRunner()


@pytest.fixture()
def captured(monkeypatch):
    """Replace the pipeline with a stub that records the config it was given."""
    calls = {}

    async def fake_run_pipeline(config, urls, publish):
        calls.update(config=config, urls=urls, publish=publish)
        return PipelineReport(products=[ProductRecord(name="A")])

    monkeypatch.setattr(cli_module, "_run_pipeline", fake_run_pipeline)
    return calls


def test_version_option():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_list_sites():
    result = runner.invoke(app, ["list-sites"])
    assert result.exit_code == 0
    assert "enfold" in result.output
    assert "woocommerce" in result.output


def test_run_builds_config_from_options(captured):
    result = runner.invoke(
        app,
        [
            "run", "https://shop.example.com/shop/",
            "--site", "woocommerce",
            "--max-pages", "10",
            "--include", "product",
            "--include", "shop",
            "--no-publish",
            "--name", "chargers",
        ],
    )

    assert result.exit_code == 0, result.output
    config = captured["config"]
    assert config.start_url == "https://shop.example.com/shop/"
    assert config.site == "woocommerce"
    assert config.crawl.max_pages == 10
    assert config.crawl.include_paths == ["product", "shop"]
    assert config.output.name == "chargers"
    assert captured["publish"] is False
    assert captured["urls"] is None


def test_run_reads_url_list(captured, tmp_path):
    urls_file = tmp_path / "urls.json"
    urls_file.write_text(json.dumps(["https://x.com/p/1", "https://x.com/p/2"]), encoding="utf-8")

    result = runner.invoke(app, ["run", "--urls-file", str(urls_file), "--no-publish"])

    assert result.exit_code == 0, result.output
    assert captured["urls"] == ["https://x.com/p/1", "https://x.com/p/2"]


def test_run_rejects_bad_url_list(captured, tmp_path):
    urls_file = tmp_path / "urls.json"
    urls_file.write_text('{"url": "https://x.com"}', encoding="utf-8")

    result = runner.invoke(app, ["run", "--urls-file", str(urls_file)])

    assert result.exit_code == 1
    assert captured == {}


def test_run_without_input_fails():
    result = runner.invoke(app, ["run"])
    assert result.exit_code == 1


def test_run_level_failure_exits_1(monkeypatch):
    async def broken(config, urls, publish):
        raise RuntimeError("browser failed to launch")

    monkeypatch.setattr(cli_module, "_run_pipeline", broken)
    result = runner.invoke(app, ["run", "https://x.com/", "--no-publish"])

    assert result.exit_code == 1
    assert "browser failed to launch" in result.output


def test_interrupt_exits_130(monkeypatch):
    async def interrupted(config, urls, publish):
        raise KeyboardInterrupt

    monkeypatch.setattr(cli_module, "_run_pipeline", interrupted)
    result = runner.invoke(app, ["run", "https://x.com/", "--no-publish"])

    assert result.exit_code == 130


def test_unknown_site_is_reported():
    result = runner.invoke(app, ["run", "https://x.com/", "--site", "shopify", "--no-publish"])

    assert result.exit_code == 1
    assert "Unknown site" in result.output


def test_retry_failed_with_nothing_to_do(tmp_path):
    config_file = tmp_path / "catalog.toml"
    config_file.write_text(f'[output]\ndirectory = "{tmp_path.as_posix()}"\n', encoding="utf-8")

    result = runner.invoke(app, ["retry-failed", "--name", "empty", "--config", str(config_file)])

    assert result.exit_code == 0
    assert "No failed pages" in result.output
