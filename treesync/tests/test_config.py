import os

import pytest

from treesync.config import LoggingConfig, PipelineConfig, SourceConfig, TreeSyncConfig
from treesync.exceptions import ConfigurationException


def test_root_folder_is_required():
    with pytest.raises(ConfigurationException):
        SourceConfig()


def test_root_folder_missing_surfaces_on_access():
    config = TreeSyncConfig()
    with pytest.raises(ConfigurationException):
        config.source


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SOURCE_ROOT_FOLDER", "folder-123")
    monkeypatch.setenv("SOURCE_PROVIDER", "local")
    monkeypatch.setenv("PIPELINE_CONCURRENCY", "5")
    monkeypatch.setenv("PIPELINE_GEOJSON_PATH", "maps/trees.json")

    config = TreeSyncConfig()

    assert config.source.root_folder == "folder-123"
    assert config.source.provider == "local"
    assert config.pipeline.concurrency == 5
    assert config.pipeline.geojson_path == "maps/trees.json"


def test_dotenv_file_is_loaded(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("SOURCE_ROOT_FOLDER=from-dotenv\n")
    monkeypatch.delenv("SOURCE_ROOT_FOLDER", raising=False)
    try:
        assert SourceConfig().root_folder == "from-dotenv"
    finally:
        os.environ.pop("SOURCE_ROOT_FOLDER", None)


def test_pipeline_defaults():
    config = PipelineConfig()
    cpus = os.cpu_count() or 1
    assert config.concurrency == cpus * 3
    assert config.cpu_workers == cpus
    assert config.preview_width == 600
    assert config.webp_quality == 75
    assert config.geojson_path == "trees.json"
    assert config.image_cache_control == "public, max-age=3600"
    assert config.geojson_cache_control == "no-cache"


@pytest.mark.parametrize("concurrency", [0, -3])
def test_concurrency_must_be_positive(concurrency):
    with pytest.raises(ConfigurationException):
        PipelineConfig(concurrency=concurrency)


def test_log_level_is_validated():
    assert LoggingConfig(level="debug").level == "DEBUG"
    with pytest.raises(ConfigurationException):
        LoggingConfig(level="chatty")


def test_sections_are_cached():
    config = TreeSyncConfig(source={"root_folder": "abc"})
    assert config.source is config.source
