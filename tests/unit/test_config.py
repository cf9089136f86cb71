"""Unit tests for Settings and the YAML config loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from livekb.config.loader import _deep_merge, load_config
from livekb.config.settings import Settings


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        settings = Settings(_env_file=None)

        assert settings.chunk_size == 1000
        assert settings.chunk_overlap == 200
        assert settings.embedding_batch_size == 90
        assert settings.embedding_batch_delay == pytest.approx(0.1)
        assert settings.similarity_threshold == pytest.approx(0.7)
        assert settings.query_max_attempts == 3
        assert settings.query_timeout_seconds == pytest.approx(20.0)

    def test_env_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHUNK_SIZE", "800")
        monkeypatch.setenv("SIMILARITY_THRESHOLD", "0.5")

        settings = Settings(_env_file=None)

        assert settings.chunk_size == 800
        assert settings.similarity_threshold == pytest.approx(0.5)

    @pytest.mark.parametrize(
        ("choice", "key", "expected"),
        [
            ("auto", "sk-live", "openai"),
            ("auto", "", "fastembed"),
            ("FastEmbed", "sk-live", "fastembed"),
            ("openai", "", "openai"),
        ],
    )
    def test_resolve_embedding_provider(self, choice: str, key: str, expected: str) -> None:
        settings = Settings(_env_file=None, embedding_provider=choice, openai_api_key=key)
        assert settings.resolve_embedding_provider() == expected


class TestLoadConfig:
    def test_yaml_values_merged_with_settings(self, tmp_path: Path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            "app:\n  name: livekb\n  version: 9.9.9\nparsing:\n  text_extensions: [.txt]\n",
            encoding="utf-8",
        )
        settings = Settings(_env_file=None, chunk_size=500, openai_api_key="")

        config = load_config(str(config_file), settings=settings)

        assert config["app"]["name"] == "livekb"
        assert config["app"]["version"] == "9.9.9"
        assert config["app"]["port"] == settings.app_port
        assert config["chunking"]["chunk_size"] == 500
        assert config["embedding"]["provider"] == "fastembed"
        assert config["parsing"]["text_extensions"] == [".txt"]

    def test_missing_yaml_uses_settings_only(self, tmp_path: Path) -> None:
        config = load_config(str(tmp_path / "absent.yaml"), settings=Settings(_env_file=None))
        assert config["retrieval"]["max_contexts"] == 5

    def test_repo_config_file_parses(self, project_root: Path) -> None:
        config = load_config(str(project_root / "config" / "config.yaml"), settings=Settings(_env_file=None))
        assert ".md" in config["parsing"]["text_extensions"]
        assert config["api"]["cors_origins"] == ["*"]


def test_deep_merge_nested() -> None:
    base = {"a": {"b": 1, "c": 2}, "d": 3}
    _deep_merge(base, {"a": {"b": 10}, "e": 5})
    assert base == {"a": {"b": 10, "c": 2}, "d": 3, "e": 5}
