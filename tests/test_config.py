"""
Tests for configuration loading.
"""

from mdxref.config import Config


class TestConfig:

    def test_defaults(self, monkeypatch):
        for key in ("MDX_TAGGABLE_NAMES", "MDX_LINK_CITATIONS", "MDX_REQUEST_TIMEOUT", "LOG_LEVEL"):
            monkeypatch.delenv(key, raising=False)
        settings = Config()

        assert settings.TAGGABLE_NAMES == frozenset({"eq"})
        assert settings.LINK_CITATIONS is False
        assert settings.CITATION_ANCHOR_PREFIX == "cite-"
        assert settings.REQUEST_TIMEOUT == 30.0

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("MDX_TAGGABLE_NAMES", "EQ, fig ,")
        monkeypatch.setenv("MDX_LINK_CITATIONS", "yes")
        monkeypatch.setenv("MDX_REQUEST_TIMEOUT", "2.5")
        settings = Config()

        assert settings.TAGGABLE_NAMES == frozenset({"eq", "fig"})
        assert settings.LINK_CITATIONS is True
        assert settings.REQUEST_TIMEOUT == 2.5

    def test_invalid_values_reset(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "chatty")
        monkeypatch.setenv("MDX_REQUEST_TIMEOUT", "-1")
        monkeypatch.setenv("LOG_RETENTION_COUNT", "zero")
        settings = Config()

        assert settings.LOG_LEVEL == "INFO"
        assert settings.REQUEST_TIMEOUT == 30.0
        assert settings.LOG_RETENTION_COUNT == 5

    def test_to_dict(self, monkeypatch):
        monkeypatch.setenv("MDX_TAGGABLE_NAMES", "fig,eq")

        assert Config().to_dict()["TAGGABLE_NAMES"] == ["eq", "fig"]
