"""Configuration parsing and app wiring."""

import pytest

from cutroom.config import ProductionConfig, _parse_sla_overrides, _parse_stage_order, config
from cutroom.models.workflow import DEFAULT_STAGE_ORDER, StageConfig


class TestWorkflowSettings:
    def test_stage_order_parsing(self):
        assert _parse_stage_order("briefing, production ,delivery") == ["BRIEFING", "PRODUCTION", "DELIVERY"]
        assert _parse_stage_order("") is None
        assert _parse_stage_order(" , ") is None

    def test_sla_override_parsing(self):
        assert _parse_sla_overrides("briefing=12,PRODUCTION=96") == {"BRIEFING": 12, "PRODUCTION": 96}
        assert _parse_sla_overrides(None) == {}

    def test_malformed_sla_override(self):
        with pytest.raises(ValueError):
            _parse_sla_overrides("BRIEFING:12")

    def test_settings_build_stage_config(self):
        cfg = StageConfig.from_settings(
            order=_parse_stage_order("BRIEFING,PRODUCTION,COMPLETED"),
            sla_overrides=_parse_sla_overrides("PRODUCTION=96"),
        )
        assert cfg.order == ("BRIEFING", "PRODUCTION", "COMPLETED")
        assert dict(cfg.sla_hours) == {"BRIEFING": 24, "PRODUCTION": 96, "COMPLETED": 0}

    def test_custom_stage_without_sla_rejected(self):
        with pytest.raises(ValueError):
            StageConfig.from_settings(order=["BRIEFING", "COLOR_GRADE"])


class TestAppWiring:
    def test_testing_app_uses_default_stages(self, app):
        assert app.testing
        assert app.extensions["cutroom"]["stage_config"].order == DEFAULT_STAGE_ORDER
        assert app.extensions["cutroom"]["scope_classifier"] is None

    def test_blueprints_registered(self, app):
        for name in ("projects", "workflow", "workflow_sla", "versions", "scope", "scope_ai", "health"):
            assert name in app.blueprints

    def test_production_requires_database_url(self, monkeypatch):
        monkeypatch.setattr(ProductionConfig, "SQLALCHEMY_DATABASE_URI", None)
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            config["production"]()

    def test_production_requires_secret_key(self, monkeypatch):
        monkeypatch.setattr(ProductionConfig, "SQLALCHEMY_DATABASE_URI", "postgresql://db/cutroom")
        monkeypatch.delenv("SECRET_KEY", raising=False)
        with pytest.raises(RuntimeError, match="SECRET_KEY"):
            config["production"]()
