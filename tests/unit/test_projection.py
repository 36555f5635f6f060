"""Tests for savings projections and cost estimates."""

from decimal import Decimal

import pytest

from llm_cache.services.pricing import DEFAULT_MODEL, estimate_cost
from llm_cache.services.projection import ProjectionEngine
from llm_cache.utils.exceptions import CacheLayerError, ProjectionInputInvalid
from llm_cache.utils.formatting import format_cost


@pytest.fixture
def engine():
    return ProjectionEngine()


class TestProjectionEngine:
    """Tests for ProjectionEngine.project."""

    def test_daily_twelve_dollars(self, engine):
        projection = engine.project(Decimal("12.00"))

        assert projection.projected_monthly_savings == Decimal("360.00")
        assert projection.projected_yearly_savings == Decimal("4380.00")
        assert format_cost(projection.projected_monthly_savings) == "$360.00"

    def test_zero_activity_projects_zero(self, engine):
        projection = engine.project(0)

        assert projection.current_daily_savings == 0
        assert projection.projected_monthly_savings == 0
        assert projection.projected_yearly_savings == 0

    def test_float_input(self, engine):
        projection = engine.project(12.5)

        assert projection.projected_monthly_savings == Decimal("375.0")
        assert projection.projected_yearly_savings == Decimal("4562.5")

    def test_negative_input_raises(self, engine):
        with pytest.raises(ProjectionInputInvalid):
            engine.project(Decimal("-0.01"))

    @pytest.mark.parametrize("value", [float("nan"), float("inf")])
    def test_non_finite_input_raises(self, engine, value):
        with pytest.raises(ProjectionInputInvalid):
            engine.project(value)

    def test_error_is_cache_layer_error(self, engine):
        with pytest.raises(CacheLayerError):
            engine.project(-1)


class TestEstimateCost:
    """Tests for estimate_cost."""

    def test_default_model_split(self):
        assert estimate_cost(1000) == Decimal("0.000285")

    def test_gpt_4o(self):
        assert estimate_cost(2000, "gpt-4o") == Decimal("0.0095")

    def test_embedding_has_no_output_share(self):
        assert estimate_cost(1000, "text-embedding-3-large") == Decimal("0.000091")

    def test_speech_is_priced_per_character(self):
        assert estimate_cost(2000, "tts-1") == Decimal("0.030")

    def test_unknown_model_uses_default(self):
        assert estimate_cost(1000, "mystery-model") == estimate_cost(1000, DEFAULT_MODEL)

    @pytest.mark.parametrize("tokens", [0, -10])
    def test_no_tokens_no_cost(self, tokens):
        assert estimate_cost(tokens) == Decimal("0")
