"""Savings projections from the current daily run rate."""

from decimal import Decimal
from typing import Union

from llm_cache.models.cache import Projection
from llm_cache.utils.exceptions import ProjectionInputInvalid
from llm_cache.utils.formatting import to_decimal

DAYS_PER_MONTH = 30
DAYS_PER_YEAR = 365


class ProjectionEngine:
    """Extrapolates today's savings to a month and a year.

    The formula is purely multiplicative, so zero activity projects to zero.
    """

    def project(self, daily_cost_saved: Union[int, float, Decimal]) -> Projection:
        """Project monthly (x30) and yearly (x365) savings.

        Args:
            daily_cost_saved: USD saved so far today

        Returns:
            Projection with Decimal amounts

        Raises:
            ProjectionInputInvalid: If the input is negative, NaN or infinite
        """
        try:
            daily = to_decimal(daily_cost_saved)
        except ValueError as e:
            raise ProjectionInputInvalid(str(e)) from e

        if daily < 0:
            raise ProjectionInputInvalid(
                f"Daily cost saved cannot be negative: {daily_cost_saved}"
            )

        return Projection(
            current_daily_savings=daily,
            projected_monthly_savings=daily * DAYS_PER_MONTH,
            projected_yearly_savings=daily * DAYS_PER_YEAR,
        )
