"""Linear regression of time in office on age at taking office."""

from dataclasses import dataclass

from loguru import logger
import pandas as pd
from sklearn.linear_model import LinearRegression

MIN_OBSERVATIONS = 3


@dataclass(frozen=True)
class RegressionSummary:
    slope: float
    intercept: float
    r_squared: float
    n_observations: int

    def describe(self) -> str:
        direction = "shorter" if self.slope < 0 else "longer"
        return (
            f"duration_years = {self.intercept:.3f} + {self.slope:.4f} * age_at_start_years "
            f"(R² = {self.r_squared:.3f}, n = {self.n_observations}); "
            f"each extra year of age goes with {abs(self.slope):.3f} {direction} years in office"
        )


def fit_tenure_regression(
    frame: pd.DataFrame,
    target: str = "duration_years",
    feature: str = "age_at_start_years",
) -> RegressionSummary:
    """
    Fit target ~ feature by ordinary least squares.

    Rows where either column is missing are excluded, never filled.

    Raises:
        ValueError: if fewer than three complete rows remain
    """
    usable = frame[[feature, target]].dropna()
    dropped = len(frame) - len(usable)
    if dropped:
        logger.info(f"Regression excludes {dropped} rows with missing {feature} or {target}")
    if len(usable) < MIN_OBSERVATIONS:
        raise ValueError(
            f"Need at least {MIN_OBSERVATIONS} complete rows for a regression, got {len(usable)}"
        )

    X = usable[[feature]].to_numpy(dtype=float)
    y = usable[target].to_numpy(dtype=float)
    model = LinearRegression().fit(X, y)

    summary = RegressionSummary(
        slope=float(model.coef_[0]),
        intercept=float(model.intercept_),
        r_squared=float(model.score(X, y)),
        n_observations=int(len(usable)),
    )
    logger.info(summary.describe())
    return summary
