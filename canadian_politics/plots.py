"""Charts for the two output tables: age histogram and poll trend lines."""

from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402
from loguru import logger  # noqa: E402

from canadian_politics.metrics import summarize_ages  # noqa: E402

PARTY_COLOURS = {
    "Conservateur": "#6495ED",
    "Libéral": "#EA6D6A",
    "NPD": "#F4A460",
    "Bloc Québécois": "#87CEFA",
    "Verts": "#99C955",
}
FALLBACK_COLOUR = "#7F7F7F"
BIN_WIDTH = 5


def plot_age_histogram(frame: pd.DataFrame, path: Path, title: str = "Âge des premiers ministres canadiens à leur entrée en fonction") -> Path:
    """Histogram of age at start in 5-year bins, with mean, youngest and oldest marked.

    Args:
        frame: Derived tenure table (needs name and age_at_start_years)
        path: Output image file

    Returns:
        path
    """
    ages = frame["age_at_start_years"].dropna()
    if ages.empty:
        raise ValueError("No ages to plot")
    summary = summarize_ages(frame)

    low = BIN_WIDTH * np.floor(ages.min() / BIN_WIDTH)
    high = BIN_WIDTH * np.ceil(ages.max() / BIN_WIDTH) + BIN_WIDTH
    bins = np.arange(low, high, BIN_WIDTH)

    fig, ax = plt.subplots(figsize=(10, 7))
    counts, _, _ = ax.hist(ages, bins=bins, color="#B84A55", edgecolor="#3A3A3A", alpha=0.9)
    top = counts.max() if len(counts) else 1

    mean_age = summary["mean_age_at_start"]
    ax.axvline(mean_age, color="#3A3A3A", linestyle="--", linewidth=1)
    ax.annotate(f"Moyenne: {mean_age:.1f} ans", xy=(mean_age, top * 1.05), ha="center",
                bbox={"boxstyle": "round", "fc": "white", "ec": "#3A3A3A"})

    for label, (name, age) in (("Plus jeune", summary["youngest"]), ("Plus vieux", summary["oldest"])):
        ax.axvline(age, color="#CF0E20", linestyle=":", linewidth=1.5)
        ax.annotate(f"{label}:\n{name}\n{age:.1f} ans", xy=(age, top * 0.3), ha="center",
                    color="white", bbox={"boxstyle": "round", "fc": "#CF0E20", "ec": "#CF0E20"})

    ax.set_title(title, fontweight="bold")
    ax.set_xlabel("Âge au début du mandat (années)")
    ax.set_ylabel("Fréquence")
    ax.set_ylim(0, top * 1.2)
    ax.set_xticks(bins)
    ax.grid(axis="y", color="#E0E0E0")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=150, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    logger.info(f"Saved age histogram to {path}")
    return path


def plot_poll_trends(long_frame: pd.DataFrame, path: Path, title: str = "Appui des partis canadiens dans les sondages") -> Path:
    """One line per party, legend in the table's display order, y axis 0-50%.

    Args:
        long_frame: Long poll table (date, category, value)
        path: Output image file

    Returns:
        path
    """
    data = long_frame.dropna(subset=["date", "value"])
    if data.empty:
        raise ValueError("No poll values to plot")

    if isinstance(data["category"].dtype, pd.CategoricalDtype):
        categories = list(data["category"].cat.categories)
    else:
        categories = list(dict.fromkeys(data["category"]))

    fig, ax = plt.subplots(figsize=(12, 8))
    for category in categories:
        series = data[data["category"] == category].sort_values("date")
        if series.empty:
            continue
        ax.plot(series["date"], series["value"], linewidth=1.5, label=category,
                color=PARTY_COLOURS.get(category, FALLBACK_COLOUR))

    ax.set_ylim(0, max(50, float(data["value"].max()) + 5))
    ax.set_title(title)
    ax.set_xlabel("Date")
    ax.set_ylabel("(%)")
    ax.legend(loc="upper left")
    ax.grid(color="#E0E0E0")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=150, bbox_inches="tight", facecolor="white")
    plt.close(fig)
    logger.info(f"Saved poll trends to {path}")
    return path
