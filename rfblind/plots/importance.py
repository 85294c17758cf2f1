import matplotlib.pyplot as plt
import seaborn as sns

from rfblind.algorithms.rf_blind import BlindReport


def importance_plot(
    report: BlindReport,
    top_n: int = 20,
    title: str | None = None,
):
    # 1) Mean Gini importance over all forests, best first
    ranking = report.mean_importance().head(top_n)
    n_forest = len(report.importance)

    # 2) Colors: one shade per rank
    colors = sns.color_palette("crest", n_colors=len(ranking))

    # 3) Plot
    fig, ax = plt.subplots(figsize=(8, max(3, 0.35 * len(ranking) + 1)))

    # 🔹 Set figure and axes background
    fig.patch.set_facecolor("#f8fafc")
    ax.set_facecolor("#f8fafc")

    ax.barh(
        ranking["Feature"].astype(str),
        ranking["Importance"],
        xerr=ranking["SD"].fillna(0) if n_forest > 1 else None,
        color=colors,
        edgecolor="gray",
        alpha=0.9,
    )
    ax.invert_yaxis()
    ax.set_xlabel("Mean decrease in Gini impurity")
    ax.set_ylabel("Feature")

    if title:
        ax.set_title(title)
    else:
        ax.set_title(f"Top {len(ranking)} features ({n_forest} forests)")

    plt.tight_layout()
    return fig
