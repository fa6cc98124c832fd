# greentrack/visualize/plot.py
"""
Plotting routines for greentrack
"""

from __future__ import annotations

import matplotlib.pyplot as plt

from greentrack.models import ActivityEvent, ActivityLabel, GeoCoordinate

LABEL_COLOURS = {
    ActivityLabel.WALKING: "tab:green",
    ActivityLabel.CYCLING: "tab:olive",
    ActivityLabel.TWO_WHEELER: "tab:orange",
    ActivityLabel.CAR: "tab:red",
    ActivityLabel.PUBLIC_TRANSPORT: "tab:blue",
}


def plot_events(fixes: list[GeoCoordinate], events: list[ActivityEvent], *, title: str = "", out_path=None):
    """Track in grey, emitted events coloured by activity label."""
    fig, ax = plt.subplots(figsize=(8, 6))
    ax.plot([f.longitude for f in fixes], [f.latitude for f in fixes], color="0.8", linewidth=1)

    for label, colour in LABEL_COLOURS.items():
        pts = [e.location for e in events if e.label is label and e.location is not None]
        if not pts:
            continue
        ax.scatter([p.longitude for p in pts], [p.latitude for p in pts], s=12, c=colour, label=label.value)

    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    ax.set_title(title or "Track coloured by detected activity")
    if events:
        ax.legend()

    if out_path is not None:
        fig.savefig(out_path, dpi=120)
        plt.close(fig)
    else:
        plt.show()
    return fig
