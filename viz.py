# region Imports
import numpy as np
import matplotlib.pyplot as plt
from matplotlib.colors import to_rgba
from matplotlib.patches import Patch
from matplotlib.lines import Line2D

from mlpaint.models import Label, Stroke
# endregion

# region Color Tables
LABEL_COLORS = {
    Label.NEGATIVE: "red",
    Label.POSITIVE: "lime",
    Label.CLASS_3: "royalblue",
    Label.CLASS_4: "orange",
    Label.CLASS_5: "magenta",
    Label.CLASS_6: "yellow",
    Label.CLASS_7: "cyan",
    Label.CLASS_8: "saddlebrown",
    Label.CLASS_9: "pink",
    Label.CLASS_10: "olive",
    Label.CLASS_11: "navy",
    Label.CLASS_12: "teal",
    Label.CLASS_13: "gold",
    Label.CLASS_14: "purple",
    Label.NO_DATA: "black",
}
STROKE_COLORS = {Stroke.FRESH_POSITIVE: "springgreen", Stroke.FRESH_NEGATIVE: "orangered"}
SUGGESTION_COLOR = "cyan"


def _rgba_table(colors, alpha):
    lut = np.zeros((256, 4), dtype=np.float32)
    for code, color in colors.items():
        lut[int(code)] = to_rgba(color, alpha)
    return lut


def label_overlay(labels, alpha=0.45):
    """(H, W, 4) float RGBA image of the label layer; UNLABELED is transparent."""
    return _rgba_table(LABEL_COLORS, alpha)[labels]


def stroke_overlay(codes, alpha=0.6):
    return _rgba_table(STROKE_COLORS, alpha)[codes]
# endregion

# region Visualization Function
def draw_session(ax, session, title=None, show_frontier=True):
    """
    Render base image, committed labels, fresh paint and the current
    suggestion onto ``ax``. Safe to call repeatedly for redraws.
    """
    ax.clear()

    # region Base Image
    ax.imshow(session.layers.image, origin="upper", interpolation="nearest")
    ax.imshow(label_overlay(session.layers.labels), origin="upper", interpolation="nearest")
    # endregion

    # region Stroke Overlay
    if not session.strokes.pending_reset:
        ax.imshow(stroke_overlay(session.strokes.codes), origin="upper", interpolation="nearest")
    # endregion

    # region Suggestion Overlay
    if session.has_suggestion:
        mask = session.suggestion_mask()
        if mask.any():
            ax.contour(mask.astype(np.float32), levels=[0.5], colors=SUGGESTION_COLOR, linewidths=1.5)
        if show_frontier:
            pts = session.engine.frontier()
            if pts:
                xs, ys = zip(*pts)
                ax.scatter(xs, ys, s=2, c="white", alpha=0.5, linewidths=0)
    # endregion

    # region Legend / Layout
    legend_elements = [
        Patch(facecolor=STROKE_COLORS[Stroke.FRESH_POSITIVE], label="Select paint"),
        Patch(facecolor=STROKE_COLORS[Stroke.FRESH_NEGATIVE], label="Avoid paint"),
        Line2D([0], [0], color=SUGGESTION_COLOR, lw=2, label="Suggestion"),
        Patch(facecolor=LABEL_COLORS[Label.POSITIVE], label="Labeled positive"),
        Patch(facecolor=LABEL_COLORS[Label.NO_DATA], label="No data"),
    ]
    ax.legend(handles=legend_elements, loc="lower right", fontsize=8, framealpha=0.85)
    if title is None:
        st = session.state()
        title = (f"ring {st['ring_index']}/{max(st['rings'] - 1, 0)}  "
                 f"power {st['score_power']:.2f}  lock {'on' if st['lock_mode'] else 'off'}")
    ax.set_title(title)
    ax.set_axis_off()
    # endregion


def show_probability(session, title="P(select)"):
    """Whole-image classifier output as a heat map."""
    prob = session.probability_map()
    fig, ax = plt.subplots(figsize=(8, 8))
    heat = ax.imshow(prob, origin="upper", cmap="viridis", vmin=0.0, vmax=1.0)
    cbar = fig.colorbar(heat, ax=ax, fraction=0.046, pad=0.04)
    cbar.set_label("classifier P(positive)")
    ax.set_title(title)
    ax.set_axis_off()
    plt.tight_layout()
    plt.show()
# endregion
