# region Header
"""
run_session.py — interactive labeling shell (matplotlib window)

Requires:
  pip install numpy matplotlib scikit-learn shapely affine rasterio scikit-image

Mouse:
  left-drag         select paint           shift+drag   avoid paint
  alt+drag          erase paint
  wheel             brush size +/-
Keys:
  right / up        grow suggestion        left / down  shrink suggestion
  enter             commit as positive     space        commit as negative
  ctrl+z            undo                   backspace    clear suggestion
  [ / ]             score power -/+        0-9          brush size
  l                 toggle lock mode       n            fill NO_DATA under paint
  p                 probability map        s            save labels
"""
# endregion

# region Imports
import argparse
import logging
import matplotlib.pyplot as plt

from mlpaint.config import DEFAULT_GRID_STEP, SCORE_POWER_STEP, EngineConfig
from mlpaint.layer_files import load_layers, save_labels
from mlpaint.models import ContractViolation, Label, StrokeKind
from mlpaint.session import SuggestionSession
from mlpaint.synthetic import make_synthetic_scene
from viz import draw_session, show_probability
# endregion

LOGGER = logging.getLogger("run_session")


# region Shell
class PaintShell:
    def __init__(self, session, image_path=None):
        self.session = session
        self.image_path = image_path
        self.dragging = None
        self.fig, self.ax = plt.subplots(figsize=(9, 9))
        c = self.fig.canvas
        c.mpl_connect("button_press_event", self.on_press)
        c.mpl_connect("motion_notify_event", self.on_motion)
        c.mpl_connect("button_release_event", self.on_release)
        c.mpl_connect("key_press_event", self.on_key)
        c.mpl_connect("scroll_event", self.on_scroll)
        self.redraw()

    def redraw(self, title=None):
        draw_session(self.ax, self.session, title=title)
        self.fig.canvas.draw_idle()

    # region Mouse
    def _kind(self, event):
        key = event.key or ""
        if "alt" in key:
            return StrokeKind.ERASE
        if "shift" in key:
            return StrokeKind.NEGATIVE
        return StrokeKind.POSITIVE

    def on_press(self, event):
        if event.button != 1 or event.inaxes is not self.ax or event.xdata is None:
            return
        self.dragging = self._kind(event)
        self.session.paint(event.xdata, event.ydata, self.dragging)
        self.redraw()

    def on_motion(self, event):
        if self.dragging is None or event.inaxes is not self.ax or event.xdata is None:
            return
        self.session.paint(event.xdata, event.ydata, self.dragging)
        self.redraw()

    def on_release(self, event):
        if self.dragging is None:
            return
        self.dragging = None
        live = self.session.release()
        self.redraw(None if live else "paint more select area to get a suggestion")

    def on_scroll(self, event):
        r = self.session.brush.multiply(1.25 if event.button == "up" else 0.8)
        self.redraw(f"brush radius {r:.1f}")
    # endregion

    # region Keys
    def on_key(self, event):
        key = event.key
        s = self.session
        try:
            if key in ("right", "up"):
                s.grow()
            elif key in ("left", "down"):
                s.shrink()
            elif key == "enter":
                s.commit(Label.POSITIVE)
            elif key == " ":
                s.commit(Label.NEGATIVE)
            elif key == "ctrl+z":
                s.undo()
            elif key == "backspace":
                s.clear()
            elif key == "[":
                s.adjust_score_power(-SCORE_POWER_STEP)
            elif key == "]":
                s.adjust_score_power(SCORE_POWER_STEP)
            elif key is not None and key.isdigit():
                s.brush.set_digit(int(key))
                LOGGER.info("brush radius %.1f", s.brush.radius)
            elif key == "l":
                s.set_lock_mode(not s.lock_mode)
            elif key == "n":
                s.fill_no_data()
            elif key == "p":
                show_probability(s)
            elif key == "s":
                if self.image_path is None:
                    LOGGER.info("Synthetic scene; nothing to save")
                else:
                    save_labels(s.layers.labels, self.image_path)
            else:
                return
        except ContractViolation as e:
            self.redraw(str(e))
            return
        self.redraw()
    # endregion
# endregion


# region Main
def main(argv=None):
    ap = argparse.ArgumentParser(description="Interactive suggestion-based labeling")
    ap.add_argument("files", nargs="*", help="*_RGB image, optional *_labels and auxiliary rasters")
    ap.add_argument("--synthetic", action="store_true")
    ap.add_argument("--seed", type=int, default=0)
    ap.add_argument("--grid-step", type=int, default=DEFAULT_GRID_STEP)
    ap.add_argument("--no-lock", action="store_true", help="allow relabeling labeled pixels")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # the shell owns these keys
    for name in list(plt.rcParams):
        if name.startswith("keymap."):
            plt.rcParams[name] = []

    image_path = None
    if args.synthetic or not args.files:
        layers = make_synthetic_scene(512, 512, seed=args.seed).layers
    else:
        layers = load_layers(args.files)
        image_path = next((f for f in args.files if "_RGB" in f), args.files[0])

    config = EngineConfig(grid_step=args.grid_step, lock_mode=not args.no_lock)
    with SuggestionSession(layers, config) as session:
        PaintShell(session, image_path)
        LOGGER.info("Paint with the left mouse button; see run_session.py for keys")
        plt.show(block=True)


if __name__ == "__main__":
    main()
# endregion
