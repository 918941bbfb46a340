# layer_files.py — read base/label/auxiliary rasters by file-name convention, write labels back

# region Imports
from __future__ import annotations
from pathlib import Path
from typing import Dict, Iterable, Optional, Union
import logging
import numpy as np
import rasterio

from .models import ExtentMismatchError, Layers
# endregion

LOGGER = logging.getLogger(__name__)

PathLike = Union[str, Path]
RGB_SUFFIX = "_RGB"
LABELS_SUFFIX = "_labels"


# region Reading
def _read_raster(path: Path, max_bands: int = 1) -> np.ndarray:
    with rasterio.open(path) as ds:
        n = min(ds.count, max_bands)
        arr = ds.read(list(range(1, n + 1)))
    # rasterio is band-first; layers are [y, x, band]
    return arr[0] if n == 1 else np.moveaxis(arr, 0, -1)


def classify_paths(paths: Iterable[PathLike]) -> Dict[str, object]:
    """Sort files into base image, label layer and auxiliary layers by stem suffix."""
    image: Optional[Path] = None
    labels: Optional[Path] = None
    aux: Dict[str, Path] = {}
    for p in map(Path, paths):
        if p.stem.endswith(RGB_SUFFIX):
            image = p
        elif p.stem.endswith(LABELS_SUFFIX):
            labels = p
        else:
            aux[p.stem] = p
    if image is None and len(aux) == 1:
        # a lone unlabeled raster doubles as the base image
        image = aux.pop(next(iter(aux)))
    if image is None:
        raise ValueError(f"Need an image named *{RGB_SUFFIX}.* (or a single raster); got {sorted(aux)}")
    return {"image": image, "labels": labels, "aux": aux}


def load_layers(paths: Iterable[PathLike]) -> Layers:
    found = classify_paths(paths)
    image = _read_raster(found["image"], max_bands=3)
    if image.dtype != np.uint8:
        lo, hi = float(np.nanmin(image)), float(np.nanmax(image))
        image = ((image - lo) / max(hi - lo, 1e-9) * 255).astype(np.uint8)
    H, W = image.shape[:2]

    labels = None
    if found["labels"] is not None:
        labels = _read_raster(found["labels"]).astype(np.uint8)

    aux = {}
    for name, p in found["aux"].items():
        layer = _read_raster(p).astype(np.float32)
        if layer.shape != (H, W):
            raise ExtentMismatchError(
                f"Layer {p.name} size {layer.shape[::-1]} does not match the image size {(W, H)}."
            )
        aux[name] = layer
    LOGGER.info("Loaded %s (%dx%d) with %d auxiliary layers%s",
                found["image"].name, W, H, len(aux), ", existing labels" if labels is not None else "")
    return Layers(image=image, labels=labels, aux=aux)
# endregion


# region Writing
def labels_path_for(image_path: PathLike) -> Path:
    p = Path(image_path)
    stem = p.stem
    if stem.endswith(RGB_SUFFIX):
        stem = stem[: -len(RGB_SUFFIX)]
    return p.with_name(stem + LABELS_SUFFIX + ".tif")


def save_labels(labels: np.ndarray, image_path: PathLike, out_path: Optional[PathLike] = None) -> Path:
    """Write the label layer as a single-band uint8 GeoTIFF, georeferenced like the image when possible."""
    out = Path(out_path) if out_path is not None else labels_path_for(image_path)
    H, W = labels.shape
    profile = {"driver": "GTiff", "height": H, "width": W, "count": 1, "dtype": "uint8"}
    src = Path(image_path)
    if src.exists():
        with rasterio.open(src) as ds:
            if (ds.height, ds.width) == (H, W):
                profile.update(crs=ds.crs, transform=ds.transform)
    with rasterio.open(out, "w", **profile) as dst:
        dst.write(labels.astype(np.uint8), 1)
    LOGGER.info("Saved labels to %s", out)
    return out
# endregion
