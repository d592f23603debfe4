import numpy as np
from PIL import Image


def build_palette(size: int) -> np.ndarray:
    """
    Returns a (size, 3) uint8 table. Entry 0 ("no root") is black; entries
    1..size-1 walk once around a sine-based hue wheel so that neighbouring
    root indices get clearly different colours.
    """
    if size < 1:
        raise ValueError(f"Palette size must be >= 1, got {size}")
    palette = np.zeros((size, 3), dtype=np.uint8)
    n = size - 1
    for k in range(1, size):
        t = (k - 1) / n
        r = int(255 * (0.5 + 0.5 * np.sin(2 * np.pi * t)))
        g = int(255 * (0.5 + 0.5 * np.sin(2 * np.pi * t + 2 * np.pi / 3)))
        b = int(255 * (0.5 + 0.5 * np.sin(2 * np.pi * t + 4 * np.pi / 3)))
        palette[k] = (r, g, b)
    return palette


def colorize(indices: np.ndarray, width: int, height: int, palette_size: int) -> Image.Image:
    if indices.size != width * height:
        raise ValueError(f"Buffer holds {indices.size} values, expected {width}x{height}")
    palette = build_palette(palette_size)
    if indices.size and int(indices.max()) >= palette_size:
        raise ValueError(f"Index {int(indices.max())} is outside a palette of {palette_size} colours")
    rgb = palette[indices.reshape(height, width)]
    return Image.fromarray(rgb)
