from __future__ import annotations

import os
from typing import Any, Dict, Optional

from PIL import Image
from tqdm import tqdm

from newtonfractal.algebra.rooted import ComplexRootedPolynomial
from newtonfractal.config import config_roots
from newtonfractal.engine.kernel import NewtonSettings
from newtonfractal.engine.producer import FractalResult, NewtonProducer
from newtonfractal.engine.scheduler import TileScheduler, partition_rows
from newtonfractal.palette import colorize
from newtonfractal.util.logging_setup import get_logger


def _ensure_parent(path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)


def build_producer(cfg: Dict[str, Any]) -> NewtonProducer:
    rooted = ComplexRootedPolynomial(*config_roots(cfg))
    settings = NewtonSettings(
        convergence_threshold=float(cfg["convergence_threshold"]),
        root_threshold=float(cfg["root_threshold"]),
        max_iterations=int(cfg["max_iterations"]),
    )
    scheduler = TileScheduler(
        workers=cfg.get("workers"),
        jobs_per_worker=int(cfg["jobs_per_worker"]),
        failure_policy=str(cfg["failure_policy"]),
    )
    return NewtonProducer(rooted, settings=settings, scheduler=scheduler, owns_scheduler=True)


def save_image(img: Image.Image, path: str) -> str:
    _ensure_parent(path)
    img.save(path, format="PNG", optimize=True)
    return path


def render_fractal(
    *,
    cfg: Dict[str, Any],
    producer: NewtonProducer,
    request_id: Any = None,
    show_progress: bool = False,
) -> FractalResult:
    logger = get_logger()
    width = int(cfg["width"])
    height = int(cfg["height"])

    bar: Optional[tqdm] = None
    if show_progress:
        bands = partition_rows(height, producer.scheduler.band_count)
        bar = tqdm(total=len(bands), unit="band", desc="newton")

    try:
        result = producer.produce(
            cfg["re_min"], cfg["re_max"], cfg["im_min"], cfg["im_max"], width, height, request_id,
            progress=(lambda band: bar.update(1)) if bar is not None else None,
        )
    finally:
        if bar is not None:
            bar.close()

    img = colorize(result.indices, result.width, result.height, result.root_count_plus_one)
    path = save_image(img, str(cfg["output_image"]))
    logger.info("Saved %sx%s image -> %s (roots=%s)", width, height, path, result.root_count_plus_one - 1)
    return result
