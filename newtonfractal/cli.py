from __future__ import annotations

import argparse
import logging
import subprocess
import sys
from typing import Any, Dict, Optional

from newtonfractal.algebra.rooted import ComplexRootedPolynomial
from newtonfractal.config import config_roots, load_config, normalise_config
from newtonfractal.errors import FractalError
from newtonfractal.pipeline import build_producer, render_fractal
from newtonfractal.util.logging_setup import configure_root_logging, create_log_queue, get_logger, route_through_queue, start_queue_listener
from newtonfractal.util.manifest import build_manifest, write_manifest

_OVERRIDES = {
    "width": "width",
    "height": "height",
    "re_min": "re_min",
    "re_max": "re_max",
    "im_min": "im_min",
    "im_max": "im_max",
    "max_iterations": "max_iterations",
    "workers": "workers",
    "jobs_per_worker": "jobs_per_worker",
    "failure_policy": "failure_policy",
    "output": "output_image",
}


def _git_commit() -> Optional[str]:
    try:
        r = subprocess.run(["git", "rev-parse", "HEAD"], capture_output=True, text=True, check=True)
        return r.stdout.strip()
    except (OSError, subprocess.CalledProcessError):
        return None


def _add_root_argument(p: argparse.ArgumentParser) -> None:
    p.add_argument("--root", dest="roots", action="append", default=None, metavar="Z",
                   help="Polynomial root such as '1', '-i', '0.5 - i2'. Repeat for each root (at least two).")


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="newtonfractal", description="Newton-Raphson fractal generator for polynomials given by their roots.")
    p.add_argument("--config", type=str, default=None, help="Path to config JSON. If omitted, built-in defaults are used.")
    p.add_argument("--log-level", type=str, default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Log level.")
    p.add_argument("--log-file", type=str, default="newtonfractal.log", help="Log file path (rotating). Set empty to disable file logging.")
    sub = p.add_subparsers(dest="cmd", required=True)

    r = sub.add_parser("render", help="Classify the viewport and write a false-colour PNG.")
    _add_root_argument(r)
    r.add_argument("--width", type=int, default=None)
    r.add_argument("--height", type=int, default=None)
    r.add_argument("--re-min", type=float, default=None)
    r.add_argument("--re-max", type=float, default=None)
    r.add_argument("--im-min", type=float, default=None)
    r.add_argument("--im-max", type=float, default=None)
    r.add_argument("--max-iterations", type=int, default=None)
    r.add_argument("--workers", type=int, default=None, help="Worker threads (defaults to the CPU count).")
    r.add_argument("--jobs-per-worker", type=int, default=None, help="Bands per worker thread.")
    r.add_argument("--failure-policy", type=str, default=None, choices=["swallow", "propagate"],
                   help="What to do when a band fails: keep default rows or fail the request.")
    r.add_argument("--output", type=str, default=None, help="Output PNG (defaults to config.output_image).")
    r.add_argument("--manifest", type=str, default="artifacts/run.json", help="Run manifest path. Set empty to skip.")
    r.add_argument("--progress", action="store_true", help="Show a progress bar over completed bands.")

    poly = sub.add_parser("polynomial", help="Print the coefficient form and derivative for the given roots.")
    _add_root_argument(poly)

    return p


def _apply_overrides(cfg: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    out = dict(cfg)
    if getattr(args, "roots", None):
        out["roots"] = list(args.roots)
    for attr, key in _OVERRIDES.items():
        value = getattr(args, attr, None)
        if value is not None:
            out[key] = value
    return out


def main(argv: Optional[list] = None) -> int:
    args = build_arg_parser().parse_args(argv)

    log_level = getattr(logging, args.log_level.upper(), logging.INFO)
    log_file = args.log_file if args.log_file and args.log_file.strip() else None
    listener_logger = configure_root_logging(level=log_level, console=True, log_file=log_file)

    queue = create_log_queue()
    listener = start_queue_listener(queue, listener_logger)
    route_through_queue(queue, level=log_level)

    logger = get_logger()

    try:
        cfg = normalise_config(_apply_overrides(load_config(args.config), args))

        if args.cmd == "render":
            with build_producer(cfg) as producer:
                result = render_fractal(cfg=cfg, producer=producer, request_id=1, show_progress=args.progress)
                engine_info = producer.describe()

            if args.manifest and args.manifest.strip():
                manifest = build_manifest(
                    config=cfg,
                    engine_info=engine_info,
                    result_info={
                        "width": result.width,
                        "height": result.height,
                        "root_count_plus_one": result.root_count_plus_one,
                        "failed_bands": [str(b) for b in result.failed_bands],
                        "output_image": cfg["output_image"],
                    },
                    git_commit=_git_commit(),
                )
                write_manifest(args.manifest, manifest)
                logger.info("Run manifest written: %s", args.manifest)
            return 0

        if args.cmd == "polynomial":
            rooted = ComplexRootedPolynomial(*config_roots(cfg))
            coefficient_form = rooted.to_coefficient_form()
            print(f"rooted:     {rooted}")
            print(f"polynomial: {coefficient_form}")
            print(f"derivative: {coefficient_form.derive()}")
            return 0

        raise RuntimeError("Unknown command.")
    except FractalError as e:
        logger.error("%s", e)
        return 2
    finally:
        listener.stop()


if __name__ == "__main__":
    sys.exit(main())
