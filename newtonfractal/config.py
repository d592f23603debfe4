import json
import math
from typing import Any, Dict, List, Optional, Sequence

from newtonfractal.algebra.number import Complex
from newtonfractal.errors import ConfigError

DEFAULTS: Dict[str, Any] = {
    "roots": ["1", "-0.5 + i0.866", "-0.5 - i0.866"],
    "re_min": -2.0,
    "re_max": 2.0,
    "im_min": -2.0,
    "im_max": 2.0,
    "width": 800,
    "height": 800,
    "convergence_threshold": 0.001,
    "root_threshold": 0.002,
    "max_iterations": 256,
    "workers": None,
    "jobs_per_worker": 8,
    "failure_policy": "swallow",
    "output_image": "newton.png",
}


def load_config(config_path: Optional[str]) -> Dict[str, Any]:
    if not config_path:
        return dict(DEFAULTS)
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            cfg = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config {config_path} is not valid JSON: {e}") from e
    if not isinstance(cfg, dict):
        raise ConfigError("Config JSON must be an object.")
    return cfg


def parse_root(value: Any) -> Complex:
    if isinstance(value, Complex):
        return value
    if isinstance(value, str):
        return Complex.parse(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return Complex(value, 0.0)
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return Complex(float(value[0]), float(value[1]))
    raise ConfigError(f"Cannot interpret root {value!r}; use \"a + ib\" or [re, im].")


def validate_roots(roots: Sequence[Complex]) -> List[Complex]:
    roots = list(roots)
    if len(set(roots)) < 2:
        raise ConfigError(f"At least two distinct roots are required, got {len(set(roots))}.")
    return roots


def _as_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be an integer, got {value!r}.")
    if isinstance(value, float) and not value.is_integer():
        raise ConfigError(f"{key} must be an integer, got {value!r}.")
    return int(value)


def normalise_config(cfg: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(DEFAULTS)
    out.update(cfg)

    if not isinstance(out["roots"], (list, tuple)):
        raise ConfigError("roots must be a list.")
    try:
        roots = [parse_root(r) for r in out["roots"]]
    except ValueError as e:
        raise ConfigError(f"Invalid root: {e}") from e
    validate_roots(roots)
    out["roots"] = [[r.re, r.im] for r in roots]

    try:
        for k in ("re_min", "re_max", "im_min", "im_max", "convergence_threshold", "root_threshold"):
            out[k] = float(out[k])
            if not math.isfinite(out[k]):
                raise ConfigError(f"{k} must be finite, got {out[k]}.")
        for k in ("width", "height", "max_iterations", "jobs_per_worker"):
            out[k] = _as_int(k, out[k])
        out["workers"] = None if out["workers"] is None else _as_int("workers", out["workers"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid numeric config value: {e}") from e
    out["failure_policy"] = str(out["failure_policy"])
    out["output_image"] = str(out["output_image"])

    if out["width"] < 2 or out["height"] < 2:
        raise ConfigError("width/height must be at least 2.")
    if not out["re_max"] > out["re_min"] or not out["im_max"] > out["im_min"]:
        raise ConfigError("Viewport bounds must satisfy re_min < re_max and im_min < im_max.")
    if out["convergence_threshold"] <= 0 or out["root_threshold"] < 0:
        raise ConfigError("convergence_threshold must be > 0 and root_threshold >= 0.")
    if out["max_iterations"] < 1 or out["jobs_per_worker"] < 1:
        raise ConfigError("max_iterations/jobs_per_worker must be positive.")
    if out["workers"] is not None and out["workers"] < 1:
        raise ConfigError("workers must be positive.")
    if out["failure_policy"] not in ("swallow", "propagate"):
        raise ConfigError("failure_policy must be 'swallow' or 'propagate'.")
    return out


def config_roots(cfg: Dict[str, Any]) -> List[Complex]:
    return [parse_root(r) for r in cfg["roots"]]
