import json

from newtonfractal.util.manifest import build_manifest, write_manifest


def test_manifest_round_trip(tmp_path) -> None:
    manifest = build_manifest(
        config={"width": 4, "roots": [[1.0, 0.0], [-1.0, 0.0]]},
        engine_info={"workers": 2},
        result_info={"root_count_plus_one": 3},
        git_commit=None,
    )
    assert manifest.started_utc.endswith("Z")
    assert "numpy" in manifest.packages

    path = tmp_path / "nested" / "run.json"
    write_manifest(str(path), manifest)
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["config"]["width"] == 4
    assert data["engine"] == {"workers": 2}
    assert data["result"] == {"root_count_plus_one": 3}
    assert data["git"] == {"commit": None}
