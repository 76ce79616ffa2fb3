from __future__ import annotations

import json
from pathlib import Path

import dynamodown


def test_version_matches_version_json() -> None:
    version_file = Path(__file__).resolve().parents[2] / "src" / "dynamodown" / "version.json"
    data = json.loads(version_file.read_text(encoding="utf-8"))
    assert dynamodown.__repo_version__ == data["version"]
    if "-rc." in data["version"]:
        assert "-rc." not in dynamodown.__version__
        assert "rc" in dynamodown.__version__
    else:
        assert dynamodown.__version__ == data["version"]
