import json

import pytest


@pytest.fixture
def write_jsonl(tmp_path):
    """Write records (dicts or raw strings) as a JSON lines file."""
    def _write(records, name="log.json"):
        path = tmp_path / name
        lines = [r if isinstance(r, str) else json.dumps(r) for r in records]
        path.write_text("\n".join(lines) + "\n")
        return path
    return _write
