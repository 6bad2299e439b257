"""
Test the replay_batch tool against captured batch files.
"""

from __future__ import annotations

import json

from backend_hookrelay.tools import replay_batch
from payloads import batch, block, swap_event, tx


def test_replay_prints_outcomes(tmp_path, monkeypatch, capsys):
    monkeypatch.delenv("STATE_STORE_URL", raising=False)
    monkeypatch.delenv("SWAP_NAMESPACE", raising=False)
    first = tmp_path / "b1.json"
    second = tmp_path / "b2.json"
    first.write_text(json.dumps(batch("swap:alex-v2", apply=[block(100, [tx("0x1", events=[swap_event()])])])))
    second.write_text(json.dumps(batch("swap:alex-v2", apply=[block(100), block(101)])))

    assert replay_batch.main([str(first), str(second)]) == 0
    # structured log lines share stdout; keep only the printed outcomes
    lines = [
        json.loads(line) for line in capsys.readouterr().out.splitlines()
        if line.startswith('{"path"')
    ]
    assert [line["applied_heights"] for line in lines] == [[100], [101]]
    assert lines[0]["event_counts"] == {"swap": 1}
    assert lines[1]["skipped_heights"] == [100]


def test_replay_reports_bad_file(tmp_path, monkeypatch):
    monkeypatch.delenv("STATE_STORE_URL", raising=False)
    bad = tmp_path / "bad.json"
    bad.write_text("{}")
    assert replay_batch.main([str(bad)]) == 1
