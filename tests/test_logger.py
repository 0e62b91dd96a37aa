import json

import pytest

from ticket_quality import config, logger


@pytest.fixture
def data_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "DATA_DIR", tmp_path)
    monkeypatch.setattr(logger, "_SLIDER_THROTTLE", logger.SliderLogThrottle())
    return tmp_path


def read_lines(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]


def test_base_log_record_fields():
    record = logger.base_log_record(
        "abc",
        event="slider_change",
        metric_key="agent_empathy",
        old_value=50,
        new_value=70,
        source="slider",
        overall_score=57,
        extras={"reason": None},
    )
    assert record["schema_version"] == config.SCHEMA_VERSION
    assert record["session_id"] == "abc"
    assert record["event"] == "slider_change"
    assert record["metric_key"] == "agent_empathy"
    assert record["overall_score"] == 57
    assert record["timestamp"].endswith("Z")
    assert "reason" in record


def test_missing_session_id_is_unknown():
    assert logger.safe_session_id(None) == "unknown"
    assert logger.session_log_path("").name == "session_unknown.jsonl"


def test_write_log_record_appends_jsonl(data_dir):
    logger.write_log_record("s1", {"event": "lock_toggle"})
    logger.write_log_record("s1", {"event": "lock_toggle", "n": 2})
    assert read_lines(data_dir / "session_s1.jsonl") == [
        {"event": "lock_toggle"},
        {"event": "lock_toggle", "n": 2},
    ]


def test_write_failure_is_reported_not_raised(tmp_path, monkeypatch, capsys):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    monkeypatch.setattr(config, "DATA_DIR", blocker / "nested")
    logger.write_log_record("s1", {"event": "lock_toggle"})
    assert "[dash-log]" in capsys.readouterr().out


def test_throttle_defers_burst_and_keeps_latest(monkeypatch):
    written = []
    throttle = logger.SliderLogThrottle(writer=lambda sid, rec: written.append((sid, rec)))
    assert throttle.submit("s2", {"metric_key": "agent_empathy", "new_value": 1}) is True
    monkeypatch.setattr(config, "LOG_RATE_LIMIT_SECONDS", 60.0)
    assert throttle.submit("s2", {"metric_key": "agent_empathy", "new_value": 2}) is False
    assert throttle.submit("s2", {"metric_key": "agent_empathy", "new_value": 3}) is False
    assert [rec["new_value"] for _, rec in written] == [1]

    throttle.flush(("s2", "agent_empathy"))
    assert written[-1] == ("s2", {"metric_key": "agent_empathy", "new_value": 3})
    throttle.flush(("s2", "agent_empathy"))
    assert len(written) == 2


def test_throttle_keeps_sliders_independent(monkeypatch):
    written = []
    throttle = logger.SliderLogThrottle(writer=lambda sid, rec: written.append(rec))
    monkeypatch.setattr(config, "LOG_RATE_LIMIT_SECONDS", 60.0)
    throttle.submit("s3", {"metric_key": "agent_empathy", "new_value": 10})
    throttle.submit("s3", {"metric_key": "time_to_resolution", "new_value": 20})
    throttle.submit("s3", {"metric_key": "agent_empathy", "new_value": 11})
    assert written == [
        {"metric_key": "agent_empathy", "new_value": 10},
        {"metric_key": "time_to_resolution", "new_value": 20},
    ]
    throttle.flush(("s3", "agent_empathy"))
    assert written[-1] == {"metric_key": "agent_empathy", "new_value": 11}


def test_log_with_throttle_writes_first_record(data_dir):
    assert logger.log_with_throttle("s4", {"metric_key": "agent_empathy", "new_value": 5}) is True
    assert read_lines(data_dir / "session_s4.jsonl") == [{"metric_key": "agent_empathy", "new_value": 5}]


def test_persistence_notice_is_logged(data_dir):
    record = logger.log_persistence_notice("s5", "cannot save")
    assert record["event"] == "persistence_unavailable"
    assert record["source"] == "storage"
    lines = read_lines(data_dir / "session_s5.jsonl")
    assert len(lines) == 1
    assert lines[0]["event"] == "persistence_unavailable"
    assert lines[0]["message"] == "cannot save"
