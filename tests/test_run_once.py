import logging

import pytest

import run_once
from waterdata.job import fetch_once


@pytest.fixture
def patched(monkeypatch, settings, upstream):
    monkeypatch.setattr(run_once, "load_settings", lambda: settings)
    monkeypatch.setattr(
        run_once,
        "fetch_once",
        lambda loaded: fetch_once(loaded, transport=upstream.transport),
    )
    return upstream


def test_prints_count_and_buckets(patched, settings, capsys):
    run_once.main()

    out = capsys.readouterr().out
    assert f"Source: {settings.data_url}" in out
    assert "Total records: 3" in out
    assert "excellent: 1 (33.3%)" in out
    assert "moderate: 1 (33.3%)" in out
    assert "unknown: 1 (33.3%)" in out
    assert "Last updated: " in out


def test_exits_non_zero_on_upstream_failure(patched, capsys, caplog):
    caplog.set_level(logging.INFO)
    patched.mode = "error"

    with pytest.raises(SystemExit) as excinfo:
        run_once.main()

    assert excinfo.value.code == 1
    assert "Total records" not in capsys.readouterr().out
    assert "data_url" in caplog.text
