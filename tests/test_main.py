"""CLI tests with the merge service stubbed out."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from fit_fusion import main as cli
from fit_fusion.merge import merge_activities
from fit_fusion.models import MergeResult
from fit_fusion.report import build_report


class _StubService:
    def __init__(self, master, overlay):
        self.master = master
        self.overlay = overlay
        self.calls: list = []

    def _report(self, options):
        stats = merge_activities(self.master, self.overlay, options).stats
        return build_report(self.master, self.overlay, options, stats)

    def preview(self, master_data, overlay_data, options):
        self.calls.append(("preview", master_data, overlay_data, options))
        return self._report(options)

    def merge(self, master_data, overlay_data, options):
        self.calls.append(("merge", master_data, overlay_data, options))
        return MergeResult(data=b"merged", report=self._report(options))


@pytest.fixture
def fit_inputs(tmp_path: Path) -> tuple[Path, Path]:
    master = tmp_path / "master.fit"
    overlay = tmp_path / "overlay.FIT"
    master.write_bytes(b"master-bytes")
    overlay.write_bytes(b"overlay-bytes")
    return master, overlay


@pytest.fixture
def stub_service(monkeypatch, master_activity, overlay_activity) -> _StubService:
    stub = _StubService(master_activity, overlay_activity)
    monkeypatch.setattr(cli, "MergeService", lambda: stub)
    return stub


def test_inspect_prints_report(fit_inputs, stub_service, capsys) -> None:
    master, overlay = fit_inputs
    code = cli.main(["inspect", str(master), str(overlay), "--tolerance", "1", "--no-cadence"])

    assert code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["updates"]["matchedRecords"] == 2
    kind, master_data, overlay_data, options = stub_service.calls[0]
    assert (kind, master_data, overlay_data) == ("preview", b"master-bytes", b"overlay-bytes")
    assert options.overlay_fields == ["power"]


def test_merge_writes_output_and_reports(tmp_path: Path, fit_inputs, stub_service) -> None:
    master, overlay = fit_inputs
    out = tmp_path / "merged.fit"
    report_json = tmp_path / "report.json"

    code = cli.main(
        [
            "merge",
            str(master),
            str(overlay),
            "-o",
            str(out),
            "--overlay-fields",
            "power,cadence",
            "--keep-moving-time",
            "--report-json",
            str(report_json),
        ]
    )

    assert code == 0
    assert out.read_bytes() == b"merged"
    assert json.loads(report_json.read_text(encoding="utf-8"))["options"]["replaceMovingTime"] is False


def test_rejects_non_fit_extension(
    tmp_path: Path, fit_inputs, stub_service, caplog: pytest.LogCaptureFixture
) -> None:
    _master, overlay = fit_inputs
    bad = tmp_path / "master.gpx"
    bad.write_bytes(b"x")

    with caplog.at_level(logging.ERROR):
        code = cli.main(["inspect", str(bad), str(overlay)])

    assert code == 1
    assert ".fit extension" in caplog.text
    assert stub_service.calls == []
