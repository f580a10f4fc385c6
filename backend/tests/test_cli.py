import json

from uidops.models import Bin
from uidops.services import plan_service


def test_bins_load_csv_and_list(app, tmp_path):
    path = tmp_path / "bins.csv"
    path.write_text("Mobile Bin,Weight (kg)\nB1,13.5\nB2,4\n,9\n", encoding="utf-8")

    runner = app.test_cli_runner()
    result = runner.invoke(args=["bins", "load", str(path)])
    assert result.exit_code == 0, result.output
    assert "created=2 updated=0 skipped=1" in result.output
    assert Bin.query.count() == 2

    listed = runner.invoke(args=["bins", "list"])
    assert "B1" in listed.output
    assert "13.5" in listed.output


def test_bins_load_rejects_unknown_format(app, tmp_path):
    path = tmp_path / "bins.txt"
    path.write_text("B1 13", encoding="utf-8")
    result = app.test_cli_runner().invoke(args=["bins", "load", str(path)])
    assert result.exit_code != 0


def test_plans_and_metrics_show(app, clock):
    plan_service.put_week("2025-06-02", [{"po": "P1", "sku": "S1", "due_date": "2025-06-06", "target_qty": 3}], clock=clock)
    runner = app.test_cli_runner()

    shown = runner.invoke(args=["plans", "show", "2025-06-02"])
    assert json.loads(shown.output)[0]["target_qty"] == 3

    metrics = runner.invoke(args=["metrics", "show", "2025-06-02", "--dispatched-actual", "2025-06-09"])
    assert metrics.exit_code == 0, metrics.output
    payload = json.loads(metrics.output)
    assert payload["planned_total"] == 3
    assert payload["timeline"]["milestones"][-1]["variance_days"] == 1

    bad = runner.invoke(args=["plans", "show", "2025-06-03"])
    assert bad.exit_code != 0


def test_reset_db_requires_confirmation(app):
    result = app.test_cli_runner().invoke(args=["system", "reset-db"])
    assert result.exit_code != 0
    assert "--yes" in result.output
