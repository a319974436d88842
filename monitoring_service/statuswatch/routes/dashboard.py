"""Server-rendered HTML dashboard."""

from datetime import datetime, timezone
from html import escape

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

from statuswatch.aggregation import OverallStatus, aggregate, is_successful_ping, uptime_percentage
from statuswatch.database import list_snapshots

router = APIRouter(tags=["Dashboard"])

UPTIME_WINDOW = 10

_STATUS_COLOURS = {
    OverallStatus.UP: "#2e7d32",
    OverallStatus.PARTIALLY_UP: "#f9a825",
    OverallStatus.DOWN: "#c62828",
}

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta http-equiv="refresh" content="30">
  <title>StatusWatch</title>
  <style>
    body {{ font-family: sans-serif; margin: 2rem; color: #222; }}
    table {{ border-collapse: collapse; margin-top: 1rem; }}
    th, td {{ border: 1px solid #ccc; padding: .4rem .8rem; text-align: left; }}
    .badge {{ color: #fff; padding: .2rem .6rem; border-radius: .3rem; }}
  </style>
</head>
<body>
  <h1>StatusWatch</h1>
  {body}
  <p><small>Rendered {rendered}</small></p>
</body>
</html>
"""


def _ping_rows(snapshot) -> str:
    rows = []
    for result in snapshot.ping_results:
        ok = is_successful_ping(result)
        rows.append(
            "<tr><td>{}</td><td>{}</td><td>{}</td><td>{}</td></tr>".format(
                escape(result.endpoint),
                result.status_code,
                f"{result.response_time_ms} ms" if result.reached else "n/a",
                "OK" if ok else "FAIL",
            )
        )
    return "\n".join(rows)


def _history_rows(snapshots) -> str:
    rows = []
    for snapshot in snapshots:
        status = aggregate(snapshot)
        ok_count = sum(1 for r in snapshot.ping_results if is_successful_ping(r))
        rows.append(
            "<tr><td>{}</td><td>{}</td><td>{}/{}</td><td>{}</td></tr>".format(
                escape(snapshot.timestamp.isoformat(timespec="seconds")),
                status.value,
                ok_count,
                len(snapshot.ping_results),
                "OK" if snapshot.log_check.success else "FAIL",
            )
        )
    return "\n".join(rows)


def render_dashboard(snapshots) -> str:
    rendered = datetime.now(timezone.utc).isoformat(timespec="seconds")
    if not snapshots:
        return _PAGE.format(body="<p>No status logs recorded yet.</p>", rendered=rendered)

    latest = snapshots[0]
    status = aggregate(latest)
    log_check = latest.log_check
    log_text = (
        f"{log_check.found_entries} entries found"
        if log_check.success
        else escape(log_check.error or "Log check failed")
    )

    body = f"""
  <p>Overall status:
    <span class="badge" style="background: {_STATUS_COLOURS[status]}">{status.value}</span>
  </p>
  <p>Uptime (last {len(snapshots)} checks): {uptime_percentage(snapshots):.1f}%</p>
  <p>Last check: {escape(latest.timestamp.isoformat())}</p>
  <h2>Endpoints</h2>
  <table>
    <tr><th>Endpoint</th><th>Status</th><th>Response time</th><th>Result</th></tr>
    {_ping_rows(latest)}
  </table>
  <h2>Log file</h2>
  <p>{log_text}</p>
  <h2>Recent checks</h2>
  <table>
    <tr><th>Time</th><th>Status</th><th>Pings OK</th><th>Log</th></tr>
    {_history_rows(snapshots)}
  </table>
"""
    return _PAGE.format(body=body, rendered=rendered)


@router.get("/api/dashboard", response_class=HTMLResponse)
def dashboard():
    return HTMLResponse(render_dashboard(list_snapshots(UPTIME_WINDOW)))
