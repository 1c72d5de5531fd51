"""CLI client for the obligations API.

Talks to a running server over HTTP; grouping for `list` uses the same
horizon classifier as the server, evaluated in the configured TIMEZONE.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, NoReturn, Optional

import httpx
import typer

from src.config import settings
from src.core.horizon_classifier import classify, describe_due
from src.data.models import Obligation, ObligationStatus

app = typer.Typer(help="Track obligations from the command line.", no_args_is_help=True)

_TIMEOUT_SECONDS = 60


class ApiError(Exception):
    """Raised for connection failures and non-2xx responses."""


def _make_client() -> httpx.Client:
    return httpx.Client(base_url=settings.API_URL, timeout=_TIMEOUT_SECONDS)


def _request(method: str, path: str, payload: dict | None = None) -> Any:
    try:
        with _make_client() as client:
            resp = client.request(method, path, json=payload)
    except httpx.ConnectError as exc:
        raise ApiError(
            f"Cannot connect to server at {settings.API_URL}. Is the server running?"
        ) from exc
    except httpx.HTTPError as exc:
        raise ApiError(f"Request failed: {exc}") from exc

    try:
        body = resp.json() if resp.content else {}
    except ValueError:
        body = {}
    if resp.is_success:
        return body
    detail = body.get("detail") or body.get("error") if isinstance(body, dict) else None
    raise ApiError(str(detail) if detail else f"HTTP {resp.status_code}")


def _fail(action: str, exc: ApiError) -> NoReturn:
    typer.echo(f"Error {action}: {exc}", err=True)
    raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def add(text: List[str] = typer.Argument(..., help="Obligation text, e.g. 'Call dentist tomorrow'")) -> None:
    """Add a new obligation."""
    phrase = " ".join(text).strip()
    try:
        result = _request("POST", "/api/obligations", {"text": phrase})
        if result.get("needs_clarification"):
            typer.echo("Need clarification for date/time.")
            followup = typer.prompt("When is this due?")
            result = _request("POST", "/api/obligations", {"text": phrase, "followup": followup})
    except ApiError as exc:
        _fail("adding obligation", exc)

    obligation = Obligation.from_dict(result, settings.tz)
    typer.echo("Obligation added!")
    typer.echo(f"  Title: {obligation.title}")
    if obligation.due_at:
        typer.echo(f"  Due: {describe_due(obligation.due_at, datetime.now(settings.tz))}")


def list_obligations() -> None:
    """List obligations grouped into Missed / Now / Today / This week / Later."""
    try:
        raw = _request("GET", "/api/obligations")
    except ApiError as exc:
        _fail("listing obligations", exc)

    if not raw:
        typer.echo("No obligations found.")
        return

    now = datetime.now(settings.tz)
    groups = classify([Obligation.from_dict(item, settings.tz) for item in raw], now)
    if not len(groups):
        typer.echo("Nothing pending.")
        return

    for label, items in groups.sections():
        typer.echo(f"\n{label}:")
        for idx, item in enumerate(items, start=1):
            marker = " [MISSED]" if item.status is ObligationStatus.MISSED else ""
            typer.echo(f"  {idx}. {item.title} - {describe_due(item.due_at, now)}{marker}  ({item.id})")


def toggle(obligation_id: str = typer.Argument(..., help="Obligation id")) -> None:
    """Toggle an obligation's done status."""
    try:
        result = _request("PATCH", f"/api/obligations/{obligation_id}/toggle")
    except ApiError as exc:
        _fail("updating obligation", exc)
    typer.echo(f"Obligation status updated! ({result.get('status')})")


def edit(
    obligation_id: str = typer.Argument(..., help="Obligation id"),
    due: Optional[str] = typer.Option(None, "--due", help="New due time, ISO-8601 (e.g. 2026-10-20T09:00)"),
    clear_due: bool = typer.Option(False, "--clear-due", help="Remove the due date"),
    duration: Optional[int] = typer.Option(None, "--duration", min=1, help="Estimated minutes"),
) -> None:
    """Change an obligation's due time or estimated duration."""
    payload: dict[str, Any] = {}
    if clear_due:
        payload["due_at"] = None
    elif due is not None:
        payload["due_at"] = due
    if duration is not None:
        payload["estimated_duration"] = duration
    if not payload:
        typer.echo("Nothing to change: pass --due, --clear-due or --duration.", err=True)
        raise typer.Exit(code=1)

    try:
        result = _request("PATCH", f"/api/obligations/{obligation_id}", payload)
    except ApiError as exc:
        _fail("updating obligation", exc)
    typer.echo(f"Obligation updated! ({result.get('status')})")


def delete(obligation_id: str = typer.Argument(..., help="Obligation id")) -> None:
    """Delete an obligation."""
    try:
        _request("DELETE", f"/api/obligations/{obligation_id}")
    except ApiError as exc:
        _fail("deleting obligation", exc)
    typer.echo("Obligation deleted!")


def clear() -> None:
    """Clear all obligations."""
    try:
        result = _request("DELETE", "/api/obligations/all")
    except ApiError as exc:
        _fail("clearing obligations", exc)
    typer.echo(f"All obligations cleared. ({result.get('count', 0)} removed)")


def samples() -> None:
    """Replace everything with sample obligations."""
    try:
        result = _request("POST", "/api/obligations/samples")
    except ApiError as exc:
        _fail("loading samples", exc)
    typer.echo(f"Loaded {result.get('count', 0)} sample obligations")


# Primary names, then the short aliases
_COMMANDS = [
    (add, "add", ["a"]),
    (list_obligations, "list", ["ls", "l"]),
    (toggle, "toggle", ["t"]),
    (edit, "edit", ["e"]),
    (delete, "delete", ["del", "d"]),
    (clear, "clear", ["c"]),
    (samples, "samples", ["sample", "s"]),
]

for _fn, _name, _aliases in _COMMANDS:
    app.command(_name)(_fn)
    for _alias in _aliases:
        app.command(_alias, hidden=True)(_fn)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
