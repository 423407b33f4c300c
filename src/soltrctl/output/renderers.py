"""Operation-specific Rich renderers for ServiceResult.

Each renderer writes to a Rich Console (backed by StringIO).  The caller
extracts the rendered text via ``get_output(console)``.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer. Output captured
from a wrapped tool is written through untouched.
"""

from __future__ import annotations

import json as _json
from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from soltrctl.output.console import create_console, get_output, write_raw

if TYPE_CHECKING:
    from rich.console import Console

    from soltrctl.services.result import ServiceResult

# Error detail keys printed as remediation lines, in this order.
_REMEDIATION_KEYS = ("usage", "hint", "backup_path")


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich.

    Returns plain text (no ANSI) when Rich detects no terminal,
    which is the case inside Click's CliRunner and piped output.
    """
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


def render_quiet(result: ServiceResult) -> str:
    """Render minimal output for ``--quiet`` mode.

    Success prints only the data the user asked for: the wrapped tool's
    output, or one plain line per package for structured ``info``.
    Operations that stream their output print nothing. Errors are never
    suppressed.
    """
    if not result.ok:
        err = result.error
        lines = [f"ERROR: {result.op} — {err.message if err else 'Unknown error'}"]
        if err:
            lines += [str(err.detail[k]) for k in ("usage", "hint") if err.detail.get(k)]
        return "\n".join(lines)
    packages = result.data.get("packages")
    if packages:
        return "\n".join(
            f"{p.get('attr', '')} {p.get('version', '')} {p.get('description', '')}".rstrip()
            for p in packages
        )
    return str(result.data.get("output") or "").rstrip("\n")


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    """Print the OK status line."""
    label = Text("OK", style="soltr.ok")
    op = Text(f"  {result.op}", style="soltr.op")
    console.print(label, op, end="")
    console.print()


def _field(console: Console, key: str, value: Any) -> None:
    """Print a single indented key-value field."""
    k = Text(f"  {key}: ", style="soltr.key")
    if key.endswith("path"):
        v = Text(str(value), style="soltr.path")
    elif key == "command":
        v = Text(str(value), style="soltr.command")
    else:
        v = Text(str(value))
    console.print(k, v, end="")
    console.print()


def _fields(console: Console, data: dict[str, Any], keys: tuple[str, ...]) -> None:
    for key in keys:
        if data.get(key) is not None:
            _field(console, key, data[key])


def _render_meta(console: Console, result: ServiceResult) -> None:
    """Print meta block including telemetry span tree (verbose only)."""
    if not result.meta:
        return

    console.print()
    console.print(Text("  meta:", style="dim"))

    for k, v in result.meta.items():
        if k == "telemetry":
            _render_telemetry_tree(console, v, indent=4)
        elif k == "refresh":
            for report in v:
                _render_refresh_report(console, report)
        else:
            console.print(f"    {k}: {v}")


def _render_telemetry_tree(
    console: Console,
    span_data: dict[str, Any],
    indent: int = 4,
) -> None:
    """Render a hierarchical span tree with color-coded timing."""
    prefix = " " * indent
    name = span_data.get("name", "?")
    duration = span_data.get("duration_ms", 0.0)

    if duration > 1000:
        style = "bold red"
    elif duration > 100:
        style = "yellow"
    else:
        style = "dim"

    line = Text(prefix)
    line.append(f"{duration:>8.2f}ms", style=style)
    line.append(f"  {name}")
    annotations = span_data.get("annotations") or {}
    if annotations:
        line.append(f"  ({', '.join(f'{ak}={av}' for ak, av in annotations.items())})")

    console.print(line)

    for child in span_data.get("children", []):
        _render_telemetry_tree(console, child, indent=indent + 4)


def _render_refresh_report(console: Console, report: dict[str, Any]) -> None:
    """Desktop refresh steps, one line each."""
    console.print(f"    desktop refresh ({report.get('desktop', '?')}):")
    styles = {"ok": "soltr.ok", "failed": "soltr.warning", "skipped": "soltr.skipped"}
    for step in report.get("steps", []):
        status = str(step.get("status", ""))
        line = Text("      ")
        line.append(f"{status:<8}", style=styles.get(status, ""))
        line.append(str(step.get("step", "")))
        if step.get("target"):
            line.append(f"  {step['target']}", style="soltr.path")
        console.print(line)


def _steps_table(steps: list[dict[str, Any]]) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Step", no_wrap=True)
    table.add_column("Result")
    for step in steps:
        if step.get("skipped"):
            outcome = Text("skipped", style="soltr.skipped")
        elif step.get("ok"):
            outcome = Text("ok", style="soltr.ok")
        else:
            outcome = Text("failed", style="soltr.warning")
        table.add_row(str(step.get("name", "")), outcome)
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    label = Text("ERROR", style="soltr.error")
    op = Text(f"  {result.op}", style="soltr.op")
    sep = Text(" — ")
    console.print(label, op, sep, Text(msg))
    if err is None:
        return

    detail = err.detail
    if detail.get("usage"):
        console.print(Text(str(detail["usage"])))
    if detail.get("hint"):
        console.print(Text(f"Hint: {detail['hint']}", style="soltr.hint"))
    if detail.get("backup_path"):
        _field(console, "backup_path", detail["backup_path"])
    if detail.get("stderr"):
        write_raw(console, str(detail["stderr"]))

    extra = {k: v for k, v in detail.items() if k not in (*_REMEDIATION_KEYS, "stderr")}
    if verbose and extra:
        console.print(Text("  detail:", style="dim"))
        for k, v in extra.items():
            console.print(Text(f"    {k}: {v}"))


# ── Package renderers ─────────────────────────────────────────────────


def _render_profile_change(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    """Render install/remove/upgrade/update/rollback/clean."""
    _status_line(console, result)
    _fields(
        console,
        result.data,
        ("package", "identifier", "pattern", "generation", "flake_path"),
    )
    if verbose:
        _fields(console, result.data, ("reference", "command"))
        _render_meta(console, result)


def _render_captured(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render list/history/search/containers: the tool's own output, unmodified."""
    if verbose:
        _status_line(console, result)
        _fields(console, result.data, ("command",))
    write_raw(console, str(result.data.get("output") or ""))
    if verbose:
        _render_meta(console, result)


def _render_info(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Render structured package info as a table, else the raw search output."""
    packages = result.data.get("packages")
    if not packages:
        _render_captured(result, console, verbose=verbose)
        return

    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Attribute", no_wrap=True)
    table.add_column("Name")
    table.add_column("Version")
    table.add_column("Description")
    for pkg in packages:
        table.add_row(pkg["attr"], pkg["pname"], pkg["version"], pkg["description"])
    console.print(table)
    if verbose:
        _fields(console, result.data, ("command",))
        _render_meta(console, result)


# ── Policy renderers ──────────────────────────────────────────────────


def _render_policy_status(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    _status_line(console, result)
    d = result.data
    _fields(console, d, ("path", "mode"))
    _field(console, "trust_relaxed", "yes" if d.get("marker") else "no")
    _field(console, "backups", d.get("backups", 0))
    if verbose:
        _fields(console, d, ("marker_path", "latest_backup"))
        _render_meta(console, result)


def _render_policy_change(
    result: ServiceResult, console: Console, *, verbose: bool = False
) -> None:
    _status_line(console, result)
    _fields(console, result.data, ("path", "mode", "backup_path"))
    if result.data.get("upgraded"):
        console.print("  System upgraded. Reboot to apply the new image.")
    if verbose:
        _render_meta(console, result)


# ── System renderers ──────────────────────────────────────────────────


def _render_steps(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    steps = result.data.get("steps", [])
    if steps:
        console.print(_steps_table(steps))
    if verbose:
        _render_meta(console, result)


def _render_rebase(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    _fields(console, result.data, ("label", "image", "os_release"))
    if result.data.get("reboot_required"):
        console.print("  Reboot to boot into the new image.")
    if verbose:
        _render_meta(console, result)


# ── Generic fallback ──────────────────────────────────────────────────


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    """Fallback renderer: status line + all data as key-value pairs."""
    _status_line(console, result)
    for key, value in result.data.items():
        if isinstance(value, (dict, list)):
            _field(console, key, _json.dumps(value, separators=(",", ":")))
        else:
            _field(console, key, value)
    if verbose:
        _render_meta(console, result)


# ── Dispatch table ────────────────────────────────────────────────────

_OP_RENDERERS: dict[str, Any] = {
    # Nix profile
    "install": _render_profile_change,
    "remove": _render_profile_change,
    "upgrade": _render_profile_change,
    "update": _render_profile_change,
    "rollback": _render_profile_change,
    "clean": _render_profile_change,
    "list": _render_captured,
    "history": _render_captured,
    "search": _render_captured,
    "info": _render_info,
    # Trust policy
    "policy_status": _render_policy_status,
    "policy_relax": _render_policy_change,
    "policy_restrict": _render_policy_change,
    "policy_emergency_fix": _render_policy_change,
    # System
    "system_update": _render_steps,
    "system_clean": _render_steps,
    "system_rebase": _render_rebase,
    "system_containers": _render_captured,
}
