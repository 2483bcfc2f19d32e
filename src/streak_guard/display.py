"""Rich terminal display for streak-guard."""

from __future__ import annotations

from datetime import datetime

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

console = Console()

_EVENT_LABELS: dict[str, str] = {
    "freeze_used": "❄️  Freeze used",
    "streak_repaired": "\U0001f6e0️  Streak repaired",
}


def format_ms(ms: int | None) -> str:
    """Format epoch milliseconds as local 'YYYY-MM-DD HH:MM', or '-' when unset."""
    if ms is None:
        return "-"
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


def _shield_bar(current: int, total: int) -> str:
    """Render shields as filled/empty pips: [◆◆◇]."""
    if total <= 0:
        return "[]"
    current = max(0, min(current, total))
    return "[" + "◆" * current + "◇" * (total - current) + "]"


def print_status(data: dict) -> None:
    """Print the main status panel: streak, protection inventory, break state."""
    current_streak = data.get("current_streak", 0)
    broken_at = data.get("broken_at_date_key")
    border = "red1" if broken_at else "dark_orange3"

    lines: list[str] = []
    lines.append("")
    lines.append(f"  [bold]\U0001f525 Streak: {current_streak} days[/]")
    lines.append(
        f"  Covered: {data.get('current_covered_streak', 0)} days  |  "
        f"Longest: {data.get('longest_streak', 0)} days"
    )

    lines.append("")
    free = "available" if data.get("free_freeze_available") else "used this week"
    lines.append(f"  ❄️  Free freeze: {free}")
    max_shields = data.get("max_shields", 3)
    shields = data.get("shields_available", 0)
    pro_suffix = "" if data.get("is_pro") else "  [grey50](Pro only)[/]"
    lines.append(f"  \U0001f6e1️  Shields: {_shield_bar(shields, max_shields)} {shields}/{max_shields}{pro_suffix}")

    if broken_at:
        lines.append("")
        lines.append(f"  [bold red]Streak broke on {broken_at}[/] (was {data.get('broken_streak_length', 0)} days)")
        lines.append(f"  Repair window ends: {format_ms(data.get('eligible_repair_until_ms'))}")
        if data.get("can_repair"):
            lines.append("  Run [bold]streak-guard repair[/] to restore it.")

    lines.append("")
    lines.append(f"  Last show-up: {data.get('last_show_up_date_key') or 'never'}")
    lines.append(f"  Evaluated through: {data.get('last_evaluated_through_date_key') or '-'}")
    lines.append("")

    panel = Panel(
        "\n".join(lines),
        title="[bold]STREAK GUARD[/]",
        box=box.ROUNDED,
        border_style=border,
        width=56,
    )
    console.print(panel)


def print_evaluation_result(result: dict) -> None:
    """Print the outcome of a missed-day evaluation."""
    lines: list[str] = []
    lines.append("")
    if result.get("broke"):
        lines.append(f"  [bold red]Streak broken on {result.get('broken_at_date_key')}[/]")
        if result.get("can_repair"):
            lines.append("  Repair is available: [bold]streak-guard repair[/]")
        style, title = "red1", "Streak Broken"
    elif result.get("covered_days", 0) > 0:
        days = result["covered_days"]
        lines.append(f"  You missed {'a day' if days == 1 else f'{days} days'}, but your streak lives on.")
        style, title = "green", "Streak Saved"
    else:
        lines.append(f"  Nothing to protect ({result.get('reason', 'no_gap')}).")
        style, title = "grey50", "Streak Checked"

    lines.append("")
    lines.append(f"  Free freezes used: {result.get('used_free', 0)}")
    lines.append(f"  Shields used:      {result.get('used_shields', 0)}")
    if result.get("awarded_shields"):
        lines.append(f"  Shields earned:    {result['awarded_shields']}")
    lines.append(f"  Current streak:    {result.get('current_streak', 0)} days")
    lines.append("")

    panel = Panel(
        "\n".join(lines),
        title=f"[bold]{title}[/]",
        box=box.ROUNDED,
        border_style=style,
        width=56,
    )
    console.print(panel)


def print_show_up_result(result: dict) -> None:
    """Print the outcome of a check-in."""
    lines: list[str] = []
    lines.append("")
    if result.get("counted"):
        lines.append(f"  [bold]\U0001f525 {result.get('current_streak', 0)} day streak[/]")
        if result.get("cleared_break"):
            lines.append("  Fresh start: the previous break has been cleared.")
        if result.get("shield_awarded"):
            lines.append("  \U0001f6e1️  You earned a shield this week!")
    else:
        lines.append("  Already checked in today.")
    lines.append("")

    panel = Panel(
        "\n".join(lines),
        title="[bold]Check-in[/]",
        box=box.ROUNDED,
        border_style="green" if result.get("counted") else "grey50",
        width=56,
    )
    console.print(panel)


def print_repair_result(result: dict) -> None:
    """Print repair success, or why repair isn't possible."""
    reasons = {
        "not_broken": "Your streak isn't broken.",
        "window_expired": "The repair window has closed.",
        "not_pro": "Streak repair is a Pro feature.",
        "insufficient_shields": "You need 2 shields to repair a streak.",
    }
    lines: list[str] = []
    lines.append("")
    if result.get("repaired"):
        lines.append(f"  [bold green]Restored your {result.get('restored_streak', 0)} day streak![/]")
        lines.append(f"  Shields left: {result.get('shields_available', 0)}")
    else:
        lines.append(f"  {reasons.get(result.get('reason', ''), 'Repair not available.')}")
    lines.append("")

    panel = Panel(
        "\n".join(lines),
        title="[bold]Streak Repair[/]",
        box=box.ROUNDED,
        border_style="green" if result.get("repaired") else "grey50",
        width=56,
    )
    console.print(panel)


def print_history(events: list[dict]) -> None:
    """Print protection events as a table, newest first."""
    if not events:
        console.print("[grey50]No protection events yet.[/]")
        return

    table = Table(
        title="Protection History",
        box=box.ROUNDED,
        show_header=True,
        header_style="bold",
    )
    table.add_column("When", width=16)
    table.add_column("Event", min_width=18)
    table.add_column("Days", justify="right")
    table.add_column("Free", justify="right")
    table.add_column("Shields", justify="right")

    for event in events:
        table.add_row(
            format_ms(event.get("at_ms")),
            _EVENT_LABELS.get(event.get("type", ""), event.get("type", "")),
            str(event.get("covered_days", 0)),
            str(event.get("used_free", 0)),
            str(event.get("used_shields", 0)),
        )

    console.print(table)


def print_config(data: dict) -> None:
    """Print current configuration."""
    lines: list[str] = []
    lines.append("")
    lines.append(f"  Pro:          {'yes' if data.get('is_pro') else 'no'}")
    lines.append(f"  Max shields:  {data.get('max_shields', 3)}")
    lines.append("")

    panel = Panel(
        "\n".join(lines),
        title="[bold]Config[/]",
        box=box.ROUNDED,
        border_style="grey50",
        width=56,
    )
    console.print(panel)


def print_no_data_message() -> None:
    """Print message when there is no streak history yet."""
    panel = Panel(
        "\n  No streak yet. Run [bold]streak-guard checkin[/] to record your first day.\n",
        title="[bold]STREAK GUARD[/]",
        box=box.ROUNDED,
        border_style="grey50",
        width=56,
    )
    console.print(panel)
