"""
Main CLI application using Typer.
"""

import logging
from pathlib import Path
from typing import Annotated, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..config import AppConfig
from ..domain.contexts import (
    CancellationContext,
    DiscountContext,
    MemberProfile,
    PlanProfile,
    ReservationContext,
)
from ..domain.exceptions import BookingRulesError
from ..domain.models import TimeSlot
from ..domain.money import Money
from ..domain.types import MemberStatus, ResourceType

app = typer.Typer(
    name="bookingrules",
    help="Price reservations, cancellations and free slots with configurable booking rules",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./bookingrules.yaml"),
]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _parse_datetime(value: str, tz: str, label: str) -> pendulum.DateTime:
    try:
        parsed = pendulum.parse(value, tz=tz)
    except Exception as e:
        raise typer.BadParameter(f"Could not parse {label} '{value}': {e}") from e
    if not isinstance(parsed, pendulum.DateTime):
        raise typer.BadParameter(f"{label} must be a date and time, got '{value}'")
    return parsed


def _parse_booking(value: str, day: pendulum.Date, tz: str) -> TimeSlot:
    """Parse ``HH:mm-HH:mm`` into a slot on ``day``."""
    try:
        start_text, end_text = (part.strip() for part in value.split("-", 1))
    except ValueError:
        raise typer.BadParameter(f"Booking must look like HH:mm-HH:mm, got '{value}'")
    prefix = day.format("YYYY-MM-DD")
    start = _parse_datetime(f"{prefix} {start_text}", tz, "booking start")
    end = _parse_datetime(f"{prefix} {end_text}", tz, "booking end")
    return TimeSlot.of(start, end)


def _now(value: Optional[str], tz: str) -> pendulum.DateTime:
    return _parse_datetime(value, tz, "--now") if value else pendulum.now(tz)


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")] = False,
):
    """
    Booking rules toolkit.
    """
    _configure_logging(verbose)


@app.command()
def quote(
    price: Annotated[str, typer.Option("--price", "-p", help="Base price of the reservation")],
    start: Annotated[str, typer.Option("--start", "-s", help="Reservation start (YYYY-MM-DD HH:mm)")],
    duration: Annotated[int, typer.Option("--duration", "-d", help="Duration in minutes")] = 60,
    resource_type: Annotated[ResourceType, typer.Option("--resource-type", "-r", help="Kind of resource")] = ResourceType.GYM,
    resource_id: Annotated[str, typer.Option("--resource-id", help="Resource identifier")] = "resource-1",
    member_id: Annotated[str, typer.Option("--member", "-m", help="Member identifier")] = "member-1",
    status: Annotated[MemberStatus, typer.Option("--status", help="Member status")] = MemberStatus.ACTIVE,
    plan_discount: Annotated[str, typer.Option("--plan-discount", help="Membership plan discount rate (0-1)")] = "0",
    advance_days: Annotated[int, typer.Option("--advance-days", help="Days ahead the plan allows booking")] = 30,
    max_reservations: Annotated[int, typer.Option("--max-reservations", help="Plan's simultaneous reservation limit")] = 3,
    active_reservations: Annotated[int, typer.Option("--active", help="Member's current active reservations")] = 0,
    coupon: Annotated[Optional[str], typer.Option("--coupon", help="Coupon code")] = None,
    now: Annotated[Optional[str], typer.Option("--now", help="Override the current time (YYYY-MM-DD HH:mm)")] = None,
    config_file: ConfigOption = None,
):
    """
    Check eligibility and price a reservation.

    Examples:

        bookingrules quote --price 20000 --start "2025-03-10 10:00"
        bookingrules quote -p 50000 -s "2025-03-10 10:00" --plan-discount 0.1 --coupon SPRING
    """
    try:
        config = AppConfig.load_or_default(config_file)
        tz = config.timezone
        requested_at = _now(now, tz)

        plan = PlanProfile(
            name="cli",
            discount_rate=plan_discount,
            allowed_resource_types=frozenset(ResourceType),
            max_simultaneous_reservations=max_reservations,
            advance_reservation_days=advance_days,
        )
        member = MemberProfile(member_id=member_id, status=status, plan=plan)
        slot = TimeSlot.of_duration(_parse_datetime(start, tz, "--start"), duration)
        context = ReservationContext(
            member=member,
            resource_id=resource_id,
            resource_type=resource_type,
            slot=slot,
            requested_at=requested_at,
            current_active_reservations=active_reservations,
        )
        discount_context = DiscountContext(
            purchase_date=requested_at.date(),
            member=member,
            coupon_code=coupon,
            resource_types=frozenset({resource_type}),
        )

        # the plan discount always applies unless the config declares its own membership entry
        service = config.build_pricing_service(include_membership=True)
        result = service.quote_reservation(context, Money.of(price, config.currency), discount_context)

        console.print(f"\n[bold cyan]Slot:[/bold cyan] {slot}")
        if not result.allowed:
            console.print(f"[bold red]✗ Reservation not allowed:[/bold red] {result.violation_reason}\n")
            raise typer.Exit(2)

        table = Table(title="Discounts", show_header=True, header_style="bold cyan")
        table.add_column("Policy", style="bold yellow")
        table.add_column("Priority", justify="right")
        table.add_column("Before", justify="right")
        table.add_column("After", justify="right", style="green")
        for step in result.breakdown.applied:
            table.add_row(step.description, str(step.priority), str(step.price_before), str(step.price_after))

        console.print()
        console.print(table)
        console.print(
            f"\n[bold]Base price:[/bold] {result.base_price}   "
            f"[bold]Discount:[/bold] {result.breakdown.total_discount}   "
            f"[bold green]Final price:[/bold green] {result.final_price}\n"
        )

    except (FileNotFoundError, ValueError, BookingRulesError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def refund(
    price: Annotated[str, typer.Option("--price", "-p", help="Amount paid for the reservation")],
    reservation: Annotated[str, typer.Option("--reservation", "-r", help="Reservation start (YYYY-MM-DD HH:mm)")],
    cancel_at: Annotated[Optional[str], typer.Option("--cancel-at", help="Cancellation time; defaults to now")] = None,
    policy: Annotated[Optional[str], typer.Option("--policy", help="Cancellation policy name")] = None,
    first_time: Annotated[bool, typer.Option("--first-time", help="Member's first cancellation")] = False,
    config_file: ConfigOption = None,
):
    """
    Calculate the cancellation fee and refund.

    Examples:

        bookingrules refund --price 10000 --reservation "2025-03-10 18:00" --cancel-at "2025-03-10 14:00"
        bookingrules refund -p 10000 -r "2025-03-12 09:00" --policy strict
    """
    try:
        config = AppConfig.load_or_default(config_file)
        tz = config.timezone
        context = CancellationContext.create(
            reservation_time=_parse_datetime(reservation, tz, "--reservation"),
            cancellation_time=_now(cancel_at, tz),
            original_price=Money.of(price, config.currency),
            is_first_time_cancellation=first_time,
        )

        service = config.build_pricing_service(cancellation_policy=policy)
        result = service.quote_cancellation(context)

        if result.allowed:
            headline = "[bold green]✓ Cancellation allowed[/bold green]"
        else:
            headline = f"[bold red]✗ Cancellation not allowed[/bold red]\n{result.denial_reason}"

        console.print(Panel.fit(
            f"{headline}\n\n"
            f"[bold]Policy:[/bold] {result.policy_description}\n"
            f"[bold]Rule:[/bold] {result.result.rule_description}\n"
            f"[bold]Fee:[/bold] {result.fee}\n"
            f"[bold]Refund:[/bold] {result.refund_amount}",
            title="Cancellation"
        ))

    except (FileNotFoundError, ValueError, BookingRulesError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def slots(
    date: Annotated[str, typer.Option("--date", help="Day to search (YYYY-MM-DD)")],
    booked: Annotated[Optional[List[str]], typer.Option("--booked", "-b", help="Existing booking HH:mm-HH:mm (repeatable)")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Slot length in minutes")] = None,
    config_file: ConfigOption = None,
):
    """
    List bookable slots for one resource on one day.

    Examples:

        bookingrules slots --date 2025-03-10
        bookingrules slots --date 2025-03-10 -b 10:00-11:00 -b 14:00-15:30 --duration 90
    """
    try:
        config = AppConfig.load_or_default(config_file)
        tz = config.timezone
        day = _parse_datetime(date, tz, "--date").date()
        bookings = [_parse_booking(value, day, tz) for value in booked or []]
        slot_minutes = duration if duration is not None else config.defaults.slot_duration_minutes

        calculator = config.build_availability_calculator()
        free = calculator.free_blocks(day, bookings, min_duration_minutes=slot_minutes)
        candidates = calculator.bookable_slots(
            day, bookings, duration_minutes=slot_minutes, step_minutes=config.defaults.step_minutes
        )

        console.print()
        if not candidates:
            console.print(
                "[yellow]⚠ No free slots found.[/yellow]\n"
                "Try a shorter duration or another day."
            )
            return

        table = Table(title=f"Free time on {day.format('YYYY-MM-DD')}", show_header=True, header_style="bold cyan")
        table.add_column("Free block", style="bold yellow")
        table.add_column("Minutes", justify="right")
        for block in free:
            table.add_row(f"{block.start.format('HH:mm')} - {block.end.format('HH:mm')}", str(block.duration_minutes()))
        console.print(table)

        console.print(f"\n[bold green]✓ {len(candidates)} bookable slot(s) of {slot_minutes} minutes:[/bold green]")
        for slot in candidates:
            console.print(f"  {slot}")
        console.print()

    except (FileNotFoundError, ValueError, BookingRulesError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def policies(
    config_file: ConfigOption = None,
):
    """
    List the configured cancellation policies and discounts.
    """
    try:
        config = AppConfig.load_or_default(config_file)

        table = Table(title="Cancellation policies", show_header=True, header_style="bold cyan")
        table.add_column("Name", style="bold yellow")
        table.add_column("Description")
        table.add_column("Default", justify="center")
        for name in config.cancellation_policy_names():
            marker = "✓" if name == config.cancellation_policy.lower() else ""
            table.add_row(name, config.build_cancellation_policy(name).description, marker)
        console.print()
        console.print(table)

        discounts = config.build_discount_policies()
        if not discounts:
            console.print("\n[yellow]No discounts configured.[/yellow]\n")
            return

        table = Table(title="Discounts (in evaluation order)", show_header=True, header_style="bold cyan")
        table.add_column("Priority", justify="right")
        table.add_column("Description", style="bold yellow")
        for discount in config.build_discount_chain().policies:
            table.add_row(str(discount.priority), discount.description)
        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, ValueError, BookingRulesError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]bookingrules[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
