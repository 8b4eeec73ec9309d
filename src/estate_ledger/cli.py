"""Command-line interface for Estate Ledger."""

import argparse
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from uuid import UUID

from estate_ledger import __version__
from estate_ledger.config import Settings, get_settings
from estate_ledger.container import Container
from estate_ledger.domain.debts import DebtType
from estate_ledger.domain.value_objects import Currency, Money
from estate_ledger.exceptions import EstateLedgerError
from estate_ledger.logging_config import configure_logging
from estate_ledger.repositories.sqlite import SQLiteDatabase
from estate_ledger.services.interfaces import Intent


def get_db_path(args: argparse.Namespace) -> Path:
    """Database path from --database, falling back to ESTATE_SQLITE_PATH."""
    if args.database:
        return Path(args.database)
    return Path(get_settings().sqlite_path)


def create_app(db_path: Path) -> Container:
    """Create a container bound to the database at ``db_path``."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return Container(settings=Settings(sqlite_path=db_path))


def _intent(args: argparse.Namespace) -> Intent:
    return Intent(actor_id=args.actor)


def _parse_uuid(value: str, label: str) -> UUID:
    try:
        return UUID(value)
    except ValueError:
        raise ValueError(f"Invalid {label}: {value}") from None


def _parse_amount(value: str, currency: Currency | str) -> Money:
    try:
        return Money(Decimal(value), currency)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value}") from None


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize a new database."""
    db_path = get_db_path(args)

    if db_path.exists() and not args.force:
        print(f"Database already exists at {db_path}")
        print("Use --force to reinitialize (WARNING: will delete existing data)")
        return 1

    if db_path.exists() and args.force:
        db_path.unlink()

    db_path.parent.mkdir(parents=True, exist_ok=True)
    db = SQLiteDatabase(str(db_path))
    db.initialize()
    db.close()

    print(f"Initialized database at {db_path}")
    return 0


def cmd_version(args: argparse.Namespace) -> int:
    """Show version information."""
    print(f"Estate Ledger v{__version__}")
    return 0


def cmd_open(args: argparse.Namespace) -> int:
    """Open an estate for a deceased person."""
    deceased_id = _parse_uuid(args.deceased_id, "deceased id")
    currency = args.currency.upper()
    opening_cash = _parse_amount(args.cash, currency) if args.cash else None
    date_of_death = date.fromisoformat(args.date_of_death) if args.date_of_death else None

    with create_app(get_db_path(args)) as container:
        estate = container.estate_service.open_estate(
            deceased_id=deceased_id,
            name=args.name,
            currency=currency,
            opening_cash=opening_cash,
            date_of_death=date_of_death,
            intent=_intent(args),
        )

    print(f"Opened estate {estate.id}")
    print(f"  Name: {estate.name}")
    print(f"  Cash on hand: {estate.cash_on_hand}")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    """List all estates."""
    with create_app(get_db_path(args)) as container:
        estates = list(container.estate_repository.list_all())

    if not estates:
        print("No estates found")
        return 0

    for estate in estates:
        print(f"{estate.id}  {estate.name} [{estate.status.value}]  {estate.cash_on_hand}")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Show an estate's position and its debts in payment order."""
    estate_id = _parse_uuid(args.estate_id, "estate id")
    with create_app(get_db_path(args)) as container:
        estate = container.estate_service.get_estate(estate_id)

    frozen = f" (frozen: {estate.freeze_reason})" if estate.is_frozen else ""
    print(f"Estate: {estate.name}")
    print(f"  Id: {estate.id}")
    print(f"  Status: {estate.status.value}{frozen}")
    print(f"  Version: {estate.version}")
    print(f"  Cash on hand: {estate.cash_on_hand}")
    print(f"  Reserved for debts: {estate.cash_reserved_for_debts}")
    print(f"  Net worth: {estate.calculate_net_worth()}")
    print(f"  Liabilities: {estate.total_liabilities}")
    print(f"  Hotchpot: {estate.hotchpot_total}")
    print(f"  Distributable pool: {estate.calculate_distributable_pool()}")
    print(f"  Solvent: {'yes' if estate.is_solvent else 'no'}")

    debts = estate.get_debts_in_waterfall_order()
    if debts:
        print("Debts (payment order):")
        for debt in debts:
            print(
                f"  [{debt.priority.rank}] {debt.id}  {debt.creditor_name}: "
                f"{debt.outstanding_balance} ({debt.status.value})"
            )
    if estate.assets:
        print("Assets:")
        for asset in estate.assets.values():
            print(
                f"  {asset.id}  {asset.name} ({asset.asset_type.value}, "
                f"{asset.status.value}): {asset.get_distributable_value()}"
            )
    return 0


def cmd_add_debt(args: argparse.Namespace) -> int:
    """Record a debt against an estate."""
    estate_id = _parse_uuid(args.estate_id, "estate id")
    debt_type = DebtType(args.type)
    secured_asset_id = (
        _parse_uuid(args.secured_asset, "asset id") if args.secured_asset else None
    )

    with create_app(get_db_path(args)) as container:
        service = container.estate_service
        currency = service.get_estate(estate_id).currency
        debt = service.add_debt(
            estate_id,
            creditor_name=args.creditor,
            debt_type=debt_type,
            amount=_parse_amount(args.amount, currency),
            description=args.description or "",
            is_secured=secured_asset_id is not None,
            secured_asset_id=secured_asset_id,
            intent=_intent(args),
        )

    print(f"Added debt {debt.id}")
    print(f"  Creditor: {debt.creditor_name}")
    print(f"  Tier: {debt.priority.rank}")
    print(f"  Balance: {debt.outstanding_balance}")
    return 0


def cmd_pay_debt(args: argparse.Namespace) -> int:
    """Pay a debt out of estate cash."""
    estate_id = _parse_uuid(args.estate_id, "estate id")
    debt_id = _parse_uuid(args.debt_id, "debt id")

    with create_app(get_db_path(args)) as container:
        service = container.estate_service
        currency = service.get_estate(estate_id).currency
        debt = service.pay_debt(
            estate_id,
            debt_id,
            _parse_amount(args.amount, currency),
            intent=_intent(args),
        )

    print(f"Paid debt {debt.id}")
    print(f"  Remaining balance: {debt.outstanding_balance}")
    print(f"  Status: {debt.status.value}")
    return 0


def cmd_freeze(args: argparse.Namespace) -> int:
    """Freeze an estate."""
    estate_id = _parse_uuid(args.estate_id, "estate id")
    with create_app(get_db_path(args)) as container:
        estate = container.estate_service.freeze(estate_id, args.reason, _intent(args))
    print(f"Estate {estate.id} frozen: {estate.freeze_reason}")
    return 0


def cmd_unfreeze(args: argparse.Namespace) -> int:
    """Lift a freeze."""
    estate_id = _parse_uuid(args.estate_id, "estate id")
    with create_app(get_db_path(args)) as container:
        estate = container.estate_service.unfreeze(estate_id, args.reason, _intent(args))
    print(f"Estate {estate.id} unfrozen; status {estate.status.value}")
    return 0


def cmd_readiness(args: argparse.Namespace) -> int:
    """Report whether an estate can be distributed. Exit 2 when it cannot."""
    estate_id = _parse_uuid(args.estate_id, "estate id")
    with create_app(get_db_path(args)) as container:
        readiness = container.estate_service.readiness(estate_id)

    if readiness.is_ready:
        print("Ready for distribution")
        return 0

    print("Not ready for distribution:")
    for blocker in readiness.blockers:
        print(f"  - [{blocker.check.value}] {blocker.message}")
    return 2


def cmd_events(args: argparse.Namespace) -> int:
    """List the committed events of an estate."""
    estate_id = _parse_uuid(args.estate_id, "estate id")
    with create_app(get_db_path(args)) as container:
        events = container.estate_repository.list_events(estate_id)

    if not events:
        print("No events found")
        return 0

    for event in events:
        actor = f" by {event.actor_id}" if event.actor_id else ""
        print(f"{event.occurred_at.isoformat()}  {event.event_type.value}{actor}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="estate-ledger",
        description="Estate Ledger - Estate administration and S.45 debt waterfall",
    )
    parser.add_argument(
        "--database",
        "-d",
        help="Path to SQLite database file",
        default=None,
    )
    parser.add_argument(
        "--actor",
        "-a",
        help="Identity recorded against every change",
        default=None,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # init command
    init_parser = subparsers.add_parser("init", help="Initialize a new database")
    init_parser.add_argument(
        "--force",
        "-f",
        action="store_true",
        help="Force reinitialization (deletes existing data)",
    )
    init_parser.set_defaults(func=cmd_init)

    # version command
    version_parser = subparsers.add_parser("version", help="Show version")
    version_parser.set_defaults(func=cmd_version)

    # open command
    open_parser = subparsers.add_parser("open", help="Open an estate")
    open_parser.add_argument("name", help="Estate name")
    open_parser.add_argument("--deceased-id", required=True, help="Deceased person id")
    open_parser.add_argument("--cash", default=None, help="Opening cash on hand")
    open_parser.add_argument(
        "--currency",
        default=Currency.KES.value,
        choices=[c.value for c in Currency],
        help="Estate currency (default: KES)",
    )
    open_parser.add_argument(
        "--date-of-death", default=None, help="Date of death (YYYY-MM-DD)"
    )
    open_parser.set_defaults(func=cmd_open)

    # list command
    list_parser = subparsers.add_parser("list", help="List estates")
    list_parser.set_defaults(func=cmd_list)

    # show command
    show_parser = subparsers.add_parser("show", help="Show an estate")
    show_parser.add_argument("estate_id", help="Estate id")
    show_parser.set_defaults(func=cmd_show)

    # add-debt command
    add_debt_parser = subparsers.add_parser("add-debt", help="Record a debt")
    add_debt_parser.add_argument("estate_id", help="Estate id")
    add_debt_parser.add_argument("--creditor", required=True, help="Creditor name")
    add_debt_parser.add_argument(
        "--type",
        required=True,
        choices=[t.value for t in DebtType],
        help="Debt type; determines the S.45 tier",
    )
    add_debt_parser.add_argument("--amount", required=True, help="Amount owed")
    add_debt_parser.add_argument("--description", default=None, help="Description")
    add_debt_parser.add_argument(
        "--secured-asset", default=None, help="Asset id securing the debt"
    )
    add_debt_parser.set_defaults(func=cmd_add_debt)

    # pay-debt command
    pay_debt_parser = subparsers.add_parser("pay-debt", help="Pay a debt")
    pay_debt_parser.add_argument("estate_id", help="Estate id")
    pay_debt_parser.add_argument("debt_id", help="Debt id")
    pay_debt_parser.add_argument("amount", help="Amount to pay")
    pay_debt_parser.set_defaults(func=cmd_pay_debt)

    # freeze / unfreeze commands
    freeze_parser = subparsers.add_parser("freeze", help="Freeze an estate")
    freeze_parser.add_argument("estate_id", help="Estate id")
    freeze_parser.add_argument("--reason", required=True, help="Reason for the freeze")
    freeze_parser.set_defaults(func=cmd_freeze)

    unfreeze_parser = subparsers.add_parser("unfreeze", help="Lift a freeze")
    unfreeze_parser.add_argument("estate_id", help="Estate id")
    unfreeze_parser.add_argument("--reason", required=True, help="Reason for lifting")
    unfreeze_parser.set_defaults(func=cmd_unfreeze)

    # readiness command
    readiness_parser = subparsers.add_parser(
        "readiness", help="Check distribution readiness"
    )
    readiness_parser.add_argument("estate_id", help="Estate id")
    readiness_parser.set_defaults(func=cmd_readiness)

    # events command
    events_parser = subparsers.add_parser("events", help="List committed events")
    events_parser.add_argument("estate_id", help="Estate id")
    events_parser.set_defaults(func=cmd_events)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    configure_logging()

    try:
        result: int = args.func(args)
    except EstateLedgerError as e:
        print(f"Error: {e.message}")
        return 1
    except ValueError as e:
        print(f"Error: {e}")
        return 1
    return result


if __name__ == "__main__":
    sys.exit(main())
