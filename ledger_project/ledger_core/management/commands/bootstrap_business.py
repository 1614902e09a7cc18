import datetime
from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from ledger_core.models import Business, Currency
from ledger_core.services.bootstrap import bootstrap_business

User = get_user_model()


def _parse_date(value):
    try:
        return datetime.date.fromisoformat(value)
    except ValueError:
        raise CommandError(f"'{value}' is not an ISO date (YYYY-MM-DD).")


class Command(BaseCommand):
    help = (
        "Create a business (tenant) and seed its chart of accounts, "
        "voucher types and first financial year."
    )

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument("name", help="Name of the business to create.")
        parser.add_argument(
            "--currency", default="USD", help="ISO code of the reporting currency."
        )
        parser.add_argument(
            "--year-start",
            help="First day of the financial year (default: 1 Jan of this year).",
        )
        parser.add_argument(
            "--year-end",
            help="Last day of the financial year (default: 31 Dec of the start year).",
        )
        parser.add_argument(
            "--owner", help="Username that owns the business and lands in it."
        )

    @transaction.atomic
    def handle(self, *args, **options):
        today = datetime.date.today()
        year_start = (
            _parse_date(options["year_start"]) if options["year_start"]
            else datetime.date(today.year, 1, 1)
        )
        year_end = (
            _parse_date(options["year_end"]) if options["year_end"]
            else datetime.date(year_start.year, 12, 31)
        )

        # get_or_create returns (object, created); currency rows are shared
        currency, _ = Currency.objects.get_or_create(
            code=options["currency"].upper(),
            defaults={"name": options["currency"].upper()},
        )

        owner = None
        if options["owner"]:
            owner = User.objects.filter(username=options["owner"]).first()
            if owner is None:
                raise CommandError(f"User '{options['owner']}' does not exist.")

        business = Business.objects.create(
            name=options["name"], default_currency=currency, owner=owner)
        # print text to console
        self.stdout.write(self.style.SUCCESS(f"Created business: {business} ({business.slug})"))

        try:
            seeded = bootstrap_business(business, year_start, year_end, user=owner)
        except ValidationError as exc:
            raise CommandError("; ".join(exc.messages))

        if owner is not None and owner.default_business_id is None:
            owner.default_business = business
            owner.save(update_fields=["default_business"])

        self.stdout.write(self.style.SUCCESS(
            f"Seeded {len(seeded['groups'])} account groups and "
            f"{len(seeded['voucher_types'])} voucher types"
        ))
        self.stdout.write(self.style.SUCCESS(
            f"Current financial year: {seeded['financial_year']}"))
