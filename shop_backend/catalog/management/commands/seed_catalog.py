# catalog/management/commands/seed_catalog.py

from decimal import Decimal

from django.core.management.base import BaseCommand

from catalog.models import CatalogItem, SizeVariant


class Command(BaseCommand):
    help = "Seed a few live catalog items with size variants (development data)"

    def handle(self, *args, **options):
        self.stdout.write(self.style.WARNING("Seeding catalog..."))

        # (name, hsn, weight kg, [(size, sku, regular, sale, stock)])
        items_data = [
            (
                "Classic Cotton Tee",
                "6109",
                "0.250",
                [
                    ("S", "TEE-CL-S", "799.00", "599.00", 40),
                    ("M", "TEE-CL-M", "799.00", "599.00", 60),
                    ("L", "TEE-CL-L", "799.00", "0", 50),
                ],
            ),
            (
                "Relaxed Linen Shirt",
                "6205",
                "0.400",
                [
                    ("M", "SHR-LN-M", "1999.00", "0", 20),
                    ("L", "SHR-LN-L", "1999.00", "1499.00", 15),
                ],
            ),
            (
                "Everyday Socks",
                "6115",
                "0.100",
                [
                    ("FREE", "SCK-EV-F", "249.00", "0", 200),
                ],
            ),
        ]

        for name, hsn, weight, variants in items_data:
            item, created = CatalogItem.objects.get_or_create(
                name=name,
                defaults={
                    "status": CatalogItem.STATUS_LIVE,
                    "hsn_code": hsn,
                    "weight_kg": Decimal(weight),
                },
            )

            for size, sku, regular, sale, stock in variants:
                SizeVariant.objects.get_or_create(
                    sku=sku,
                    defaults={
                        "item": item,
                        "size": size,
                        "regular_price": Decimal(regular),
                        "sale_price": Decimal(sale),
                        "stock": stock,
                    },
                )

            label = "created" if created else "exists"
            self.stdout.write(f"  {name}: {label} ({len(variants)} sizes)")

        self.stdout.write(self.style.SUCCESS("Catalog seeded."))
