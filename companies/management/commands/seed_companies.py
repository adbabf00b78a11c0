# companies/management/commands/seed_companies.py
from django.core.management.base import BaseCommand
from django.db import transaction

from companies.models import Company, Platform

PLATFORMS = [
    {"name": "Hatena Bookmark", "base_url": "https://b.hatena.ne.jp/hotentry/it"},
    {"name": "Qiita", "base_url": "https://qiita.com/trend"},
    {"name": "Zenn", "base_url": "https://zenn.dev/"},
]

# Add or edit rows here. website_url defaults to https://<domain>/.
SEED = [
    {"name": "CyberAgent", "domain": "cyberagent.co.jp"},
    {"name": "LINEヤフー", "domain": "lycorp.co.jp"},
    {"name": "メルカリ", "domain": "mercari.com"},
    {"name": "サイボウズ", "domain": "cybozu.co.jp"},
    {"name": "freee", "domain": "freee.co.jp"},
    {"name": "SmartHR", "domain": "smarthr.co.jp"},
    {"name": "クックパッド", "domain": "cookpad.com"},
    {"name": "DeNA", "domain": "dena.com"},
    {"name": "楽天グループ", "domain": "rakuten.co.jp"},
    {"name": "GMOペパボ", "domain": "pepabo.com"},
    {"name": "クラスメソッド", "domain": "classmethod.jp"},
    {"name": "ZOZO", "domain": "zozo.com"},
    {"name": "マネーフォワード", "domain": "moneyforward.com"},
    {"name": "Sansan", "domain": "sansan.com"},
    {"name": "ヤプリ", "domain": "yappli.co.jp"},
]


class Command(BaseCommand):
    help = "Seed platforms and companies from the static lists."

    def add_arguments(self, parser):
        parser.add_argument("--reset", action="store_true",
                            help="Deactivate companies NOT present in the seed list")

    @transaction.atomic
    def handle(self, *args, **opts):
        for row in PLATFORMS:
            Platform.objects.update_or_create(name=row["name"], defaults={"base_url": row["base_url"]})

        keep = {row["domain"].lower() for row in SEED}
        created = updated = 0
        for row in SEED:
            domain = row["domain"].lower()
            defaults = {
                "name": row.get("name", domain)[:200],
                "website_url": row.get("website_url") or f"https://{domain}/",
                "is_active": True,
            }
            _, was_created = Company.objects.update_or_create(domain=domain, defaults=defaults)
            created += 1 if was_created else 0
            updated += 0 if was_created else 1

        if opts["reset"]:
            # deactivate rather than delete: rankings and history keep pointing at them
            qs = Company.objects.active().exclude(domain__in=keep)
            removed = qs.update(is_active=False)
            self.stdout.write(self.style.WARNING(f"Deactivated {removed} companies not in SEED."))

        self.stdout.write(self.style.SUCCESS(
            f"Seeded {len(PLATFORMS)} platforms and companies (created={created}, updated={updated})."
        ))
