"""
Management command to compare material stock with the movement ledger.

Usage:
    python manage.py check_stock_ledger
    python manage.py check_stock_ledger --fix
"""

from django.core.management.base import BaseCommand
from django.db.models import Sum
from django.db.models.functions import Coalesce

from procureman import purchasing
from procureman.models import Material


class Command(BaseCommand):
    """Stock ledger drift check command."""

    help = 'Compara el stock de cada material con la suma de sus movimientos'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Corrige el stock de los materiales con diferencias',
        )

    def handle(self, *args, **options):
        materials = Material.objects.annotate(
            ledger=Coalesce(Sum('movements__delta'), 0),
        ).order_by('pk')

        drifted = [m for m in materials if m.ledger != m.stock]

        for material in drifted:
            self.stdout.write(
                f'{material.name} (#{material.pk}): stock {material.stock}, movimientos {material.ledger}'
            )

        if not drifted:
            self.stdout.write(self.style.SUCCESS('0 material(es) con diferencias'))
        elif options['fix']:
            for material in drifted:
                purchasing.recalculate_stock(material.pk)
            self.stdout.write(
                self.style.SUCCESS(f'{len(drifted)} material(es) corregido(s)')
            )
        else:
            self.stdout.write(
                self.style.WARNING(f'{len(drifted)} material(es) con diferencias')
            )
