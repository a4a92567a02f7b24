"""
Django management command to compare Estoque rows with the movement history
and optionally repair drifted rows
"""
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from construcaopro.catalog.models import Material
from construcaopro.inventory.models import Estoque
from construcaopro.inventory.services import calcular_estoque_esperado
from construcaopro.obras.models import Almoxarifado


class Command(BaseCommand):
    help = 'Recompute stock from the movement history and report (or fix) drifted Estoque rows'

    def add_arguments(self, parser):
        parser.add_argument(
            '--almoxarifado',
            type=int,
            help='Check a single almoxarifado only',
        )
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Overwrite drifted rows with the recomputed quantity',
        )

    def handle(self, *args, **options):
        almoxarifado_id = options.get('almoxarifado')
        fix = options.get('fix', False)

        self.stdout.write("=" * 80)
        self.stdout.write(self.style.SUCCESS("ESTOQUE vs MOVIMENTAÇÕES"))
        self.stdout.write("=" * 80)

        esperado = calcular_estoque_esperado(almoxarifado_id)

        estoques = Estoque.objects.all()
        if almoxarifado_id:
            estoques = estoques.filter(almoxarifado_id=almoxarifado_id)
        atual = {(e.almoxarifado_id, e.material_id): e for e in estoques}

        divergencias = []
        for chave in sorted(set(esperado) | set(atual)):
            quantidade_esperada = esperado.get(chave, Decimal('0'))
            estoque = atual.get(chave)
            quantidade_atual = estoque.quantidade if estoque else Decimal('0')
            if quantidade_esperada != quantidade_atual:
                divergencias.append((chave, quantidade_atual, quantidade_esperada))

        self.stdout.write(f"Rows checked: {len(set(esperado) | set(atual))}")

        if not divergencias:
            self.stdout.write(self.style.SUCCESS("No discrepancies found."))
            return

        self.stdout.write(self.style.WARNING(f"Discrepancies: {len(divergencias)}"))
        for (almox_id, material_id), quantidade_atual, quantidade_esperada in divergencias:
            self.stdout.write(
                f"  almoxarifado={almox_id} material={material_id}: "
                f"estoque={quantidade_atual} movimentações={quantidade_esperada}"
            )

        if not fix:
            self.stdout.write("Run with --fix to repair.")
            return

        fixed = 0
        with transaction.atomic():
            for (almox_id, material_id), quantidade_atual, quantidade_esperada in divergencias:
                if quantidade_esperada < 0:
                    self.stdout.write(self.style.ERROR(
                        f"  Skipped almoxarifado={almox_id} material={material_id}: history yields negative stock"
                    ))
                    continue
                Estoque.objects.update_or_create(
                    almoxarifado=Almoxarifado.objects.get(pk=almox_id),
                    material=Material.objects.get(pk=material_id),
                    defaults={'quantidade': quantidade_esperada},
                )
                fixed += 1

        self.stdout.write(self.style.SUCCESS(f"Fixed {fixed} rows."))
