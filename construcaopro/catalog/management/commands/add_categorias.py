"""
Management command to add the standard construction material categories
"""
from django.core.management.base import BaseCommand
from django.db.models import ProtectedError
from construcaopro.catalog.models import Categoria


# (nome, unidade)
CATEGORIAS = [
    ('Cimento e Argamassa', 'SC'),
    ('Areia e Brita', 'M3'),
    ('Tijolos e Blocos', 'UN'),
    ('Aço e Vergalhões', 'KG'),
    ('Madeira', 'M'),
    ('Telhas', 'UN'),
    ('Tubos e Conexões', 'PC'),
    ('Material Elétrico', 'UN'),
    ('Fios e Cabos', 'RL'),
    ('Tintas', 'GL'),
    ('Impermeabilizantes', 'L'),
    ('Revestimentos e Pisos', 'M2'),
    ('Louças e Metais', 'UN'),
    ('Ferragens', 'CX'),
    ('EPI', 'PR'),
    ('Ferramentas', 'UN'),
]


class Command(BaseCommand):
    help = "Adds the standard construction material categories to the database"

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Remove categories without materials before adding',
        )

    def handle(self, *args, **options):
        self.stdout.write(self.style.SUCCESS("=" * 80))
        self.stdout.write(self.style.SUCCESS("ADDING MATERIAL CATEGORIES"))
        self.stdout.write(self.style.SUCCESS("=" * 80))

        if options['clear']:
            removed = 0
            for categoria in Categoria.objects.all():
                try:
                    categoria.delete()
                    removed += 1
                except ProtectedError:
                    self.stdout.write(self.style.WARNING(f"  Kept (has materials): {categoria.nome}"))
            self.stdout.write(self.style.SUCCESS(f"Removed {removed} categories."))

        created_count = 0
        skipped_count = 0

        for nome, unidade in CATEGORIAS:
            categoria, created = Categoria.objects.get_or_create(nome=nome, defaults={'unidade': unidade})
            if created:
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f"  ✓ Created: {nome} ({unidade})"))
            else:
                skipped_count += 1
                self.stdout.write(self.style.WARNING(f"  ⊘ Skipped (already exists): {nome}"))

        self.stdout.write(self.style.SUCCESS("\n" + "=" * 80))
        self.stdout.write(f"Categories Created: {created_count}")
        self.stdout.write(f"Categories Skipped (already exist): {skipped_count}")
        self.stdout.write(f"Total Categories in Database: {Categoria.objects.count()}")
        self.stdout.write(self.style.SUCCESS("=" * 80))
