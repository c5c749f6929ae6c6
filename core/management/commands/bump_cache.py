from django.core.management.base import BaseCommand, CommandError

from core.gateway import NAMESPACES, get_gateway


class Command(BaseCommand):
    help = "Invalidate cached API responses by bumping namespace versions."

    def add_arguments(self, parser):
        parser.add_argument('namespaces', nargs='*', help=f"defaults to all: {', '.join(NAMESPACES)}")

    def handle(self, *args, **options):
        namespaces = options['namespaces'] or list(NAMESPACES)
        unknown = [ns for ns in namespaces if ns not in NAMESPACES]
        if unknown:
            raise CommandError(f"unknown namespace(s): {', '.join(unknown)}")
        gateway = get_gateway()
        if not gateway.store.enabled:
            self.stdout.write(self.style.WARNING("Key-value store disabled; nothing is cached."))
            return
        gateway.bump_cache_version(*namespaces)
        self.stdout.write(self.style.SUCCESS(f"Bumped {len(namespaces)} namespace(s): {', '.join(namespaces)}"))
