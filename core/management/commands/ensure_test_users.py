from django.core.management.base import BaseCommand
from django.contrib.auth.hashers import make_password
from core.models import User

TEST_SET = [
    ("admin1", "admin", "Admin Posyandu"),
    ("kader1", "kader", "Kader Satu"),
    ("kader2", "kader", "Kader Dua"),
]


class Command(BaseCommand):
    help = "Ensure test staff accounts exist with the given password (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--password", default="posyandu123")

    def handle(self, *args, **opts):
        password = make_password(opts["password"])
        for username, role, name in TEST_SET:
            u, created = User.objects.get_or_create(
                username=username,
                defaults={"role": role, "password": password, "is_active": True, "first_name": name},
            )
            if not created:
                # reset password, role and active flag
                u.password = password
                u.role = role
                u.is_active = True
                u.save(update_fields=["password", "role", "is_active"])
            self.stdout.write(self.style.SUCCESS(f"ok: {username} ({role})"))
        self.stdout.write(self.style.SUCCESS("All test users ensured."))
