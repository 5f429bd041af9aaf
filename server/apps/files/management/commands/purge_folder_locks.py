"""Management command to purge expired folder-move locks."""

import asyncio
import logging
from typing import Any

from django.core.management.base import BaseCommand

from server.apps.files.infrastructure.factory import build_manager_from_settings
from server.apps.files.logic.locks import purge_expired_locks

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Delete lock objects left behind by moves that never released them."""

    help = 'Purge expired folder-move locks from the bucket'

    def add_arguments(self, parser: Any) -> None:
        """Add command line arguments.

        Args:
            parser: Argument parser.
        """
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Show what would be deleted without deleting',
        )

    def handle(self, *args: Any, **options: Any) -> None:
        """Execute the purge command.

        Args:
            args: Positional arguments (unused).
            options: Command options.
        """
        dry_run = options['dry_run']
        manager = build_manager_from_settings()

        self.stdout.write(
            f'Looking for expired locks under {manager.lock_root!r} '
            f'in bucket {manager.store.bucket}',
        )

        expired = asyncio.run(
            purge_expired_locks(manager.store, manager.lock_root, dry_run=dry_run),
        )

        for key in expired:
            self.stdout.write(f'{"Would delete" if dry_run else "Deleted"}: {key}')

        if dry_run:
            self.stdout.write(
                self.style.SUCCESS(f'Would purge {len(expired)} locks'),
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(f'Purged {len(expired)} locks'),
            )
