"""
Management command to finish box deletions that stopped part-way.

A box deletion records its progress (photos -> items -> box -> done) on a
BoxDeletion row. If a step failed, the row stays unfinished; this command
replays the remaining steps.

Usage:
    python manage.py resume_box_deletions --dry-run
    python manage.py resume_box_deletions
    python manage.py resume_box_deletions --owner 42
"""

from django.core.management.base import BaseCommand

from stash.deletion import pending_deletions, resume_deletion
from stash.exceptions import PersistenceFailure


class Command(BaseCommand):
    help = 'Resume box deletions that did not reach the "done" step'

    def add_arguments(self, parser):
        parser.add_argument(
            '--owner',
            type=int,
            default=None,
            help='Only resume deletions in this owner\'s inventory',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='List unfinished deletions without running them',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']

        jobs = pending_deletions()
        if options['owner'] is not None:
            jobs = jobs.filter(owner_id=options['owner'])

        jobs = list(jobs)
        if not jobs:
            self.stdout.write(self.style.NOTICE("No unfinished box deletions"))
            return

        self.stdout.write(
            self.style.WARNING(
                f"{'[DRY RUN] ' if dry_run else ''}Found {len(jobs)} unfinished box deletion(s)"
            )
        )

        resumed = failed = 0
        for job in jobs:
            label = f"  - {job.box_code} (owner={job.owner_id}, step={job.step}, attempts={job.attempts})"
            if dry_run:
                self.stdout.write(label)
                continue

            try:
                resume_deletion(job)
            except PersistenceFailure as e:
                failed += 1
                self.stdout.write(self.style.ERROR(f"{label}: {e.message}"))
                continue

            resumed += 1
            self.stdout.write(f"{label}: done")

        if dry_run:
            self.stdout.write(self.style.NOTICE("Run without --dry-run to resume these deletions"))
        elif failed:
            self.stdout.write(self.style.ERROR(f"Resumed {resumed} deletion(s); {failed} failed again"))
        else:
            self.stdout.write(self.style.SUCCESS(f"Resumed {resumed} deletion(s)"))
