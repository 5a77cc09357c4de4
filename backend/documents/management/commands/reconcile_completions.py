from django.core.management.base import BaseCommand

from documents.services import DocumentService


class Command(BaseCommand):
    help = "Complete sent documents whose signers have all signed (retry for failed completion steps)."

    def handle(self, *args, **options):
        completed = DocumentService.reconcile_completions()
        if completed:
            self.stdout.write(self.style.SUCCESS(
                f"Completed {len(completed)} document(s): {', '.join(str(pk) for pk in completed)}"
            ))
        else:
            self.stdout.write("No documents needed reconciliation.")
