#!/usr/bin/env python3
"""Example usage of the PDF Pattern Renamer library."""

from pathlib import Path

from pdf_pattern_renamer.batch_renamer import BatchRenamer
from pdf_pattern_renamer.config import load_config
from pdf_pattern_renamer.file_collection import FileCollection
from pdf_pattern_renamer.models import CoordinateSpace, Rectangle, Selection
from pdf_pattern_renamer.pattern_replay import PatternReplayer
from pdf_pattern_renamer.pattern_store import JsonFileStore, PatternStore
from pdf_pattern_renamer.text_extractor import TextIntersectionEngine


def capture_invoice_pattern(sample_pdf: str, store: PatternStore) -> None:
    """Save the top-left header region of a sample invoice as a pattern."""
    files = FileCollection("files")
    sample = files.add(sample_pdf)

    # Region in PDF points, top-left origin.
    rect = Rectangle(left=60, top=80, right=360, bottom=110, space=CoordinateSpace.PDF)

    replayer = PatternReplayer()
    with replayer.open_document(sample) as doc:
        page = doc.get_page(1)
        text = TextIntersectionEngine().extract(
            rect, page.get_text_runs(1.0), page_height=page.height
        )

    selection = Selection(page=1, rect=rect, capture_zoom=1.0, extracted_text=text)
    pattern = store.save(selection, "Invoice Number")
    print(f"Saved {pattern.name!r}: {pattern.sample_text!r}")

    store.add_regex("Client", r"client:\s*(.+)", "Client name after 'Client:'")


def rename_folder(folder: str, store: PatternStore, dry_run: bool = True) -> None:
    """Rename every PDF in *folder* from the invoice and client patterns."""
    bulk = FileCollection("bulk")
    _, errors = bulk.add_many(sorted(Path(folder).glob("*.pdf")))
    for err in errors:
        print(f"  could not open {err}")

    patterns = [store.find("Invoice Number"), store.find("Client")]
    plans, summary = BatchRenamer().run(
        bulk.files, patterns, separator="_", dry_run=dry_run
    )

    for plan in plans:
        target = plan.target_path.name if plan.target_path else f"(skipped: {plan.skipped_reason})"
        print(f"  {plan.file.name} -> {target}")

    print(f"\nRename Summary{' (dry run)' if dry_run else ''}:")
    print(f"  Total files: {summary.total}")
    print(f"  Succeeded: {summary.succeeded}")
    print(f"  Failed: {summary.failed}")
    print(f"  Skipped: {summary.skipped}")
    print(f"  Time: {summary.processing_time_seconds:.2f}s")


def main():
    """Example usage."""
    config = load_config()
    store = PatternStore(JsonFileStore(config.store_path), config.collection_key)

    # Example 1: Capture patterns from a sample invoice
    print("Example 1: Capturing patterns...")
    # capture_invoice_pattern("sample_invoice.pdf", store)

    # Example 2: Preview renames for a folder
    print("\nExample 2: Previewing renames...")
    # rename_folder("invoices/", store, dry_run=True)

    print("\nUncomment the function calls above and provide PDF paths to run.")
    print(f"Patterns are stored in {config.store_path} ({len(store.list())} saved).")


if __name__ == "__main__":
    main()
