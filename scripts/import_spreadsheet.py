#!/usr/bin/env python3
"""
Import a spreadsheet from the command line.

Runs the same pipeline as POST /api/imports/{entity}, without the API.

Usage:
    python scripts/import_spreadsheet.py inventory data/stock.xlsx
    python scripts/import_spreadsheet.py sales orders.xls --chunk-size 50
    python scripts/import_spreadsheet.py payments pay.xlsx --start-chunk 3
    python scripts/import_spreadsheet.py products catalog.xlsx --service-role

Ctrl+C stops the run after the chunk in flight; the summary prints the
--start-chunk value to resume with.
"""

import argparse
import os
import sys
import threading

# Allow imports from the project root when running as a script
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), ".."))

from config import get_admin_client
from exceptions import AppError
from models.imports import ImportProgress, ImportResult
from services.entity_catalog import ENTITY_SCHEMAS
from services.import_service import ImportService
from services.row_transformer import ColumnPrecedence
from services.supabase_committer import SupabaseParentLookup, SupabaseUpsertCommitter


def print_progress(progress: ImportProgress) -> None:
    print(
        f"  [{progress.chunks_committed}/{progress.total_chunks}] "
        f"{progress.records_committed}/{progress.total_records} records "
        f"({progress.fraction:.0%})"
    )


def print_result(result: ImportResult) -> None:
    print()
    print(f"{'OK' if result.success else 'FAILED'}: {result.message}")
    print(f"  Rows read:            {result.total_rows_read}")
    print(f"  Duplicates collapsed: {result.duplicates_collapsed}")
    print(f"  Batches committed:    {result.batches_committed}")
    for rejection in result.rejections:
        print(f"  Row {rejection.row}: {rejection.reason}")
    for warning in result.warnings:
        print(f"  Warning: {warning}")
    if not result.success:
        print(f"  Resume with: --start-chunk {result.next_chunk}")


def build_service(args) -> ImportService:
    if not args.service_role:
        return ImportService(
            chunk_size=args.chunk_size,
            precedence=ColumnPrecedence(args.precedence),
        )

    client = get_admin_client()
    if client is None:
        print("ERROR: --service-role needs SUPABASE_SERVICE_KEY to be set.")
        sys.exit(1)

    return ImportService(
        committer_factory=lambda table, stamp: SupabaseUpsertCommitter(
            table, stamp_updated_at=stamp, client=client
        ),
        parent_lookup=SupabaseParentLookup(client=client),
        chunk_size=args.chunk_size,
        precedence=ColumnPrecedence(args.precedence),
    )


def main():
    parser = argparse.ArgumentParser(
        description="Import an Excel file into one entity table."
    )
    parser.add_argument("entity", choices=sorted(ENTITY_SCHEMAS), help="Entity to import")
    parser.add_argument("file", help="Path to the .xlsx or .xls file")
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=None,
        help="Records per upsert (default: IMPORT_CHUNK_SIZE, 100)",
    )
    parser.add_argument(
        "--start-chunk",
        type=int,
        default=0,
        help="Skip chunks committed by an earlier, interrupted run",
    )
    parser.add_argument(
        "--precedence",
        choices=[p.value for p in ColumnPrecedence],
        default=ColumnPrecedence.LAST.value,
        help="Which column wins when two headers map to one field",
    )
    parser.add_argument(
        "--service-role",
        action="store_true",
        help="Write with the service role key instead of the anon key",
    )

    args = parser.parse_args()

    if not os.path.isfile(args.file):
        print(f"ERROR: File not found: {args.file}")
        sys.exit(1)

    service = build_service(args)
    cancel = threading.Event()
    outcome: dict = {}

    def run():
        try:
            outcome["result"] = service.import_file(
                args.entity,
                args.file,
                filename=os.path.basename(args.file),
                on_progress=print_progress,
                cancel_event=cancel,
                start_chunk=args.start_chunk,
            )
        except AppError as e:
            outcome["error"] = e

    print(f">>> Importing {args.file} as {args.entity}")
    worker = threading.Thread(target=run)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.2)
    except KeyboardInterrupt:
        print("\nCancelling after the current chunk...")
        cancel.set()
        worker.join()

    if "error" in outcome:
        error = outcome["error"]
        print(f"ERROR [{error.code}]: {error.message}")
        if error.details:
            print(f"  {error.details}")
        sys.exit(1)

    result = outcome.get("result")
    if result is None:
        # Unexpected error; the thread has already printed the traceback
        sys.exit(1)
    print_result(result)
    sys.exit(0 if result.success else 1)


if __name__ == "__main__":
    main()
