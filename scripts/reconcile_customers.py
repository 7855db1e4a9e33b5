#!/usr/bin/env python3
"""
Bulk sync and reconciliation of clinic patients against POS customers.

Usage:
    python scripts/reconcile_customers.py sync-all
    python scripts/reconcile_customers.py candidates --min-score 50

Configuration is read from the environment / .env like the service itself
(POS_API_TOKEN, PATIENT_STORE_URL, PATIENT_STORE_KEY, ...).
"""

import argparse
import asyncio
import logging
import sys

from src.exceptions import PosSyncError
from src.services.patient_store_service import PatientStoreService
from src.services.pos_service import PosService
from src.sync.patient_sync import PatientSyncService


async def run_sync_all(sync_service: PatientSyncService) -> int:
    """Sync every patient and print the totals."""
    result = await sync_service.sync_all()

    print(f"Total:     {result.total}")
    print(f"Succeeded: {result.succeeded}")
    print(f"Failed:    {result.failed}")
    if result.skipped:
        print(f"Skipped:   {result.skipped}")
    for error in result.errors:
        print(f"  - {error}")

    return 0 if result.failed == 0 and not result.errors else 1


async def run_candidates(
    sync_service: PatientSyncService, min_score: int, limit: int
) -> int:
    """Print the best patient candidates for every POS customer."""
    try:
        results = await sync_service.list_candidates()
    except PosSyncError as e:
        print(f"Could not list candidates: {e}", file=sys.stderr)
        return 1

    unmatched = 0
    for entry in results:
        customer = entry.customer
        candidates = [c for c in entry.candidates if c.score >= min_score][:limit]
        print(f"{customer.name} (id: {customer.id})")
        if not candidates:
            unmatched += 1
            print("  no candidates")
            continue
        for candidate in candidates:
            patient = candidate.patient
            print(
                f"  {candidate.score:>4}  {patient.first_name} {patient.last_name} "
                f"(id: {patient.id}) - {', '.join(candidate.reasons)}"
            )

    print(f"\n{len(results)} customer(s), {unmatched} without candidates.")
    return 0


async def main_async(args: argparse.Namespace) -> int:
    pos = PosService()
    store = PatientStoreService()
    sync_service = PatientSyncService(pos=pos, store=store, concurrency=args.concurrency)

    try:
        if args.command == "sync-all":
            return await run_sync_all(sync_service)
        return await run_candidates(sync_service, args.min_score, args.limit)
    finally:
        await pos.close()
        await store.close()


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Sync clinic patients to POS customers and review matches",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Patients synced concurrently (default: SYNC_CONCURRENCY or 1)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("sync-all", help="Sync every non-deleted patient")

    candidates = subparsers.add_parser(
        "candidates", help="List match candidates for every POS customer"
    )
    candidates.add_argument(
        "--min-score", type=int, default=1, help="Hide candidates below this score"
    )
    candidates.add_argument(
        "--limit", type=int, default=3, help="Candidates shown per customer"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    sys.exit(asyncio.run(main_async(args)))


if __name__ == "__main__":
    main()
