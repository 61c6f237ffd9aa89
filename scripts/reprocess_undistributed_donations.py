"""
Retry commission distribution for successful donations that never got one.

Usage:
    python scripts/reprocess_undistributed_donations.py [--limit N] [--rebuild-wallets]

With --rebuild-wallets every beneficiary touched is re-derived from the ledger afterwards.
"""
import argparse
import asyncio
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from samarpan.config.database import db_config
from samarpan.services.commission_service import rebuild_commission_wallet
from samarpan.services.donation_pipeline import get_undistributed_donations, redistribute_commission
from samarpan.utils.errors import SamarpanError


async def main(limit: int, rebuild_wallets: bool = False):
    await db_config.connect_db()
    await db_config.ensure_indexes()

    donations = await get_undistributed_donations(limit)
    distributed = 0
    failed = 0
    beneficiaries = set()

    for donation in donations:
        donation_id = donation["_id"]
        try:
            result = await redistribute_commission(donation_id)
        except SamarpanError as e:
            print(f"Failed to distribute donation {donation_id}: {e}")
            failed += 1
            continue
        distributed += 1
        beneficiaries.update(d.user_id for d in result.distributions)
        print(f"Donation {donation_id}: commission {result.total_commission}, fund {result.organization_fund}")

    if rebuild_wallets:
        for user_id in sorted(beneficiaries):
            balance = await rebuild_commission_wallet(user_id)
            print(f"Wallet {user_id} -> {balance}")

    print(f"Undistributed donations: {len(donations)}, distributed: {distributed}, failed: {failed}")
    await db_config.close_db()


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--limit", type=int, default=50)
    parser.add_argument("--rebuild-wallets", action="store_true")
    args = parser.parse_args()
    asyncio.run(main(args.limit, rebuild_wallets=args.rebuild_wallets))
