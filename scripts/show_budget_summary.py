#!/usr/bin/env python3
"""Print the per-discipline cost summary and the detailed team report."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from team_budget.formatting import format_currency
from team_budget.logging_config import setup_logging
from team_budget.reports import detailed_report_dataframe, summary_dataframe
from team_budget.service import BudgetModelService
from team_budget.storage import create_store


async def main(db_path: str | None = None, detailed: bool = False) -> None:
    service = BudgetModelService(create_store(db_path=db_path))
    summary = await service.summary_by_discipline()
    if not summary:
        print("No saved budget models.")
        return

    df = summary_dataframe(summary)
    df['Coût total annuel'] = df['Coût total annuel'].map(format_currency)
    print("Total annual cost by discipline:")
    print(df.to_string(index=False))
    print(f"\nAll disciplines: {format_currency(sum(summary.values()))}")

    if detailed:
        lines = await service.detailed_report()
        columns: List[str] = ['Discipline', 'Niveau', 'Équipe', 'Modèle', 'Budget total']
        print("\nTeams:")
        print(detailed_report_dataframe(lines)[columns].to_string(index=False))


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Show saved budget model totals.')
    parser.add_argument('--db', default=None, help='SQLite database path (defaults to TEAM_BUDGET_DB_PATH)')
    parser.add_argument('--detailed', action='store_true', help='Also print one line per team')
    args = parser.parse_args()
    setup_logging()
    asyncio.run(main(db_path=args.db, detailed=args.detailed))
