"""Cross-model budget reports.

Two reports are built from the full list of saved models:

* a summary of total cost per discipline, where each model counts
  ``grand_total * number_of_teams``;
* a detailed report with one line per team, so a model saved for three
  teams shows up three times with identical costs.

The folding functions are pure and take the model list directly;
:class:`ModelAggregator` fetches that list from a store first.  A store
failure propagates unchanged and no partial report is produced.
"""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from .calculations import BudgetResult, compute_budget
from .config import level_rank
from .schema import BudgetConfiguration, BudgetModel
from .storage import ModelStore
from .weeks import DEFAULT_HOLIDAY_CALENDAR, HolidayCalendar

logger = logging.getLogger(__name__)

# Configuration fields carried on every detailed report line for export
EXPORTED_CONFIGURATION_FIELDS = (
    'head_coach_rate',
    'assistant_coach_rate',
    'employer_contribution_rate',
    'season_start_date',
    'season_end_date',
    'practices_per_week',
    'practice_duration',
    'num_games',
    'game_duration',
    'playoff_start_date',
    'playoff_end_date',
    'playoff_final_days',
    'playoff_finals_duration',
    'tournament_bonus',
    'federation_fee',
    'transportation_fee',
)

DETAILED_REPORT_COLUMNS: Dict[str, str] = {
    'discipline': 'Discipline',
    'gender': 'Sexe',
    'category': 'Catégorie',
    'level': 'Niveau',
    'team_number': 'Équipe',
    'model_name': 'Modèle',
    'school_name': "Nom de l'école",
    'school_code': "Code d'identification",
    'season_year': 'Année scolaire',
    'active_season_weeks': 'Semaines actives (Saison)',
    'active_playoff_weeks': 'Semaines actives (Séries)',
    'cost_season_head_coach': 'Entraîneur-chef (Saison)',
    'cost_season_assistant_coach': 'Entraîneur adjoint (Saison)',
    'cost_playoffs_head_coach': 'Entraîneur-chef (Séries)',
    'cost_playoffs_assistant_coach': 'Entraîneur adjoint (Séries)',
    'tournament_bonus': 'Frais Tournoi',
    'federation_fee': 'Frais Fédération',
    'transportation_fee': 'Frais de transport',
    'sub_total_regular_season': 'Sous-total Saison Régulière',
    'sub_total_playoffs': 'Sous-total Séries',
    'grand_total': 'Budget total',
}


@dataclass(frozen=True)
class DetailedReportLine:
    """One team of one saved model, with its computed costs."""

    model_id: str
    model_name: str
    team_number: int
    school_name: str
    school_code: str
    configuration: BudgetConfiguration
    result: BudgetResult

    @property
    def discipline(self) -> str:
        return self.configuration.discipline

    @property
    def level(self) -> str:
        return self.configuration.level

    def to_dict(self) -> Dict[str, Any]:
        config = self.configuration
        row: Dict[str, Any] = {
            'model_id': self.model_id,
            'model_name': self.model_name,
            'team_number': self.team_number,
            'school_name': self.school_name,
            'school_code': self.school_code,
            'discipline': config.discipline,
            'gender': config.gender,
            'category': config.category,
            'level': config.level,
            'season_year': config.season_year,
        }
        for name in EXPORTED_CONFIGURATION_FIELDS:
            row[name] = getattr(config, name)
        row.update(self.result.to_dict())
        return row


def summarize_by_discipline(
    models: Iterable[BudgetModel],
    holidays: HolidayCalendar = DEFAULT_HOLIDAY_CALENDAR,
) -> Dict[str, float]:
    """Total cost per discipline across all models.

    Amounts are summed with :func:`math.fsum`, so the totals do not depend
    on the order in which models are listed.

    Returns:
        Dictionary mapping discipline to total cost, keyed in alphabetical order
    """
    contributions: Dict[str, List[float]] = defaultdict(list)
    for model in models:
        result = compute_budget(model.configuration, holidays)
        contributions[model.discipline].append(result.grand_total * model.number_of_teams)
    return {discipline: math.fsum(contributions[discipline]) for discipline in sorted(contributions)}


def build_detailed_report(
    models: Iterable[BudgetModel],
    holidays: HolidayCalendar = DEFAULT_HOLIDAY_CALENDAR,
) -> List[DetailedReportLine]:
    """One line per team, grouped by discipline and ordered by level rank.

    Levels missing from the ranking sort after all ranked levels.  Lines with
    the same discipline and level keep the store's order.
    """
    lines: List[DetailedReportLine] = []
    for model in models:
        result = compute_budget(model.configuration, holidays)
        for team_number in range(1, model.number_of_teams + 1):
            lines.append(DetailedReportLine(
                model_id=model.id,
                model_name=model.name,
                team_number=team_number,
                school_name=model.school_name,
                school_code=model.school_code,
                configuration=model.configuration,
                result=result,
            ))
    return sorted(lines, key=lambda line: (line.discipline, level_rank(line.level)))


class ModelAggregator:
    """Builds reports over every model held by a store."""

    def __init__(self, store: ModelStore, holidays: HolidayCalendar = DEFAULT_HOLIDAY_CALENDAR) -> None:
        self.store = store
        self.holidays = holidays

    async def summary_by_discipline(self) -> Dict[str, float]:
        models = await self.store.list()
        logger.debug("Summarizing %d budget models by discipline", len(models))
        return summarize_by_discipline(models, self.holidays)

    async def detailed_report(self) -> List[DetailedReportLine]:
        models = await self.store.list()
        logger.debug("Building detailed report for %d budget models", len(models))
        return build_detailed_report(models, self.holidays)


def summary_dataframe(summary: Dict[str, float]) -> pd.DataFrame:
    """Summary table sorted by descending total cost."""
    df = pd.DataFrame(
        list(summary.items()),
        columns=['Discipline', 'Coût total annuel'],
    )
    if df.empty:
        return df
    return df.sort_values('Coût total annuel', ascending=False, kind='stable').reset_index(drop=True)


def detailed_report_dataframe(
    lines: List[DetailedReportLine],
    columns: Optional[Dict[str, str]] = None,
) -> pd.DataFrame:
    """Flatten report lines into a display/export table.

    Args:
        lines: Output of :func:`build_detailed_report`
        columns: Mapping of line fields to column labels; defaults to
            :data:`DETAILED_REPORT_COLUMNS`

    Returns:
        DataFrame with one row per line and the labelled columns, in order
    """
    mapping = columns or DETAILED_REPORT_COLUMNS
    if not lines:
        return pd.DataFrame(columns=list(mapping.values()))
    df = pd.DataFrame([line.to_dict() for line in lines])
    return df[list(mapping)].rename(columns=mapping)
