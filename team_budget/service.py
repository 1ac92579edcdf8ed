"""Budget model operations used by the calculator and report pages.

Payloads are validated here, once, before anything reaches the store or the
cost engine.  Missing ids become :class:`~team_budget.errors.NotFound`;
store failures pass through as
:class:`~team_budget.errors.StorageUnavailable`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .errors import NotFound, ValidationError
from .reports import DetailedReportLine, ModelAggregator
from .schema import BudgetModel, coerce_fields, generate_model_name
from .storage import ModelStore
from .weeks import DEFAULT_HOLIDAY_CALENDAR, HolidayCalendar

logger = logging.getLogger(__name__)


class BudgetModelService:
    """Create, read, update and delete budget models, plus the report reads."""

    def __init__(self, store: ModelStore, holidays: HolidayCalendar = DEFAULT_HOLIDAY_CALENDAR) -> None:
        self.store = store
        self.aggregator = ModelAggregator(store, holidays)

    async def create_model(self, payload: Mapping[str, Any]) -> BudgetModel:
        fields = self._validate(payload, partial=False)
        return await self.store.create(fields)

    async def list_models(self) -> List[BudgetModel]:
        return await self.store.list()

    async def get_model(self, model_id: str) -> BudgetModel:
        model = await self.store.get(model_id)
        if model is None:
            raise NotFound(model_id)
        return model

    async def update_model(self, model_id: str, payload: Mapping[str, Any]) -> BudgetModel:
        fields = self._validate(payload, partial=True)
        model = await self.store.update(model_id, fields)
        if model is None:
            raise NotFound(model_id)
        return model

    async def delete_model(self, model_id: str) -> None:
        result = await self.store.delete(model_id)
        if not result.get('success'):
            raise NotFound(model_id)

    async def find_by_name(self, name: str) -> Optional[BudgetModel]:
        for model in await self.store.list():
            if model.name == name:
                return model
        return None

    async def save_model(self, payload: Mapping[str, Any]) -> Tuple[BudgetModel, bool]:
        """Save the calculator form, overwriting any model with the same name.

        The name is generated from the season, school and team fields unless
        the payload carries one.

        Returns:
            The stored model and ``True`` when it was newly created
        """
        data: Dict[str, Any] = dict(payload)
        if not str(data.get('name') or '').strip():
            data.pop('name', None)
            data['name'] = generate_model_name(self._validate(data, partial=True))
        fields = self._validate(data, partial=False)

        existing = await self.find_by_name(fields['name'])
        if existing is not None:
            logger.info("Overwriting budget model '%s' (%s)", fields['name'], existing.id)
            return await self.update_model(existing.id, fields), False
        logger.info("Saving new budget model '%s'", fields['name'])
        return await self.store.create(fields), True

    async def summary_by_discipline(self) -> Dict[str, float]:
        return await self.aggregator.summary_by_discipline()

    async def detailed_report(self) -> List[DetailedReportLine]:
        return await self.aggregator.detailed_report()

    def _validate(self, payload: Mapping[str, Any], partial: bool) -> Dict[str, Any]:
        try:
            return coerce_fields(payload, partial=partial)
        except ValidationError as e:
            logger.warning("Rejected budget model payload: %s", ", ".join(sorted(e.errors)))
            raise
