"""Budget calculator page.

The form keeps its raw values in ``st.session_state`` (one widget key per
model field, mirrored in ``form_values`` so they survive page changes).
Every rerun rebuilds a :class:`BudgetConfiguration` from those values
and recomputes the budget, so results always match the inputs.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime
from typing import Any, Coroutine, Dict, List, Optional, TypeVar

import pandas as pd
import streamlit as st

from . import config
from .calculations import BudgetResult, compute_budget, cost_breakdown
from .errors import BudgetError, ValidationError
from .formatting import format_currency, format_date, format_date_range, safe_filename
from .logging_config import setup_logging
from .pages.config import get_calculator_config, get_default_form_values
from .schema import (
    CONFIGURATION_FIELDS,
    DATE,
    DECIMAL,
    INTEGER,
    MODEL_FIELDS,
    NUMBER,
    BudgetConfiguration,
    BudgetModel,
    generate_model_name,
)
from .service import BudgetModelService
from .storage import create_store
from .visualization import create_cost_breakdown_chart
from .weeks import DEFAULT_HOLIDAY_CALENDAR

T = TypeVar('T')

FORM_FIELDS = [spec for spec in MODEL_FIELDS if spec.name != 'name']
CONFIGURATION_NAMES = [spec.name for spec in CONFIGURATION_FIELDS]


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a store coroutine from Streamlit's synchronous script thread."""
    return asyncio.run(coro)


def get_service() -> BudgetModelService:
    """Service kept in session state so every rerun and page shares one store."""
    if 'budget_service' not in st.session_state:
        st.session_state.budget_service = BudgetModelService(create_store())
    return st.session_state.budget_service


# ---------------------------------------------------------------------------
# Form state helpers
# ---------------------------------------------------------------------------


def _widget_key(name: str) -> str:
    return f"form_{name}"


def _to_widget_value(kind: str, value: Any) -> Any:
    if kind == DATE:
        if value is None:
            return None
        return value.date() if isinstance(value, datetime) else value
    if kind in (DECIMAL, NUMBER):
        return float(value)
    if kind == INTEGER:
        return int(value)
    return value if value is not None else ""


def initial_form_values() -> Dict[str, Any]:
    """Default form values converted to the types the widgets expect."""
    defaults = get_default_form_values()
    return {spec.name: _to_widget_value(spec.kind, defaults.get(spec.name, spec.default)) for spec in FORM_FIELDS}


def form_values_from_model(model: BudgetModel) -> Dict[str, Any]:
    """Widget values that reproduce a saved model in the form."""
    values = model.to_fields()
    return {spec.name: _to_widget_value(spec.kind, values[spec.name]) for spec in FORM_FIELDS}


def configuration_from_form(values: Dict[str, Any]) -> BudgetConfiguration:
    """Validate the configuration part of the form.

    Raises:
        ValidationError: If a value is missing or malformed
    """
    return BudgetConfiguration.from_raw({name: values.get(name) for name in CONFIGURATION_NAMES})


def budget_sheet_dataframe(values: Dict[str, Any], result: BudgetResult) -> pd.DataFrame:
    """Two-column sheet (parameter, value) with the inputs and the cost breakdown.

    Used for the CSV download of the current budget.
    """
    configuration = configuration_from_form(values)
    rows: List[tuple] = [
        ("Année scolaire", configuration.season_year),
        ("Nom de l'école", values.get('school_name', '')),
        ("Code d'identification", values.get('school_code', '')),
        ("Discipline", configuration.discipline),
        ("Sexe", configuration.gender),
        ("Catégorie", configuration.category),
        ("Niveau", configuration.level),
        ("Taux horaire Chef ($/h)", configuration.head_coach_rate),
        ("Taux horaire Adjoint ($/h)", configuration.assistant_coach_rate),
        ("Part employeur (%)", configuration.employer_contribution_rate),
        ("Période de la saison", format_date_range(configuration.season_start_date, configuration.season_end_date)),
        ("Semaines actives (Saison)", result.active_season_weeks),
        ("Entraînements / semaine", configuration.practices_per_week),
        ("Durée entraînement (heures)", configuration.practice_duration),
        ("Nombre de matchs", configuration.num_games),
        ("Durée match (heures)", configuration.game_duration),
        ("Période des séries", format_date_range(configuration.playoff_start_date, configuration.playoff_end_date)),
        ("Semaines actives (Séries)", result.active_playoff_weeks),
        ("Jours de finales", configuration.playoff_final_days),
        ("Durée jour de finale (heures)", configuration.playoff_finals_duration),
    ]
    rows.extend(cost_breakdown(configuration, result).items())
    rows.extend([
        ("Sous-total Saison Régulière", result.sub_total_regular_season),
        ("Sous-total Séries", result.sub_total_playoffs),
        ("BUDGET TOTAL", result.grand_total),
    ])
    return pd.DataFrame(rows, columns=["Paramètre", "Valeur"])


def _ensure_form_state() -> None:
    """Restore widget keys from ``form_values`` before the form is drawn.

    Streamlit drops a widget's key after a run in which the widget is not
    drawn (e.g. a visit to the reports page), so the form is mirrored in
    the plain ``form_values`` entry and copied back here.
    """
    state = st.session_state
    if 'form_values' not in state:
        state['form_values'] = initial_form_values()
        state['loaded_model_id'] = None
    for name, value in state['form_values'].items():
        key = _widget_key(name)
        if key not in state:
            state[key] = value


def _current_form_values() -> Dict[str, Any]:
    state = st.session_state
    saved = state.get('form_values', {})
    return {
        spec.name: state[_widget_key(spec.name)] if _widget_key(spec.name) in state else saved.get(spec.name)
        for spec in FORM_FIELDS
    }


def _remember_form_values() -> None:
    st.session_state['form_values'] = _current_form_values()


def _load_model_into_form(model: BudgetModel) -> None:
    values = form_values_from_model(model)
    for name, value in values.items():
        st.session_state[_widget_key(name)] = value
    st.session_state['form_values'] = values
    st.session_state['loaded_model_id'] = model.id


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _render_model_sidebar(service: BudgetModelService, model_name: str, ui: Dict[str, Any]) -> None:
    labels = ui.get('labels', {})
    messages = ui.get('messages', {})

    st.sidebar.header("📁 Modèles")
    try:
        models = run_async(service.list_models())
    except BudgetError as e:
        st.sidebar.error(messages.get('storage_error', str(e)))
        models = []

    by_id = {model.id: model for model in models}
    if models:
        options = ["(aucun)"] + list(by_id)
        chosen = st.sidebar.selectbox(
            labels.get('load_select', "Charger un modèle"),
            options=options,
            format_func=lambda model_id: by_id[model_id].name if model_id in by_id else model_id,
            key='load_model_select',
        )
        if chosen in by_id and st.sidebar.button("Charger", use_container_width=True):
            _load_model_into_form(by_id[chosen])
            st.rerun()
    else:
        st.sidebar.info(messages.get('no_models', "Aucun modèle de budget sauvegardé."))

    st.sidebar.number_input(
        labels.get('number_of_teams', "Nombre d'équipes"),
        min_value=1,
        step=1,
        key=_widget_key('number_of_teams'),
    )
    st.sidebar.caption(f"Nom du modèle : **{model_name or '-'}**")

    if st.sidebar.button(labels.get('save_button', "Sauvegarder le modèle"), type="primary", use_container_width=True):
        try:
            model, created = run_async(service.save_model(_current_form_values()))
        except ValidationError as e:
            st.sidebar.error("Champs invalides : " + ", ".join(f"{k} ({v})" for k, v in e.errors.items()))
        except BudgetError as e:
            st.sidebar.error(str(e))
        else:
            st.session_state.loaded_model_id = model.id
            key = 'model_created' if created else 'model_updated'
            st.sidebar.success(messages.get(key, "{name}").format(name=model.name))

    loaded_id = st.session_state.get('loaded_model_id')
    if loaded_id and loaded_id in by_id:
        if st.sidebar.button(labels.get('delete_button', "Supprimer le modèle chargé"), use_container_width=True):
            try:
                run_async(service.delete_model(loaded_id))
            except BudgetError as e:
                st.sidebar.error(str(e))
            else:
                st.session_state.loaded_model_id = None
                st.sidebar.warning(messages.get('model_deleted', "{name}").format(name=by_id[loaded_id].name))
                st.rerun()


def _render_holiday_caption(start: Optional[date], end: Optional[date]) -> None:
    skipped = DEFAULT_HOLIDAY_CALENDAR.weeks_between(start, end)
    if skipped:
        st.caption("Semaines de congé exclues : " + ", ".join(format_date(week) for week in skipped))


def _render_form(cfg: Dict[str, Any]) -> None:
    labels = cfg['ui']['labels']
    choices = cfg['choices']

    st.subheader("⚙️ Paramètres")
    col1, col2, col3 = st.columns(3)
    with col1:
        st.text_input(labels['season_year'], key=_widget_key('season_year'))
        st.selectbox(labels['discipline'], choices['disciplines'], key=_widget_key('discipline'))
    with col2:
        st.text_input(labels['school_name'], key=_widget_key('school_name'))
        st.selectbox(labels['gender'], choices['genders'], key=_widget_key('gender'))
        st.selectbox(labels['level'], choices['levels'], key=_widget_key('level'))
    with col3:
        st.text_input(labels['school_code'], key=_widget_key('school_code'))
        st.selectbox(labels['category'], choices['categories'], key=_widget_key('category'))

    col1, col2, col3 = st.columns(3)
    with col1:
        st.number_input(labels['head_coach_rate'], min_value=0.0, step=0.5, key=_widget_key('head_coach_rate'))
    with col2:
        st.number_input(labels['assistant_coach_rate'], min_value=0.0, step=0.5, key=_widget_key('assistant_coach_rate'))
    with col3:
        st.number_input(labels['employer_contribution_rate'], min_value=0.0, step=0.1, key=_widget_key('employer_contribution_rate'))

    st.markdown(f"**{labels['season_dates']}**")
    col1, col2 = st.columns(2)
    with col1:
        st.date_input("Début", key=_widget_key('season_start_date'), format="YYYY-MM-DD")
        st.number_input(labels['practices_per_week'], min_value=0, step=1, key=_widget_key('practices_per_week'))
        st.number_input(labels['num_games'], min_value=0, step=1, key=_widget_key('num_games'))
    with col2:
        st.date_input("Fin", key=_widget_key('season_end_date'), format="YYYY-MM-DD")
        st.number_input(labels['practice_duration'], min_value=0.0, step=0.5, key=_widget_key('practice_duration'))
        st.number_input(labels['game_duration'], min_value=0.0, step=0.5, key=_widget_key('game_duration'))
    _render_holiday_caption(
        st.session_state.get(_widget_key('season_start_date')),
        st.session_state.get(_widget_key('season_end_date')),
    )

    st.markdown(f"**{labels['playoff_dates']}**")
    col1, col2 = st.columns(2)
    with col1:
        st.date_input("Début", key=_widget_key('playoff_start_date'), format="YYYY-MM-DD")
        st.number_input(labels['playoff_final_days'], min_value=0, step=1, key=_widget_key('playoff_final_days'))
    with col2:
        st.date_input("Fin", key=_widget_key('playoff_end_date'), format="YYYY-MM-DD")
        st.number_input(labels['playoff_finals_duration'], min_value=0.0, step=0.5, key=_widget_key('playoff_finals_duration'))
    _render_holiday_caption(
        st.session_state.get(_widget_key('playoff_start_date')),
        st.session_state.get(_widget_key('playoff_end_date')),
    )

    col1, col2, col3 = st.columns(3)
    with col1:
        st.number_input(labels['tournament_bonus'], min_value=0.0, step=50.0, key=_widget_key('tournament_bonus'))
    with col2:
        st.number_input(labels['federation_fee'], min_value=0.0, step=50.0, key=_widget_key('federation_fee'))
    with col3:
        st.number_input(labels['transportation_fee'], min_value=0.0, step=50.0, key=_widget_key('transportation_fee'))


def _render_results(values: Dict[str, Any], configuration: BudgetConfiguration, result: BudgetResult, model_name: str) -> None:
    st.subheader("📊 Résultats")
    col1, col2, col3 = st.columns(3)
    col1.metric("Sous-total Saison Régulière", format_currency(result.sub_total_regular_season))
    col2.metric("Sous-total Séries", format_currency(result.sub_total_playoffs))
    col3.metric("Budget total", format_currency(result.grand_total))
    st.caption(
        f"Semaines actives : {result.active_season_weeks} (saison), "
        f"{result.active_playoff_weeks} (séries)"
    )

    breakdown = cost_breakdown(configuration, result)
    table = breakdown.map(format_currency).to_frame()
    st.dataframe(table, use_container_width=True)
    st.plotly_chart(create_cost_breakdown_chart(breakdown), use_container_width=True)

    sheet = budget_sheet_dataframe(values, result)
    st.download_button(
        label="📥 Exporter le budget (CSV)",
        data=sheet.to_csv(index=False),
        file_name=f"Budget_-_{safe_filename(model_name)}.csv",
        mime="text/csv",
    )


def main() -> None:
    """Render the calculator page."""
    st.set_page_config(page_title="Budget d'équipe", page_icon="🧮", layout="wide")
    setup_logging()
    config.ensure_data_directories()

    cfg = get_calculator_config()
    _ensure_form_state()

    st.header("🧮 Calculateur de budget d'équipe sportive")

    values = _current_form_values()
    model_name = generate_model_name(values)
    _render_model_sidebar(get_service(), model_name, cfg.get('ui', {}))

    _render_form(cfg)
    _remember_form_values()
    values = _current_form_values()

    try:
        configuration = configuration_from_form(values)
    except ValidationError as e:
        st.error("Champs invalides : " + ", ".join(f"{k} ({v})" for k, v in e.errors.items()))
        return

    result = compute_budget(configuration)
    _render_results(values, configuration, result, generate_model_name(values))
