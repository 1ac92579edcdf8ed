"""Top-level package for the team budget planner.

The primary modules are:

* ``weeks`` – active-week counting with holiday exclusion
* ``calculations`` – the cost engine for one budget configuration
* ``reports`` – per-discipline summary and per-team detailed report
* ``storage`` / ``service`` – saved budget models and the operations on them

To run the app from the command line you can execute:

```bash
python run_budget_app.py
```

The Streamlit pages are not imported here so the core modules can be used
(and tested) without a running Streamlit session.
"""

from . import calculations  # noqa: F401  # re-exported for convenience
from . import reports  # noqa: F401  # re-exported for convenience
from . import weeks  # noqa: F401  # re-exported for convenience
from .calculations import BudgetResult, compute_budget
from .errors import BudgetError, NotFound, StorageUnavailable, ValidationError
from .schema import BudgetConfiguration, BudgetModel
from .weeks import HolidayCalendar, count_active_weeks

__all__ = [
    "calculations",
    "reports",
    "weeks",
    "BudgetConfiguration",
    "BudgetError",
    "BudgetModel",
    "BudgetResult",
    "HolidayCalendar",
    "NotFound",
    "StorageUnavailable",
    "ValidationError",
    "compute_budget",
    "count_active_weeks",
]
