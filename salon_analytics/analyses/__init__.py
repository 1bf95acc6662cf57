"""Report-level analyses built on the foundation package.

- Period comparison: current vs. previous equivalent window
- Insights: rule-based, severity-tagged dashboard statements
"""

from .comparison import PeriodComparison, compare_periods
from .insights import (
    InsightCategory,
    InsightSeverity,
    InsightStatement,
    generate_insights,
    period_name,
)

__all__ = [
    "PeriodComparison",
    "compare_periods",
    "InsightCategory",
    "InsightSeverity",
    "InsightStatement",
    "generate_insights",
    "period_name",
]
