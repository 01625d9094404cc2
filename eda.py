# eda.py
"""
Exploratory analysis helpers for the passenger dashboard: filtering,
group survival rates, and descriptive statistics.
"""
from typing import Dict, List, Union

import numpy as np
import pandas as pd

import config
from stats_helpers import median, mode, std_dev

AGE_BINS = [(10, '0-10'), (20, '11-20'), (30, '21-30'), (40, '31-40'), (50, '41-50'), (60, '51-60')]


def age_group(age) -> str:
    """Ten-year age bucket label."""
    if age is None or pd.isna(age):
        return 'Unknown'
    for upper, label in AGE_BINS:
        if age <= upper:
            return label
    return '61+'


def filter_passengers(frame: pd.DataFrame, sex: str = "all", pclass: Union[str, int] = "all",
                      min_age: float = 0, max_age: float = 100) -> pd.DataFrame:
    """
    Filters passengers by sex, class, and age range.

    Passengers with unknown age are kept only while the age range is left at
    its default of 0-100.
    """
    mask = pd.Series(True, index=frame.index)
    if sex != "all":
        mask &= frame['Sex'] == sex
    if pclass != "all":
        mask &= frame['Pclass'] == int(pclass)

    known_age = frame['Age'].notna()
    in_range = known_age & frame['Age'].between(min_age, max_age)
    if min_age > 0 or max_age < 100:
        mask &= in_range
    else:
        mask &= in_range | ~known_age

    return frame[mask]


def survival_summary(frame: pd.DataFrame) -> Dict[str, float]:
    """Headline counts and rates for a (possibly filtered) group."""
    total = len(frame)
    survivors = int((frame[config.TARGET] == 1).sum()) if total else 0
    ages = frame['Age'].dropna() if total else pd.Series(dtype=float)
    return {
        "total": total,
        "survivors": survivors,
        "deaths": total - survivors,
        "survival_rate": survivors / total if total else 0.0,
        "death_rate": (total - survivors) / total if total else 0.0,
        "average_age": float(ages.mean()) if len(ages) else 0.0,
    }


def group_death_rates(frame: pd.DataFrame) -> pd.DataFrame:
    """Death rate per sex and per passenger class, highest first."""
    groups = []
    for sex in config.SEX_CATEGORIES:
        members = frame[frame['Sex'] == sex]
        if len(members):
            groups.append((sex.capitalize(), (members[config.TARGET] == 0).mean(), len(members)))
    for pclass in config.PCLASS_CATEGORIES:
        members = frame[frame['Pclass'] == pclass]
        if len(members):
            groups.append((f"Class {pclass}", (members[config.TARGET] == 0).mean(), len(members)))

    rates = pd.DataFrame(groups, columns=['group', 'death_rate', 'size'])
    return rates.sort_values('death_rate', ascending=False, kind='stable').reset_index(drop=True)


def survival_by(frame: pd.DataFrame, column: str) -> pd.DataFrame:
    """Passenger count and survival rate per value of a column."""
    grouped = frame.groupby(column, dropna=False)[config.TARGET]
    return pd.DataFrame({'count': grouped.size(), 'survival_rate': grouped.mean()})


def describe_numeric(frame: pd.DataFrame, column: str) -> Dict[str, float]:
    """Count, mean, median, mode, and population standard deviation of a column."""
    values = frame[column].dropna().tolist()
    return {
        "count": len(values),
        "mean": float(np.mean(values)) if values else 0.0,
        "median": median(values),
        "mode": mode(values) if values else None,
        "std": std_dev(values),
    }


def correlation_matrix(frame: pd.DataFrame, columns: List[str] = None) -> pd.DataFrame:
    """Pearson correlation between numeric columns."""
    numeric = frame[columns] if columns else frame.select_dtypes(include=[np.number])
    return numeric.corr(method="pearson")
