# features.py
"""
Per-passenger feature extraction: imputation, standardization, and one-hot
encoding into a fixed-order numeric vector.
"""
import logging
from dataclasses import dataclass
from typing import List, Sequence

import config
from csv_parser import ABSENT, Record
from stats_helpers import median, mode, numeric_column, std_dev, text_column

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImputationParameters:
    """Constants derived from the training records of one pipeline run."""

    age_median: float
    fare_median: float
    embarked_mode: str
    age_std_dev: float
    fare_std_dev: float


def compute_imputation_parameters(records: Sequence[Record]) -> ImputationParameters:
    """
    Derives imputation and scaling constants from training records.

    A zero standard deviation (every value identical) is replaced with 1 so that
    standardization stays defined.
    """
    ages = numeric_column(records, 'Age')
    fares = numeric_column(records, 'Fare')

    params = ImputationParameters(
        age_median=median(ages),
        fare_median=median(fares),
        embarked_mode=mode(text_column(records, 'Embarked')),
        age_std_dev=std_dev(ages) or 1.0,
        fare_std_dev=std_dev(fares) or 1.0,
    )
    logger.info("Imputation values: age median %.2f, fare median %.2f, embarked mode '%s'",
                params.age_median, params.fare_median, params.embarked_mode)
    return params


def _category_key(value):
    # Numbers match categories by integer value, so 3.0 and 3 are the same class
    if value is None:
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool) and float(value).is_integer():
        return str(int(value))
    return str(value)


def one_hot_encode(value, categories: Sequence) -> List[int]:
    """Returns a 0/1 vector with a single 1 at the matching category, or all zeros."""
    key = _category_key(value)
    return [1 if key is not None and key == _category_key(category) else 0 for category in categories]


def _number_or(record: Record, column: str, default: float) -> float:
    value = record.get(column, ABSENT)
    return value.raw if value.is_number else default


def extract_features(record: Record, params: ImputationParameters,
                     include_family_features: bool = False) -> List[float]:
    """
    Maps one passenger record to its feature vector.

    Layout: standardized age, standardized fare, SibSp, Parch, then the one-hot
    blocks for Pclass, Sex and Embarked, then optionally family size and an
    is-alone flag.
    """
    age = _number_or(record, 'Age', params.age_median)
    fare = _number_or(record, 'Fare', params.fare_median)
    sib_sp = _number_or(record, 'SibSp', 0)
    parch = _number_or(record, 'Parch', 0)

    embarked_value = record.get('Embarked', ABSENT)
    embarked = params.embarked_mode if embarked_value.is_absent else str(embarked_value.raw)

    features = [
        (age - params.age_median) / params.age_std_dev,
        (fare - params.fare_median) / params.fare_std_dev,
        sib_sp,
        parch,
    ]
    features += one_hot_encode(record.get('Pclass', ABSENT).raw, config.PCLASS_CATEGORIES)
    features += one_hot_encode(record.get('Sex', ABSENT).raw, config.SEX_CATEGORIES)
    features += one_hot_encode(embarked, config.EMBARKED_CATEGORIES)

    if include_family_features:
        family_size = sib_sp + parch + 1
        features += [family_size, 1 if family_size == 1 else 0]

    return [float(f) for f in features]


def feature_names(include_family_features: bool = False) -> List[str]:
    """Display names of the feature vector slots, in vector order."""
    names = ['Age (standardized)', 'Fare (standardized)', 'SibSp', 'Parch']
    names += [f'Pclass {c}' for c in config.PCLASS_CATEGORIES]
    names += [f'Sex: {c.capitalize()}' for c in config.SEX_CATEGORIES]
    names += [f'Embarked: {c}' for c in config.EMBARKED_CATEGORIES]
    if include_family_features:
        names += ['Family Size', 'Is Alone']
    return names
