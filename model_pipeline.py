# model_pipeline.py
"""
Core logic for the model pipeline: validation, preprocessing, splitting,
training, prediction, export, and feature importance.
"""
import logging
import math
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.exceptions import NotFittedError
from sklearn.metrics import accuracy_score, log_loss
from sklearn.neural_network import MLPClassifier

import config
from csv_parser import ABSENT, Record, Value, parse_value, records_to_frame
from evaluation import confusion_matrix
from features import (
    ImputationParameters,
    compute_imputation_parameters,
    extract_features,
    feature_names,
)

logger = logging.getLogger(__name__)


class PreprocessingError(ValueError):
    """Raised when records cannot be turned into feature matrices."""


# ======================================================================================
#                                   VALIDATION
# ======================================================================================

def validate_training_records(records: Sequence[Record]) -> Tuple[bool, List[str]]:
    """
    Validates the structure and value types of uploaded training records.

    Args:
        records: Parsed training records.

    Returns:
        A tuple containing a boolean (True if valid) and a list of error messages.
    """
    if not records:
        return False, ["The training file contains no data rows."]

    errors = []
    required_columns = config.FEATURES + [config.TARGET]

    # 1. Check for missing columns
    missing_columns = sorted(_missing_columns(records, required_columns))
    if missing_columns:
        errors.append(f"Missing required columns: {', '.join(missing_columns)}")
        return False, errors  # Return early if columns are missing

    # 2. Check value types
    for col in config.NUMERICAL_FEATURES + ['Pclass', config.TARGET]:
        text_count = sum(1 for record in records if record[col].is_text)
        if text_count:
            errors.append(f"Column '{col}' must be numeric ({text_count} text value(s) found).")

    for col in ['Sex', 'Embarked']:
        number_count = sum(1 for record in records if record[col].is_number)
        if number_count:
            errors.append(f"Column '{col}' must be a text/categorical column ({number_count} numeric value(s) found).")

    is_valid = len(errors) == 0
    return is_valid, errors


def _missing_columns(records: Sequence[Record], required: Sequence[str]) -> set:
    missing = set()
    for record in records:
        missing.update(col for col in required if col not in record)
    return missing


# ======================================================================================
#                                 PREPROCESSING
# ======================================================================================

@dataclass
class TrainDataset:
    features: np.ndarray
    labels: np.ndarray
    feature_names: List[str]

    def __len__(self) -> int:
        return len(self.labels)


@dataclass
class TestDataset:
    features: np.ndarray
    ids: List[Any]
    feature_names: List[str]

    def __len__(self) -> int:
        return len(self.ids)


def _coerce_label(value: Value) -> int:
    # Present nonzero numbers count as survived; absent or text counts as 0
    return 1 if value.is_number and value.raw != 0 else 0


def _feature_matrix(records: Sequence[Record], params: ImputationParameters,
                    include_family_features: bool, width: int) -> np.ndarray:
    rows = [extract_features(record, params, include_family_features) for record in records]
    return np.asarray(rows, dtype=float).reshape(len(rows), width)


def preprocess(train_records: Sequence[Record], test_records: Sequence[Record],
               include_family_features: bool = False
               ) -> Tuple[TrainDataset, TestDataset, ImputationParameters]:
    """
    Builds the training and test feature matrices.

    Imputation and scaling constants are computed from the training records
    only and then reused for the test records.

    Raises:
        PreprocessingError: If either input is empty or lacks required columns.
    """
    if not train_records:
        raise PreprocessingError("Training data is empty.")
    if not test_records:
        raise PreprocessingError("Test data is empty.")

    missing = _missing_columns(train_records, config.FEATURES + [config.TARGET])
    if missing:
        raise PreprocessingError(f"Training data is missing columns: {', '.join(sorted(missing))}")
    missing = _missing_columns(test_records, config.FEATURES + [config.ID_COLUMN])
    if missing:
        raise PreprocessingError(f"Test data is missing columns: {', '.join(sorted(missing))}")

    params = compute_imputation_parameters(train_records)
    names = feature_names(include_family_features)

    train_dataset = TrainDataset(
        features=_feature_matrix(train_records, params, include_family_features, len(names)),
        labels=np.asarray([_coerce_label(r[config.TARGET]) for r in train_records], dtype=int),
        feature_names=names,
    )
    test_dataset = TestDataset(
        features=_feature_matrix(test_records, params, include_family_features, len(names)),
        ids=[r[config.ID_COLUMN].raw for r in test_records],
        feature_names=names,
    )

    logger.info("Preprocessed %d training and %d test samples with %d features.",
                len(train_dataset), len(test_dataset), len(names))
    return train_dataset, test_dataset, params


def split_train_validation(dataset: TrainDataset, fraction: float = config.TRAIN_FRACTION
                           ) -> Tuple[TrainDataset, TrainDataset]:
    """
    Takes the first floor(N * fraction) rows for training and the rest for
    validation. Rows are not shuffled; input order decides the split.
    """
    if not 0.0 <= fraction <= 1.0:
        raise ValueError(f"Split fraction must be between 0 and 1, got {fraction}.")

    split_index = int(math.floor(len(dataset) * fraction))
    train = TrainDataset(dataset.features[:split_index], dataset.labels[:split_index], dataset.feature_names)
    validation = TrainDataset(dataset.features[split_index:], dataset.labels[split_index:], dataset.feature_names)
    return train, validation


# ======================================================================================
#                                     MODEL
# ======================================================================================

@dataclass
class TrainingConfig:
    epochs: int = config.EPOCHS
    batch_size: int = config.BATCH_SIZE
    validation_split: Optional[float] = None
    validation_data: Optional[Tuple[np.ndarray, np.ndarray]] = None


@dataclass
class TrainingHistory:
    loss: List[float] = field(default_factory=list)
    accuracy: List[float] = field(default_factory=list)
    val_loss: List[float] = field(default_factory=list)
    val_accuracy: List[float] = field(default_factory=list)

    def to_frame(self) -> pd.DataFrame:
        """Per-epoch history; validation columns are omitted when no validation data was used."""
        data = {"loss": self.loss, "accuracy": self.accuracy}
        if self.val_loss:
            data.update({"val_loss": self.val_loss, "val_accuracy": self.val_accuracy})
        frame = pd.DataFrame(data)
        frame.index = pd.RangeIndex(1, len(frame) + 1, name="epoch")
        return frame


class SurvivalModel:
    """
    Binary classifier with one hidden ReLU layer and a sigmoid output,
    trained with Adam one epoch at a time.
    """

    def __init__(self, hidden_units: int = config.HIDDEN_UNITS,
                 learning_rate: float = config.LEARNING_RATE,
                 random_state: Optional[int] = config.RANDOM_STATE):
        self.hidden_units = hidden_units
        self.learning_rate = learning_rate
        self.random_state = random_state
        self._estimator = None

    def _new_estimator(self, batch_size: int) -> MLPClassifier:
        return MLPClassifier(
            hidden_layer_sizes=(self.hidden_units,),
            activation='relu',
            solver='adam',
            learning_rate_init=self.learning_rate,
            batch_size=batch_size,
            random_state=self.random_state,
        )

    def fit(self, features: np.ndarray, labels: np.ndarray,
            training_config: Optional[TrainingConfig] = None) -> TrainingHistory:
        """Trains from scratch and returns the per-epoch history."""
        training_config = training_config or TrainingConfig()
        features = np.asarray(features, dtype=float)
        labels = np.asarray(labels, dtype=int)

        val_features, val_labels = None, None
        if training_config.validation_data is not None:
            val_features, val_labels = training_config.validation_data
        elif training_config.validation_split:
            split_index = int(math.floor(len(labels) * (1 - training_config.validation_split)))
            val_features, val_labels = features[split_index:], labels[split_index:]
            features, labels = features[:split_index], labels[:split_index]

        if len(labels) == 0:
            raise ValueError("Cannot fit a model on zero training samples.")

        self._estimator = self._new_estimator(min(training_config.batch_size, len(labels)))
        history = TrainingHistory()
        for epoch in range(training_config.epochs):
            self._estimator.partial_fit(features, labels, classes=[0, 1])
            history.loss.append(float(self._estimator.loss_))
            history.accuracy.append(float(accuracy_score(labels, self._classify(features))))

            if val_features is not None and len(val_labels) > 0:
                val_probabilities = self.predict(val_features)
                history.val_loss.append(float(log_loss(val_labels, val_probabilities, labels=[0, 1])))
                history.val_accuracy.append(float(accuracy_score(val_labels, (val_probabilities >= 0.5).astype(int))))

            logger.debug("Epoch %d/%d - loss %.4f", epoch + 1, training_config.epochs, history.loss[-1])

        logger.info("Training finished after %d epochs, final loss %.4f.",
                    training_config.epochs, history.loss[-1] if history.loss else float('nan'))
        return history

    def predict(self, features: np.ndarray) -> np.ndarray:
        """Probability of survival for each row."""
        if self._estimator is None:
            raise NotFittedError("SurvivalModel must be fit before predicting.")
        features = np.asarray(features, dtype=float)
        if len(features) == 0:
            return np.empty(0, dtype=float)
        return self._estimator.predict_proba(features)[:, 1]

    def _classify(self, features: np.ndarray) -> np.ndarray:
        return (self.predict(features) >= 0.5).astype(int)


@dataclass
class TrainingResult:
    model: SurvivalModel
    history: TrainingHistory
    validation: TrainDataset
    validation_probabilities: np.ndarray


def train_model(dataset: TrainDataset, training_config: Optional[TrainingConfig] = None,
                train_fraction: float = config.TRAIN_FRACTION,
                model: Optional[SurvivalModel] = None) -> TrainingResult:
    """
    Splits the dataset, trains a model with the held-out rows as validation
    data, and scores the validation rows.
    """
    training_config = training_config or TrainingConfig()
    model = model or SurvivalModel()
    train, validation = split_train_validation(dataset, train_fraction)
    logger.info("Starting model training on %d samples (%d held out for validation)...",
                len(train), len(validation))

    fit_config = TrainingConfig(
        epochs=training_config.epochs,
        batch_size=training_config.batch_size,
        validation_data=(validation.features, validation.labels) if len(validation) else None,
    )
    history = model.fit(train.features, train.labels, fit_config)
    validation_probabilities = model.predict(validation.features)

    if len(validation):
        cm = confusion_matrix(validation_probabilities, validation.labels, config.DEFAULT_THRESHOLD)
        logger.info("Validation accuracy at threshold %.2f: %.4f",
                    config.DEFAULT_THRESHOLD, cm.accuracy)
    return TrainingResult(model, history, validation, validation_probabilities)


# ======================================================================================
#                               PREDICTION & EXPORT
# ======================================================================================

def record_from_dict(passenger: Dict[str, Any]) -> Record:
    """Builds a record from plain values, e.g. a form submission."""
    record = {}
    for name, raw in passenger.items():
        if raw is None:
            record[name] = ABSENT
        elif isinstance(raw, str):
            record[name] = parse_value(raw)
        else:
            record[name] = Value.number(raw)
    return record


def predict_passenger(model: SurvivalModel, params: ImputationParameters,
                      passenger: Dict[str, Any], include_family_features: bool = False,
                      threshold: float = config.DEFAULT_THRESHOLD) -> Tuple[int, float]:
    """
    Runs a prediction for a single passenger using the run's imputation parameters.
    """
    vector = extract_features(record_from_dict(passenger), params, include_family_features)
    probability = float(model.predict(np.asarray([vector]))[0])
    return int(probability >= threshold), probability


def predict_test_set(model: SurvivalModel, test_dataset: TestDataset,
                     threshold: float = config.DEFAULT_THRESHOLD) -> pd.DataFrame:
    """Predicted class and probability per test passenger, in test order."""
    probabilities = np.asarray(model.predict(test_dataset.features), dtype=float).ravel()
    predictions = pd.DataFrame({
        # object dtype keeps ids as written even when one is missing
        config.ID_COLUMN: pd.Series(test_dataset.ids, dtype=object),
        config.TARGET: (probabilities >= threshold).astype(int),
        'Probability': probabilities,
    })
    logger.info("Predicted %d passengers, %d predicted to survive.",
                len(predictions), int(predictions[config.TARGET].sum()))
    return predictions


def submission_csv(predictions: pd.DataFrame) -> str:
    """Two-column submission file: passenger id and predicted class."""
    return predictions[[config.ID_COLUMN, config.TARGET]].to_csv(index=False, lineterminator="\n")


def probabilities_csv(predictions: pd.DataFrame) -> str:
    """Two-column file of passenger id and survival probability (6 decimals)."""
    export = predictions[[config.ID_COLUMN]].copy()
    export['Probability'] = [f"{p:.6f}" for p in predictions['Probability']]
    return export.to_csv(index=False, lineterminator="\n")


def export_results(predictions: pd.DataFrame, output_dir: str = config.OUTPUT_DIR) -> Tuple[str, str]:
    """
    Writes the submission and probabilities files and returns their paths.
    """
    os.makedirs(output_dir, exist_ok=True)
    submission_path = os.path.join(output_dir, config.SUBMISSION_FILENAME)
    probabilities_path = os.path.join(output_dir, config.PROBABILITIES_FILENAME)

    with open(submission_path, "w", newline="") as f:
        f.write(submission_csv(predictions))
    with open(probabilities_path, "w", newline="") as f:
        f.write(probabilities_csv(predictions))

    logger.info("Exported results to %s and %s", submission_path, probabilities_path)
    return submission_path, probabilities_path


# ======================================================================================
#                                FEATURE IMPORTANCE
# ======================================================================================

@dataclass(frozen=True)
class FeatureImportance:
    feature: str
    importance: float


def permutation_importance(model, features: np.ndarray, labels: np.ndarray,
                           names: Sequence[str], n_runs: int = config.IMPORTANCE_RUNS,
                           max_samples: int = config.IMPORTANCE_MAX_SAMPLES,
                           threshold: float = config.DEFAULT_THRESHOLD,
                           random_state: Optional[int] = None
                           ) -> Tuple[float, List[FeatureImportance]]:
    """
    Shuffles one feature column at a time and measures the accuracy drop.

    Importance is the baseline accuracy minus the shuffled accuracy, averaged
    over ``n_runs``. Negative scores mean shuffling helped.

    Returns:
        The baseline accuracy and the importances sorted by absolute value, largest first.
    """
    features = np.asarray(features, dtype=float)[:max_samples]
    labels = np.asarray(labels)[:max_samples]
    if len(features) == 0:
        raise ValueError("Permutation importance needs at least one validation sample.")

    rng = np.random.default_rng(random_state)
    baseline = confusion_matrix(model.predict(features), labels, threshold).accuracy
    scores = np.zeros(features.shape[1])

    for run in range(n_runs):
        for idx in range(features.shape[1]):
            shuffled = features.copy()
            shuffled[:, idx] = rng.permutation(shuffled[:, idx])
            accuracy = confusion_matrix(model.predict(shuffled), labels, threshold).accuracy
            scores[idx] += (baseline - accuracy) / n_runs
        logger.info("Permutation importance run %d/%d completed.", run + 1, n_runs)

    importances = [FeatureImportance(name, float(score)) for name, score in zip(names, scores)]
    importances.sort(key=lambda item: abs(item.importance), reverse=True)
    return baseline, importances


# ======================================================================================
#                                   INSPECTION
# ======================================================================================

@dataclass
class DatasetSummary:
    n_rows: int
    n_columns: int
    survivors: int
    survival_rate: float
    missing: pd.DataFrame


def summarize_records(records: Sequence[Record]) -> DatasetSummary:
    """Shape, survival rate, and per-column missing values of a record set."""
    frame = records_to_frame(list(records))
    n_rows = len(frame)

    survivors = int((frame[config.TARGET] == 1).sum()) if config.TARGET in frame else 0
    missing_counts = frame.isna().sum()
    missing = pd.DataFrame({
        'Missing': missing_counts.astype(int),
        'Percent': (missing_counts / n_rows * 100).round(2) if n_rows else 0.0,
    })

    return DatasetSummary(
        n_rows=n_rows,
        n_columns=frame.shape[1],
        survivors=survivors,
        survival_rate=survivors / n_rows if n_rows else 0.0,
        missing=missing,
    )
