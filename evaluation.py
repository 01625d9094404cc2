# evaluation.py
"""
Threshold-dependent evaluation of predicted survival probabilities:
confusion matrix, derived metrics, and the ROC curve with its AUC.
"""
import logging
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np
from sklearn.metrics import confusion_matrix as sklearn_confusion_matrix

logger = logging.getLogger(__name__)

ROC_THRESHOLDS = [i / 100 for i in range(101)]


def _safe_divide(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


@dataclass(frozen=True)
class ConfusionMatrix:
    true_positive: int
    true_negative: int
    false_positive: int
    false_negative: int

    @property
    def total(self) -> int:
        return self.true_positive + self.true_negative + self.false_positive + self.false_negative

    @property
    def accuracy(self) -> float:
        return _safe_divide(self.true_positive + self.true_negative, self.total)

    @property
    def precision(self) -> float:
        return _safe_divide(self.true_positive, self.true_positive + self.false_positive)

    @property
    def recall(self) -> float:
        return _safe_divide(self.true_positive, self.true_positive + self.false_negative)

    @property
    def f1(self) -> float:
        return _safe_divide(2 * self.precision * self.recall, self.precision + self.recall)

    @property
    def true_positive_rate(self) -> float:
        return self.recall

    @property
    def false_positive_rate(self) -> float:
        return _safe_divide(self.false_positive, self.false_positive + self.true_negative)

    def metrics(self) -> dict:
        """Derived metrics keyed by name, ready for tabular display."""
        return {
            "accuracy": self.accuracy,
            "precision": self.precision,
            "recall": self.recall,
            "f1": self.f1,
        }


@dataclass(frozen=True)
class RocPoint:
    threshold: float
    false_positive_rate: float
    true_positive_rate: float


@dataclass(frozen=True)
class RocCurve:
    points: List[RocPoint]
    auc: float


def _as_arrays(probabilities: Sequence[float], labels: Sequence[int]):
    probs = np.asarray(probabilities, dtype=float).ravel()
    actuals = np.asarray(labels).ravel()
    if probs.shape[0] != actuals.shape[0]:
        raise ValueError(
            f"Got {probs.shape[0]} probabilities but {actuals.shape[0]} labels."
        )
    return probs, (actuals == 1).astype(int)


def _count(probs: np.ndarray, actuals: np.ndarray, threshold: float) -> ConfusionMatrix:
    if probs.size == 0:
        return ConfusionMatrix(0, 0, 0, 0)
    predicted = (probs >= threshold).astype(int)
    tn, fp, fn, tp = sklearn_confusion_matrix(actuals, predicted, labels=[0, 1]).ravel()
    return ConfusionMatrix(
        true_positive=int(tp),
        true_negative=int(tn),
        false_positive=int(fp),
        false_negative=int(fn),
    )


def confusion_matrix(probabilities: Sequence[float], labels: Sequence[int],
                     threshold: float) -> ConfusionMatrix:
    """
    Counts predicted-vs-actual outcomes at a decision threshold.

    A sample is predicted positive when its probability is at least the
    threshold. A label of 1 is positive; any other label is negative.

    Raises:
        ValueError: If the two sequences differ in length.
    """
    probs, actuals = _as_arrays(probabilities, labels)
    return _count(probs, actuals, threshold)


def roc_curve(probabilities: Sequence[float], labels: Sequence[int]) -> RocCurve:
    """
    Samples the ROC curve at thresholds 0.00, 0.01, ..., 1.00 and integrates
    it with the trapezoidal rule.
    """
    probs, actuals = _as_arrays(probabilities, labels)

    points = []
    for threshold in ROC_THRESHOLDS:
        cm = _count(probs, actuals, threshold)
        points.append(RocPoint(threshold, cm.false_positive_rate, cm.true_positive_rate))

    # Raising the threshold never increases FPR, so walking upward integrates
    # right to left; the sign is flipped to accumulate by increasing FPR.
    auc = 0.0
    for previous, point in zip(points, points[1:]):
        auc += (previous.false_positive_rate - point.false_positive_rate) * \
            (point.true_positive_rate + previous.true_positive_rate) / 2

    logger.debug("ROC curve sampled at %d thresholds, AUC %.4f", len(points), auc)
    return RocCurve(points=points, auc=auc)
