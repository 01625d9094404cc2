"""Tests for model_pipeline module.

Coverage:
- Training data validation
- Preprocessing (train-only imputation, row alignment, failure modes)
- Train/validation split
- Model fit/predict and the training helper
- Test-set prediction and CSV export
- Permutation importance
- Dataset inspection
"""

import numpy as np
import pytest
from sklearn.exceptions import NotFittedError

import config
from csv_parser import parse_csv
from model_pipeline import (
    PreprocessingError,
    SurvivalModel,
    TrainDataset,
    TestDataset as PassengerTestDataset,
    TrainingConfig,
    export_results,
    permutation_importance,
    predict_passenger,
    predict_test_set,
    preprocess,
    probabilities_csv,
    split_train_validation,
    submission_csv,
    summarize_records,
    train_model,
    validate_training_records,
)
from tests.helpers import make_record


class FixedModel:
    """Returns preset probabilities regardless of input."""

    def __init__(self, probabilities):
        self.probabilities = np.asarray(probabilities, dtype=float)

    def predict(self, features):
        return self.probabilities[:len(features)]


class FirstFeatureModel:
    """Predicts survival purely from the sign of the first feature."""

    def predict(self, features):
        return (np.asarray(features)[:, 0] > 0).astype(float)


@pytest.fixture
def toy_dataset():
    """Linearly separable data on the first feature."""
    rng = np.random.default_rng(0)
    features = rng.normal(size=(40, 3))
    labels = (features[:, 0] > 0).astype(int)
    return TrainDataset(features, labels, ["a", "b", "c"])


# ============================================================================
# Test validate_training_records
# ============================================================================


def test_validate_accepts_titanic_rows(train_records):
    is_valid, errors = validate_training_records(train_records)
    assert is_valid
    assert errors == []


def test_validate_reports_missing_columns():
    records = parse_csv("PassengerId,Age\n1,22\n")
    is_valid, errors = validate_training_records(records)
    assert not is_valid
    assert "Missing required columns" in errors[0]
    assert "Survived" in errors[0]


def test_validate_reports_type_errors(train_csv):
    records = parse_csv(train_csv.replace(",male,22,", ",male,twenty-two,"))
    is_valid, errors = validate_training_records(records)
    assert not is_valid
    assert any("'Age' must be numeric" in e for e in errors)


@pytest.mark.parametrize("old, new, message", [
    (",male,22,", ",male,unknown,", "'Age' must be numeric"),
    ("Pclass,Name,Sex,", "Pclass,Name,Gender,", "Missing required columns: Sex"),
])
def test_validate_rejects_files_that_cannot_be_explored(train_csv, old, new, message):
    is_valid, errors = validate_training_records(parse_csv(train_csv.replace(old, new)))
    assert not is_valid
    assert any(message in e for e in errors)


def test_validate_empty():
    assert validate_training_records([]) == (False, ["The training file contains no data rows."])


# ============================================================================
# Test preprocess
# ============================================================================


def test_preprocess_shapes(train_records, test_records):
    train, test, params = preprocess(train_records, test_records)
    assert train.features.shape == (10, 12)
    assert test.features.shape == (4, 12)
    assert train.labels.tolist() == [0, 1, 1, 1, 0, 0, 0, 0, 1, 1]
    assert test.ids == [892, 893, 894, 895]
    assert len(train.feature_names) == 12


def test_preprocess_with_family_features(train_records, test_records):
    train, test, _ = preprocess(train_records, test_records, include_family_features=True)
    assert train.features.shape == (10, 14)
    assert test.features.shape == (4, 14)
    # Palsson: SibSp 3, Parch 1
    assert train.features[7, -2:].tolist() == [5.0, 0.0]


def test_parameters_come_from_training_only(train_records, test_records):
    _, _, params = preprocess(train_records, test_records)
    assert params.age_median == 27
    assert params.embarked_mode == "S"

    _, _, fewer_test_rows = preprocess(train_records, test_records[:1])
    assert fewer_test_rows == params


def test_test_rows_use_training_imputation(train_records, test_records):
    _, test, _ = preprocess(train_records, test_records)
    # Wirz has no age, fare, or port: imputed values standardize to 0 and the port to S
    wirz = test.features[3]
    assert wirz[0] == 0.0
    assert wirz[1] == 0.0
    assert wirz[-3:].tolist() == [0.0, 0.0, 1.0]


def test_rows_stay_aligned(train_records, test_records):
    train, _, _ = preprocess(train_records, test_records)
    female_slot = train.feature_names.index("Sex: Female")
    expected = [1.0 if r["Sex"].raw == "female" else 0.0 for r in train_records]
    assert train.features[:, female_slot].tolist() == expected


def test_missing_label_defaults_to_zero(test_records):
    records = [make_record(PassengerId=1, Survived=None, Pclass=1, Sex="male", Age=30,
                           SibSp=0, Parch=0, Fare=10, Embarked="S"),
               make_record(PassengerId=2, Survived="yes", Pclass=1, Sex="male", Age=30,
                           SibSp=0, Parch=0, Fare=10, Embarked="S")]
    train, _, _ = preprocess(records, test_records)
    assert train.labels.tolist() == [0, 0]


def test_out_of_range_age_is_imputed(train_csv, test_records):
    records = parse_csv(train_csv.replace(",male,22,", ",male," + "9" * 400 + ","))
    train, _, params = preprocess(records, test_records)
    # The oversized literal is text, so the first passenger gets the median age
    assert params.age_median == 31
    assert train.features[0, 0] == 0.0


def test_preprocess_rejects_empty_inputs(train_records, test_records):
    with pytest.raises(PreprocessingError, match="Training data is empty"):
        preprocess([], test_records)
    with pytest.raises(PreprocessingError, match="Test data is empty"):
        preprocess(train_records, [])


def test_preprocess_rejects_missing_columns(train_records):
    test_records = parse_csv("PassengerId,Pclass,Sex\n1,3,male\n")
    with pytest.raises(PreprocessingError, match="Test data is missing columns"):
        preprocess(train_records, test_records)


# ============================================================================
# Test split_train_validation
# ============================================================================


def test_split_keeps_order(train_records, test_records):
    train, _, _ = preprocess(train_records, test_records)
    head, tail = split_train_validation(train, 0.8)
    assert len(head) == 8
    assert len(tail) == 2
    np.testing.assert_array_equal(head.features, train.features[:8])
    np.testing.assert_array_equal(tail.labels, train.labels[8:])


@pytest.mark.parametrize("fraction, expected", [(0.0, 0), (1.0, 10), (0.55, 5), (0.99, 9)])
def test_split_floor(train_records, test_records, fraction, expected):
    train, _, _ = preprocess(train_records, test_records)
    head, tail = split_train_validation(train, fraction)
    assert len(head) == expected
    assert len(head) + len(tail) == 10


def test_split_rejects_bad_fraction(toy_dataset):
    with pytest.raises(ValueError):
        split_train_validation(toy_dataset, 1.5)


# ============================================================================
# Test SurvivalModel / train_model
# ============================================================================


def test_model_fit_and_predict(toy_dataset):
    model = SurvivalModel(random_state=0)
    history = model.fit(toy_dataset.features, toy_dataset.labels,
                        TrainingConfig(epochs=5, batch_size=8, validation_split=0.25))
    assert len(history.loss) == 5
    assert len(history.val_accuracy) == 5
    assert list(history.to_frame().columns) == ["loss", "accuracy", "val_loss", "val_accuracy"]

    probabilities = model.predict(toy_dataset.features)
    assert probabilities.shape == (40,)
    assert np.all((probabilities >= 0) & (probabilities <= 1))


def test_model_predict_before_fit():
    with pytest.raises(NotFittedError):
        SurvivalModel().predict(np.zeros((1, 3)))


def test_train_model_holds_out_validation(toy_dataset):
    result = train_model(toy_dataset, TrainingConfig(epochs=3, batch_size=8), train_fraction=0.75)
    assert len(result.validation) == 10
    assert result.validation_probabilities.shape == (10,)
    assert len(result.history.val_loss) == 3


def test_train_model_without_validation_rows(toy_dataset):
    result = train_model(toy_dataset, TrainingConfig(epochs=2), train_fraction=1.0)
    assert len(result.validation) == 0
    assert result.history.val_loss == []
    assert list(result.history.to_frame().columns) == ["loss", "accuracy"]


def test_predict_passenger(train_records, test_records):
    train, _, params = preprocess(train_records, test_records)
    result = train_model(train, TrainingConfig(epochs=2))
    prediction, probability = predict_passenger(
        result.model, params,
        {'Pclass': 1, 'Sex': 'female', 'Age': 29, 'SibSp': 0, 'Parch': 0, 'Fare': 80.0, 'Embarked': 'C'})
    assert prediction in (0, 1)
    assert 0.0 <= probability <= 1.0


# ============================================================================
# Test prediction export
# ============================================================================


@pytest.fixture
def predictions():
    test = PassengerTestDataset(np.zeros((3, 12)), [892, 893, 894], [])
    return predict_test_set(FixedModel([0.1234567, 0.5, 0.9]), test)


def test_predict_test_set(predictions):
    assert list(predictions.columns) == ["PassengerId", "Survived", "Probability"]
    assert predictions["Survived"].tolist() == [0, 1, 1]


def test_submission_csv(predictions):
    lines = submission_csv(predictions).splitlines()
    assert lines == ["PassengerId,Survived", "892,0", "893,1", "894,1"]


def test_probabilities_csv(predictions):
    lines = probabilities_csv(predictions).splitlines()
    assert lines == ["PassengerId,Probability", "892,0.123457", "893,0.500000", "894,0.900000"]


def test_missing_id_keeps_other_ids_unchanged(train_records):
    test_records = parse_csv(
        "PassengerId,Pclass,Sex,Age,SibSp,Parch,Fare,Embarked\n"
        "892,3,male,34.5,0,0,7.83,Q\n"
        ",3,female,47,1,0,7,S\n")
    _, test, _ = preprocess(train_records, test_records)
    predictions = predict_test_set(FixedModel([0.5, 0.5]), test)
    assert submission_csv(predictions).splitlines() == ["PassengerId,Survived", "892,1", ",1"]
    assert probabilities_csv(predictions).splitlines() == [
        "PassengerId,Probability", "892,0.500000", ",0.500000"]


def test_export_results(tmp_path, predictions):
    submission_path, probabilities_path = export_results(predictions, str(tmp_path / "out"))
    assert submission_path.endswith(config.SUBMISSION_FILENAME)
    with open(submission_path) as f:
        assert f.read().splitlines()[1] == "892,0"
    with open(probabilities_path) as f:
        assert len(f.read().splitlines()) == 4


# ============================================================================
# Test permutation_importance
# ============================================================================


def test_permutation_importance_ranks_informative_feature(toy_dataset):
    baseline, importances = permutation_importance(
        FirstFeatureModel(), toy_dataset.features, toy_dataset.labels,
        toy_dataset.feature_names, random_state=1)
    assert baseline == 1.0
    assert importances[0].feature == "a"
    assert importances[0].importance > 0
    assert {i.feature: i.importance for i in importances}["b"] == 0.0


def test_permutation_importance_limits_samples(toy_dataset):
    baseline, importances = permutation_importance(
        FirstFeatureModel(), toy_dataset.features, toy_dataset.labels,
        toy_dataset.feature_names, max_samples=5, n_runs=1, random_state=0)
    assert len(importances) == 3
    assert baseline == 1.0


def test_permutation_importance_requires_samples():
    with pytest.raises(ValueError):
        permutation_importance(FirstFeatureModel(), np.zeros((0, 2)), np.zeros(0), ["a", "b"])


# ============================================================================
# Test summarize_records
# ============================================================================


def test_summarize_records(train_records):
    summary = summarize_records(train_records)
    assert summary.n_rows == 10
    assert summary.n_columns == 12
    assert summary.survivors == 5
    assert summary.survival_rate == 0.5
    assert summary.missing.loc["Age", "Missing"] == 1
    assert summary.missing.loc["Cabin", "Percent"] == 70.0


def test_summarize_without_target(test_records):
    summary = summarize_records(test_records)
    assert summary.survivors == 0
    assert summary.missing.loc["Embarked", "Missing"] == 1
