# streamlit_app.py
"""
Streamlit web application for the Titanic Survival Pipeline.
Lets users explore the data, preprocess and train a model, tune the decision
threshold, inspect feature importance, and export predictions.
"""
from dataclasses import asdict

import streamlit as st
import pandas as pd

from csv_parser import CSVParseError, parse_csv_bytes, records_to_frame
from eda import (
    age_group,
    correlation_matrix,
    describe_numeric,
    filter_passengers,
    group_death_rates,
    survival_by,
    survival_summary,
)
from evaluation import confusion_matrix, roc_curve
from logger_setup import setup_logger
from model_pipeline import (
    PreprocessingError,
    TrainingConfig,
    permutation_importance,
    predict_passenger,
    predict_test_set,
    preprocess,
    probabilities_csv,
    submission_csv,
    summarize_records,
    train_model,
    validate_training_records,
)
import config

setup_logger()

# --- App Layout ---
st.set_page_config(page_title="Titanic Survival Pipeline", layout="wide")
st.title("🚢 Titanic Survival Pipeline")
st.write("Explore the passenger data, train a classifier, and evaluate it across decision thresholds.")

st.sidebar.title("Data")
train_file = st.sidebar.file_uploader("Training CSV (with Survived)", type="csv")
test_file = st.sidebar.file_uploader("Test CSV", type="csv")

train_records, test_records = None, None
try:
    if train_file is not None:
        train_records = parse_csv_bytes(train_file.getvalue())
    if test_file is not None:
        test_records = parse_csv_bytes(test_file.getvalue())
except CSVParseError as e:
    st.sidebar.error(f"Could not parse CSV: {e}")

st.sidebar.title("Actions")
action = st.sidebar.radio(
    "Choose an action:",
    ("Explore Data", "Train Model", "Evaluate Model", "Predict Survival", "Export Predictions"),
)

# ======================================================================================
#                               ACTION: EXPLORE DATA
# ======================================================================================
if action == "Explore Data":
    st.header("Explore the Training Data")
    if not train_records:
        st.info("Upload a training CSV in the sidebar to begin.")
        st.stop()

    summary = summarize_records(train_records)
    col1, col2, col3 = st.columns(3)
    col1.metric("Rows", summary.n_rows)
    col2.metric("Columns", summary.n_columns)
    col3.metric("Survival Rate", f"{summary.survival_rate:.2%}", help=f"{summary.survivors} survivors")

    frame = records_to_frame(train_records)
    st.subheader("Data Preview (First 10 Rows)")
    st.dataframe(frame.head(10))
    with st.expander("Missing Values"):
        st.dataframe(summary.missing)

    is_valid, errors = validate_training_records(train_records)
    if not is_valid:
        st.error("❌ The training file cannot be explored. Please fix the following issues:")
        for error in errors:
            st.write(f"- {error}")
        st.stop()

    try:
        st.subheader("Filter Passengers")
        col1, col2, col3 = st.columns(3)
        with col1:
            sex = st.selectbox("Sex", ["all"] + config.SEX_CATEGORIES)
        with col2:
            pclass = st.selectbox("Passenger Class", ["all"] + config.PCLASS_CATEGORIES)
        with col3:
            min_age, max_age = st.slider("Age Range", 0, 100, (0, 100))

        filtered = filter_passengers(frame, sex=sex, pclass=pclass, min_age=min_age, max_age=max_age)
        stats = survival_summary(filtered)
        if stats["total"] == 0:
            st.warning("No passengers match the selected filters.")
        else:
            col1, col2, col3 = st.columns(3)
            col1.metric("Passengers in group", stats["total"])
            col2.metric("Survival Rate", f"{stats['survival_rate']:.1%}")
            col3.metric("Average Age", f"{stats['average_age']:.1f}")

            st.markdown("###### Survival Rate by Group")
            col1, col2 = st.columns(2)
            with col1:
                st.bar_chart(survival_by(filtered, 'Sex')['survival_rate'])
            with col2:
                st.bar_chart(survival_by(filtered, 'Pclass')['survival_rate'])
            by_age = filtered.assign(AgeGroup=filtered['Age'].map(age_group))
            st.bar_chart(survival_by(by_age, 'AgeGroup')['survival_rate'])

            rates = group_death_rates(filtered)
            if len(rates):
                highest, lowest = rates.iloc[0], rates.iloc[-1]
                st.write(f"Highest death rate: **{highest['group']}** ({highest['death_rate']:.1%}, {highest['size']} passengers)")
                st.write(f"Lowest death rate: **{lowest['group']}** ({lowest['death_rate']:.1%}, {lowest['size']} passengers)")

        with st.expander("Descriptive Statistics & Correlation"):
            st.dataframe(pd.DataFrame({col: describe_numeric(frame, col) for col in config.NUMERICAL_FEATURES}))
            st.dataframe(correlation_matrix(frame, config.NUMERICAL_FEATURES + ['Pclass', config.TARGET]))
    except Exception as e:
        st.error(f"An error occurred while exploring the data: {e}")

# ======================================================================================
#                                ACTION: TRAIN MODEL
# ======================================================================================
elif action == "Train Model":
    st.header("Preprocess and Train")

    can_train = True
    if not train_records or not test_records:
        st.info("Upload both training and test CSV files to train a model.")
        can_train = False
    else:
        is_valid, errors = validate_training_records(train_records)
        if is_valid:
            st.success("✅ Training data is valid and ready for preprocessing.")
        else:
            st.error("❌ Invalid training file. Please fix the following issues:")
            with st.expander("See validation errors"):
                for error in errors:
                    st.write(f"- {error}")
            can_train = False

    with st.expander("Training Settings"):
        include_family = st.checkbox("Add family features (FamilySize, IsAlone)", value=False)
        epochs = st.slider("Epochs", 5, 200, config.EPOCHS, 5)
        batch_size = st.select_slider("Batch size", [8, 16, 32, 64, 128], value=config.BATCH_SIZE)

    if st.button("Preprocess & Train 🏋️", use_container_width=True, disabled=not can_train):
        with st.spinner("Preprocessing data and training model..."):
            try:
                train_dataset, test_dataset, params = preprocess(train_records, test_records, include_family)
                result = train_model(train_dataset, TrainingConfig(epochs=epochs, batch_size=batch_size))
                st.session_state['pipeline'] = {
                    'params': params,
                    'test_dataset': test_dataset,
                    'result': result,
                    'include_family': include_family,
                }
            except PreprocessingError as e:
                st.error(f"Error during preprocessing: {e}")
            except Exception as e:
                st.error(f"An error occurred during training: {e}")

    pipeline = st.session_state.get('pipeline')
    if pipeline:
        params = pipeline['params']
        st.subheader("Imputation Values")
        st.write(f"Age median: {params.age_median:.2f} · Fare median: {params.fare_median:.2f} · "
                 f"Embarked mode: \"{params.embarked_mode}\"")
        st.subheader("Training History")
        st.line_chart(pipeline['result'].history.to_frame())

# ======================================================================================
#                               ACTION: EVALUATE MODEL
# ======================================================================================
elif action == "Evaluate Model":
    st.header("Evaluate on the Validation Set")
    pipeline = st.session_state.get('pipeline')
    if not pipeline or len(pipeline['result'].validation) == 0:
        st.info("Train a model with a non-empty validation split first.")
        st.stop()

    result = pipeline['result']
    threshold = st.slider("Decision threshold", 0.0, 1.0, config.DEFAULT_THRESHOLD, 0.01)
    cm = confusion_matrix(result.validation_probabilities, result.validation.labels, threshold)
    roc = roc_curve(result.validation_probabilities, result.validation.labels)

    col1, col2 = st.columns(2)
    with col1:
        st.markdown("###### Confusion Matrix")
        st.dataframe(pd.DataFrame(
            [[cm.true_positive, cm.false_negative], [cm.false_positive, cm.true_negative]],
            index=["Actual Survived", "Actual Not Survived"],
            columns=["Predicted Survived", "Predicted Not Survived"],
        ))
    with col2:
        st.markdown("###### Metrics")
        st.metric("Accuracy", f"{cm.accuracy:.2%}")
        st.write(f"Precision: {cm.precision:.4f} · Recall: {cm.recall:.4f} · F1: {cm.f1:.4f}")
        st.metric("AUC", f"{roc.auc:.4f}")

    st.markdown("###### ROC Curve")
    roc_frame = pd.DataFrame([asdict(p) for p in roc.points])
    st.line_chart(roc_frame.sort_values('false_positive_rate'), x='false_positive_rate', y='true_positive_rate')

    st.subheader("Permutation Feature Importance")
    if st.button("Analyze Feature Importance 🔍", use_container_width=True):
        with st.spinner("Shuffling features and re-scoring..."):
            baseline, importances = permutation_importance(
                result.model, result.validation.features, result.validation.labels,
                result.validation.feature_names,
            )
        st.write(f"Baseline accuracy: {baseline:.2%}")
        importance_frame = pd.DataFrame([asdict(i) for i in importances[:10]])
        st.dataframe(importance_frame)
        st.bar_chart(importance_frame.set_index('feature')['importance'])

# ======================================================================================
#                              ACTION: PREDICT SURVIVAL
# ======================================================================================
elif action == "Predict Survival":
    st.header("Check a Passenger's Survival Odds")
    pipeline = st.session_state.get('pipeline')
    if not pipeline:
        st.info("Train a model first.")
        st.stop()

    col1, col2, col3 = st.columns(3)
    with col1:
        pclass = st.selectbox("Passenger Class", config.PCLASS_CATEGORIES)
        sex = st.selectbox("Sex", config.SEX_CATEGORIES)
        age = st.slider("Age", 0, 100, 30)
    with col2:
        sibsp = st.number_input("Siblings/Spouses Aboard", min_value=0, max_value=10, value=0)
        parch = st.number_input("Parents/Children Aboard", min_value=0, max_value=10, value=0)
        fare = st.number_input("Fare ($)", min_value=0.0, max_value=1000.0, value=50.0)
    with col3:
        embarked = st.selectbox("Port of Embarkation", config.EMBARKED_CATEGORIES)

    if st.button("Predict 🔮", use_container_width=True):
        passenger = {'Pclass': pclass, 'Sex': sex, 'Age': age, 'SibSp': sibsp, 'Parch': parch,
                     'Fare': fare, 'Embarked': embarked}
        prediction, probability = predict_passenger(
            pipeline['result'].model, pipeline['params'], passenger, pipeline['include_family'])
        if prediction == 1:
            st.success(f"**Outcome: Likely Survived** (Probability: {probability:.2%})")
        else:
            st.error(f"**Outcome: Likely Did Not Survive** (Probability of survival: {probability:.2%})")

# ======================================================================================
#                             ACTION: EXPORT PREDICTIONS
# ======================================================================================
elif action == "Export Predictions":
    st.header("Predict the Test Set and Export")
    pipeline = st.session_state.get('pipeline')
    if not pipeline:
        st.info("Train a model first.")
        st.stop()

    predictions = predict_test_set(pipeline['result'].model, pipeline['test_dataset'])
    st.dataframe(predictions.head(10))
    st.write(f"Predicted to survive: {int(predictions[config.TARGET].sum())} of {len(predictions)} "
             f"(average probability {predictions['Probability'].mean():.4f})")

    col1, col2 = st.columns(2)
    with col1:
        st.download_button("📥 Download submission.csv", submission_csv(predictions),
                           file_name=config.SUBMISSION_FILENAME, mime="text/csv")
    with col2:
        st.download_button("📊 Download probabilities.csv", probabilities_csv(predictions),
                           file_name=config.PROBABILITIES_FILENAME, mime="text/csv")
