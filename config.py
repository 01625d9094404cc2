# config.py
"""
Configuration file for the Titanic Survival Pipeline project.
Stores constants like column names, category orders, and training parameters.
"""

# --- Export Paths ---
OUTPUT_DIR = "outputs"
SUBMISSION_FILENAME = "titanic_submission.csv"
PROBABILITIES_FILENAME = "titanic_probabilities.csv"

# --- Dataset Schema ---
TARGET = 'Survived'
ID_COLUMN = 'PassengerId'
NUMERICAL_FEATURES = ['Age', 'Fare', 'SibSp', 'Parch']
CATEGORICAL_FEATURES = ['Pclass', 'Sex', 'Embarked']
FEATURES = NUMERICAL_FEATURES + CATEGORICAL_FEATURES

# Category orders fix the one-hot slot positions of the feature vector
PCLASS_CATEGORIES = [1, 2, 3]
SEX_CATEGORIES = ['male', 'female']
EMBARKED_CATEGORIES = ['C', 'Q', 'S']

# Fallback for the port of embarkation when no value is observed
DEFAULT_EMBARKED = 'S'

# --- Model & Evaluation Configuration ---
DEFAULT_THRESHOLD = 0.5
TRAIN_FRACTION = 0.8
EPOCHS = 50
BATCH_SIZE = 32
HIDDEN_UNITS = 16
LEARNING_RATE = 0.001
RANDOM_STATE = 42

# Permutation importance
IMPORTANCE_RUNS = 3
IMPORTANCE_MAX_SAMPLES = 100
