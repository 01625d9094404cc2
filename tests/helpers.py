"""
Record builders shared by the test modules.
"""

from model_pipeline import record_from_dict


def make_record(**values):
    """Builds a record from keyword values; None becomes absent."""
    return record_from_dict(values)
