"""
Shaping of quality aggregates into flat feature records.
"""

from .feature_records import FeatureRecordBuilder, FeatureRecords

__all__ = ["FeatureRecordBuilder", "FeatureRecords"]
