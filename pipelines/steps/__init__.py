

# Namespace for pipeline steps
from .validate_records import ValidateRecords  # noqa: F401
from .merge_records import MergeRecords  # noqa: F401
