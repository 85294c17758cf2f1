import math
from typing import Any

import numpy as np
import pandas as pd


def serialize_for_json(obj: Any) -> Any:
    """Convert pandas/numpy types to JSON-serializable Python types.

    NaN (undefined sensitivity or precision, sd of a single run) becomes None.
    """
    if isinstance(obj, np.bool_):
        return bool(obj)
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, (float, np.floating)):
        return None if math.isnan(obj) else float(obj)
    elif isinstance(obj, np.ndarray):
        return [serialize_for_json(item) for item in obj.tolist()]
    elif isinstance(obj, (pd.Series, pd.Index)):
        return [serialize_for_json(item) for item in obj.tolist()]
    elif isinstance(obj, pd.DataFrame):
        return serialize_for_json(obj.to_dict(orient="index"))
    elif isinstance(obj, dict):
        return {str(k): serialize_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [serialize_for_json(item) for item in obj]
    else:
        return obj
