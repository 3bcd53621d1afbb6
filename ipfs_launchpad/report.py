"""
JSON reports of workflow runs
"""

from datetime import timedelta
from pathlib import Path
from typing import Any, List, Optional

import orjson

from ipfs_launchpad.durations import format_duration
from ipfs_launchpad.workflow import StepResult, WorkflowOptions, WorkflowResult


def default_serializer(obj: Any) -> Any:
    """Custom serializer for orjson to handle NamedTuples, paths and durations"""
    if isinstance(obj, Path):
        return str(obj)
    elif isinstance(obj, timedelta):
        return format_duration(obj)
    elif hasattr(obj, "_asdict"):
        # NamedTuple
        return obj._asdict()
    elif hasattr(obj, "__iter__") and not isinstance(obj, (str, bytes, bytearray)):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_json_file(file_path: Path, data: Any) -> None:
    """Write data to JSON file using orjson"""
    file_path.parent.mkdir(parents=True, exist_ok=True)

    json_bytes = orjson.dumps(data, default=default_serializer, option=orjson.OPT_INDENT_2 | orjson.OPT_SORT_KEYS)

    with open(file_path, "wb") as f:
        f.write(json_bytes)


def build_report(options: WorkflowOptions, steps: List[StepResult], result: Optional[WorkflowResult] = None) -> dict:
    """Summary of a run; result is None when a step failed"""
    return {
        "ok": result is not None,
        "consistent": result.consistent if result else None,
        "options": options,
        "steps": steps,
        "result": result._replace(steps=[]) if result else None,
    }
