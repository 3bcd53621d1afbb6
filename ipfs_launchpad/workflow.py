#!/usr/bin/env python3
"""
Launchpad workflow: add -> read -> download -> publish -> resolve

Each step waits for the previous one and the first failure aborts the run.
"""

import logging
import time
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable, List, NamedTuple, Optional, TypeVar

from ipfs_launchpad.errors import LaunchpadError
from ipfs_launchpad.ipfs_client import IPFSClient, PublishResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TEXT = "Hello from Launchpad!"
DEFAULT_LIFETIME = timedelta(hours=50)
DEFAULT_TTL = timedelta(0)

STEP_NAMES = ("add", "read", "download", "publish", "resolve")


class StepResult(NamedTuple):
    """Outcome of a single workflow step"""

    step: str
    ok: bool
    value: Any
    error: Optional[str]
    elapsed_seconds: float


class WorkflowOptions(NamedTuple):
    """Inputs of a workflow run"""

    output_path: Path
    key: str = ""
    text: str = DEFAULT_TEXT
    lifetime: timedelta = DEFAULT_LIFETIME
    ttl: timedelta = DEFAULT_TTL
    resolve_first: bool = True


class WorkflowResult(NamedTuple):
    """Everything a successful run produced"""

    cid: str
    content: str
    download_path: Path
    ipns_name: str
    resolved_cid: str
    consistent: bool
    steps: List[StepResult]


StepCallback = Callable[[StepResult], None]


def run_step(name: str, action: Callable[[], T], steps: List[StepResult], on_step: Optional[StepCallback] = None) -> T:
    """Run one step, record its outcome and re-raise its error untouched"""
    logger.info(f"Step {name}: starting")
    started = time.monotonic()
    try:
        value = action()
    except LaunchpadError as e:
        result = StepResult(step=name, ok=False, value=None, error=str(e), elapsed_seconds=time.monotonic() - started)
        steps.append(result)
        logger.error(f"Step {name}: failed after {result.elapsed_seconds:.2f}s - {e}")
        if on_step:
            on_step(result)
        raise

    result = StepResult(step=name, ok=True, value=value, error=None, elapsed_seconds=time.monotonic() - started)
    steps.append(result)
    logger.info(f"Step {name}: done in {result.elapsed_seconds:.2f}s")
    if on_step:
        on_step(result)
    return value


def run_workflow(client: IPFSClient, options: WorkflowOptions, on_step: Optional[StepCallback] = None) -> WorkflowResult:
    """Run the five steps in order against client

    on_step is called after every attempted step, including the one that
    failed, so callers can report partial progress.
    """
    steps: List[StepResult] = []

    cid = run_step("add", lambda: client.add_str(options.text), steps, on_step)
    content = run_step("read", lambda: client.cat_text(cid), steps, on_step)
    download_path = run_step("download", lambda: client.get(cid, options.output_path), steps, on_step)
    published: PublishResult = run_step(
        "publish",
        lambda: client.publish(
            cid,
            key=options.key,
            lifetime=options.lifetime,
            ttl=options.ttl,
            resolve=options.resolve_first,
        ),
        steps,
        on_step,
    )
    resolved_cid = run_step("resolve", lambda: client.resolve(options.key or published.name), steps, on_step)

    consistent = resolved_cid == cid
    if not consistent:
        # A cached record from an earlier publish can still be served
        logger.warning(f"Resolved {resolved_cid}, expected {cid}")

    return WorkflowResult(
        cid=cid,
        content=content,
        download_path=download_path,
        ipns_name=published.name,
        resolved_cid=resolved_cid,
        consistent=consistent,
        steps=steps,
    )
