from __future__ import annotations

import asyncio
import threading
from typing import Union

ExecutionContext = Union["asyncio.Task", threading.Thread]


def current_context() -> ExecutionContext:
    """The task running the caller, or its thread outside of an event
    loop"""
    try:
        task = asyncio.current_task()
    except RuntimeError:
        task = None
    if task is not None:
        return task
    return threading.current_thread()


def context_name() -> str:
    context = current_context()
    if isinstance(context, asyncio.Task):
        return context.get_name()
    return context.name
