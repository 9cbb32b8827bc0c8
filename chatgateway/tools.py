from __future__ import annotations
from datetime import date, timedelta
from typing import Any, Dict, Optional

from chatgateway.schemas import ToolSpec


def tomorrow(today: Optional[date] = None) -> str:
    """
    Tool Name: get_tomorrow_date
    Return the calendar date following the current date.

    Purpose:
        Models don't know what day it is. This deterministic helper gives
        the model a grounded answer for questions such as "What day is
        tomorrow?" instead of letting it guess.

    Parameters:
        today (date | None):
            Reference date. Defaults to the server's current local date;
            only tests pass it explicitly.

    Returns:
        str:
            The next day in ISO format followed by its weekday,
            e.g. "2026-10-20 (Tuesday)".

    Error Handling:
        This function does not raise exceptions.
    """
    base = today or date.today()
    nxt = base + timedelta(days=1)
    return f"{nxt.isoformat()} ({nxt.strftime('%A')})"


def _invoke_tomorrow(arguments: Dict[str, Any]) -> str:
    # the tool takes no arguments, anything the model sends is ignored
    return tomorrow()


DATE_TIME_TOOL = ToolSpec(
    name="get_tomorrow_date",
    description="Get the calendar date of tomorrow (the day after the current date in the user's timezone).",
    parameters={"type": "object", "properties": {}, "additionalProperties": False},
    invoke=_invoke_tomorrow,
)
