# argfolio/utils/sorting_utils.py
import logging
from datetime import datetime, timezone
from typing import Iterable, List

from argfolio.domain.movements import Movement
from argfolio.utils.type_utils import parse_movement_datetime

logger = logging.getLogger(__name__)

# Movements whose timestamp cannot be parsed sort before everything else.
_UNPARSEABLE_SORT_INSTANT = datetime.min.replace(tzinfo=timezone.utc)


def get_movement_sort_key(movement: Movement) -> datetime:
    """
    Chronological sort key for a Movement.
    Ties are not broken here: callers rely on Python's stable sort so that
    movements sharing a timestamp keep their input order.
    """
    parsed = parse_movement_datetime(movement.datetime_iso)
    if parsed is None:
        logger.warning(f"Movement {movement.id} has unparseable datetime '{movement.datetime_iso}'. Sorting it first.")
        return _UNPARSEABLE_SORT_INSTANT
    return parsed


def sort_movements_chronologically(movements: Iterable[Movement]) -> List[Movement]:
    """Returns a new list; the input sequence is left untouched."""
    return sorted(movements, key=get_movement_sort_key)
