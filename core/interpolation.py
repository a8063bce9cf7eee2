from typing import List, Sequence

from models.reading_model import QUANTITY_FIELDS, Reading
from .utils import mean_of


class SeriesInterpolator:
    """Fill null quantities in a retrieved batch from their array neighbours.

    Single pass over the batch in its existing order. Each interior null is
    replaced by the mean of the same field in the elements directly before
    and after it, using their original values; if either neighbour is also
    null the field stays null. The first and last elements are returned as-is.
    """

    def interpolate(self, readings: Sequence[Reading]) -> List[Reading]:
        if len(readings) < 3:
            return list(readings)

        filled = [readings[0]]
        for index in range(1, len(readings) - 1):
            reading = readings[index]
            previous, following = readings[index - 1], readings[index + 1]
            updates = {
                field: mean_of(getattr(previous, field), getattr(following, field))
                for field in QUANTITY_FIELDS
                if getattr(reading, field) is None
            }
            filled.append(reading.model_copy(update=updates) if updates else reading)
        filled.append(readings[-1])
        return filled
