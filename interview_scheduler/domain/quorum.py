"""
Quorum aggregation over interviewer availability.

A slot is feasible when at least `threshold` interviewers are free in it.
Counting runs one accumulator per (day, slot) position, so no intermediate
of size days x slots x interviewers is built.
"""

from typing import List, Sequence

from interview_scheduler.errors import NoInterviewersError, ShapeMismatchError

from .availability import AvailabilityMatrix, Day


def availability_counts(matrices: Sequence[AvailabilityMatrix]) -> List[List[int]]:
    """
    Count, per (day, slot), how many matrices mark the slot free.

    Raises:
        NoInterviewersError: If `matrices` is empty
        ShapeMismatchError: If the matrices disagree in day or slot count
    """
    if not matrices:
        raise NoInterviewersError("Cannot compute a quorum without interviewers")

    reference = matrices[0].shape
    counts = [[0] * slots for slots in reference]

    for position, matrix in enumerate(matrices):
        if matrix.shape != reference:
            raise ShapeMismatchError(
                f"Availability matrix {position} has shape {matrix.shape}, expected {reference}"
            )
        for day_index, day in enumerate(matrix.days):
            row = counts[day_index]
            for slot_index, free in enumerate(day.times):
                if free:
                    row[slot_index] += 1

    return counts


def compute_feasibility(matrices: Sequence[AvailabilityMatrix], threshold: int) -> AvailabilityMatrix:
    """
    Derive the feasibility matrix for a set of interviewer matrices.

    Args:
        matrices: One availability matrix per interviewer, identically shaped
        threshold: Interviewers required per slot. Values <= 0 make every slot
            feasible, values above the interviewer count make none feasible.

    Returns:
        AvailabilityMatrix: Same shape and dates as the inputs; a slot is True
        iff the number of free interviewers is >= threshold
    """
    counts = availability_counts(matrices)
    reference = matrices[0]
    return AvailabilityMatrix(
        days=[
            Day(date=day.date, times=[count >= threshold for count in row])
            for day, row in zip(reference.days, counts)
        ]
    )
