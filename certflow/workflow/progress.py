"""Course and section completion percentages.

Pure functions over completion pairs ``(subsection_id, completed_at)``.
Only pairs with a non-null ``completed_at`` count, and each subsection
counts once however many rows it has.
"""
from collections import namedtuple
from decimal import Decimal, ROUND_HALF_UP

CourseProgress = namedtuple("CourseProgress", ["percentage", "completed", "total"])
SectionProgress = namedtuple("SectionProgress", ["section_id", "title", "percentage", "completed", "total"])


def percentage_of(completed, total):
    """Whole-number percentage, halves rounded up; 0 for an empty total."""
    if not total or total <= 0:
        return 0
    completed = max(0, min(completed, total))
    ratio = Decimal(100 * completed) / Decimal(total)
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def completed_ids(completions):
    return {subsection_id for subsection_id, completed_at in completions if completed_at is not None}


def compute_progress(completions, total_subsections, subsection_ids=None):
    """Course progress. With ``subsection_ids`` only the course's own subsections count."""
    total = total_subsections or 0
    done = completed_ids(completions or ())
    if subsection_ids is not None:
        done &= set(subsection_ids)
    # stray ids (other courses, deleted subsections) never push past 100%
    completed = min(len(done), total)
    return CourseProgress(percentage_of(completed, total), completed, total)


def compute_section_progress(sections, completions):
    """Per-section breakdown.

    ``sections`` yields ``(section_id, title, subsection_ids)``; a completion
    only counts toward the section that owns its subsection.
    """
    done = completed_ids(completions or ())
    result = []
    for section_id, title, subsection_ids in sections:
        ids = set(subsection_ids)
        sec_completed = len(ids & done)
        result.append(SectionProgress(
            section_id=section_id,
            title=title,
            percentage=percentage_of(sec_completed, len(ids)),
            completed=sec_completed,
            total=len(ids),
        ))
    return result


def is_course_fully_completed(progress):
    # an empty course is never complete through progress
    return progress.total > 0 and progress.completed >= progress.total
