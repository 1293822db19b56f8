"""Matching criteria reporting.

Summarizes which axes were enabled and how much reference data the viewer
had. Informational only; nothing here feeds back into scoring.
"""

from app.domain.models import ViewerProfile

from .models import AxisToggles, MatchingCriteria


def build_matching_criteria(viewer: ViewerProfile, axes: AxisToggles) -> MatchingCriteria:
    """Build the criteria report for a request.

    Counts are None for disabled axes. The location count is 1 or 0 because
    only the single active temporary address is considered.
    """
    return MatchingCriteria(
        enabled=axes,
        skills_count=len(viewer.skill_ids) if axes.skills else None,
        sub_skills_count=len(viewer.sub_skill_ids) if axes.sub_skills else None,
        locations_count=(1 if viewer.active_pincode else 0) if axes.location else None,
    )


def missing_profile_data(viewer: ViewerProfile, axes: AxisToggles) -> list:
    """Names of enabled axes for which the viewer has no reference data.

    Used for diagnostics only: thin profiles still get results.
    """
    missing = []
    if axes.skills and not viewer.skill_ids:
        missing.append("skills")
    if axes.sub_skills and not viewer.sub_skill_ids:
        missing.append("sub-skills")
    if axes.location and not viewer.active_pincode:
        missing.append("address")
    return missing
