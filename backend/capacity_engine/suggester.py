"""Assignment suggestions: rank team members for a phase in a quarter.

Scoring weights:
    40%  available capacity (free days vs total workdays in the quarter)
    35%  skill match (fraction of required skills covered)
    25%  history (prior assignments on the same project, other phases)
"""

from typing import Optional

from capacity_engine.capacity import as_snapshot, calculate_capacity, round_half_up

CAPACITY_WEIGHT = 0.40
SKILL_WEIGHT = 0.35
HISTORY_WEIGHT = 0.25

HISTORY_POINTS_PER_ASSIGNMENT = 33


def _score_member(member: dict, project_id, phase_id, quarter: str,
                  required_skill_ids: list, snapshot) -> dict:
    cap = calculate_capacity(member.get("id"), quarter, snapshot)
    available_days = max(0, cap["availableDaysRaw"])
    capacity_score = min(100, round_half_up(available_days / max(cap["totalWorkdays"], 1) * 100))

    skill_score = 100
    if required_skill_ids:
        member_skills = set(member.get("skillIds") or [])
        matched = sum(1 for s in required_skill_ids if s in member_skills)
        skill_score = round_half_up(matched / len(required_skill_ids) * 100)

    prior_assignments = sum(
        1 for a in snapshot.assignments
        if a.get("projectId") == project_id
        and a.get("memberId") == member.get("id")
        and not (phase_id and a.get("phaseId") == phase_id)
    )
    history_score = min(100, prior_assignments * HISTORY_POINTS_PER_ASSIGNMENT)

    score = round_half_up(
        capacity_score * CAPACITY_WEIGHT
        + skill_score * SKILL_WEIGHT
        + history_score * HISTORY_WEIGHT
    )

    reasons = []
    if available_days > 0:
        reasons.append(f"{available_days:g}d free")
    if required_skill_ids:
        if skill_score == 100:
            reasons.append("All skills match")
        elif skill_score > 0:
            reasons.append(f"{skill_score}% skills")
    if history_score > 0:
        reasons.append("Worked on this project")

    return {
        "member": member,
        "score": score,
        "capacityScore": capacity_score,
        "skillScore": skill_score,
        "historyScore": history_score,
        "availableDays": available_days,
        "reasons": reasons
    }


def suggest_assignees(project_id, phase_id: Optional[str], quarter: str,
                      required_skill_ids: list, snapshot, limit: int = 5) -> list:
    """Rank members for an assignment, best first.

    Members with no free days in the quarter are left out.
    """
    snapshot = as_snapshot(snapshot)
    required_skill_ids = required_skill_ids or []

    scored = [
        _score_member(member, project_id, phase_id, quarter, required_skill_ids, snapshot)
        for member in snapshot.team_members
    ]
    scored = [s for s in scored if s["availableDays"] > 0]
    scored.sort(key=lambda s: s["score"], reverse=True)
    return scored[:limit]
