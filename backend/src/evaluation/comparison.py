import logging

from errors import InputValidationError
from models.evaluation import CRITERIA, EvaluationComparison, EvaluationResult

logger = logging.getLogger(__name__)

TREND_DELTA = 5
WEAK_SCORE = 70
EXCELLENT_OVERALL = 85
GOOD_OVERALL = 70


def average_scores(results: list[EvaluationResult]) -> dict[str, float]:
    count = len(results)
    averages = {
        name: round(sum(getattr(r.criteria, name) for r in results) / count, 1)
        for name in CRITERIA
    }
    averages["overall"] = round(sum(r.overall_score for r in results) / count, 1)
    return averages


def analyze_trends(results: list[EvaluationResult]) -> dict[str, str]:
    """Compare the earliest and latest evaluation per criterion."""
    if len(results) < 2:
        return {}
    ordered = sorted(results, key=lambda r: r.metadata.finished_at)
    first, last = ordered[0], ordered[-1]

    trends = {}
    for name in CRITERIA:
        diff = getattr(last.criteria, name) - getattr(first.criteria, name)
        if diff > TREND_DELTA:
            trends[name] = "improving"
        elif diff < -TREND_DELTA:
            trends[name] = "declining"
        else:
            trends[name] = "stable"
    return trends


def build_recommendations(
    averages: dict[str, float], trends: dict[str, str]
) -> list[str]:
    recommendations = []

    weakest = min(CRITERIA, key=lambda name: averages[name])
    if averages[weakest] < WEAK_SCORE:
        recommendations.append(
            f"Focus on improving {weakest}: current average {averages[weakest]}"
        )

    declining = [name for name, trend in trends.items() if trend == "declining"]
    if declining:
        recommendations.append(f"Watch the declining areas: {', '.join(declining)}")
    improving = [name for name, trend in trends.items() if trend == "improving"]
    if improving:
        recommendations.append(f"Keep building on your progress in: {', '.join(improving)}")

    overall = averages["overall"]
    if overall >= EXCELLENT_OVERALL:
        recommendations.append("Excellent overall level, keep it consistent")
    elif overall >= GOOD_OVERALL:
        recommendations.append("Good level, aim for more consistency across criteria")
    else:
        recommendations.append("Work on the fundamentals and practise regularly")
    return recommendations


def compare_evaluations(results: list[EvaluationResult]) -> EvaluationComparison:
    if not results:
        raise InputValidationError("No evaluations provided for comparison")

    averages = average_scores(results)
    trends = analyze_trends(results)
    comparison = EvaluationComparison(
        evaluation_count=len(results),
        average_scores=averages,
        trends=trends,
        recommendations=build_recommendations(averages, trends),
    )
    logger.info(
        f"Compared {len(results)} evaluations, overall average {averages['overall']}"
    )
    return comparison
