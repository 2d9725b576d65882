"""
Модуль для расчета оценок длительности работ по методу PERT
"""
import math

from planning.exceptions import InvalidDurationError

ESTIMATE_FIELDS = ('optimistic', 'most_likely', 'pessimistic')


def derive_estimates(optimistic, most_likely, pessimistic):
    """
    Рассчитывает ожидаемую длительность и дисперсию по трем оценкам.

    Args:
        optimistic: Оптимистическая оценка
        most_likely: Наиболее вероятная оценка
        pessimistic: Пессимистическая оценка

    Returns:
        (mean, variance)
    """
    mean = (optimistic + 4 * most_likely + pessimistic) / 6
    variance = ((pessimistic - optimistic) / 6) ** 2
    return mean, variance


def validate_estimates(optimistic, most_likely, pessimistic, activity_id=None, name=""):
    """
    Проверяет, что все оценки конечны и неотрицательны.

    Raises:
        InvalidDurationError: если хотя бы одна оценка некорректна
    """
    values = (optimistic, most_likely, pessimistic)
    for field_name, value in zip(ESTIMATE_FIELDS, values):
        if value is None or isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidDurationError(field_name, value, activity_id=activity_id, name=name)
        if not math.isfinite(value) or value < 0:
            raise InvalidDurationError(field_name, value, activity_id=activity_id, name=name)


def validate_activity_estimates(activity):
    """Shortcut for validating the three estimates of an Activity snapshot."""
    validate_estimates(
        activity.optimistic, activity.most_likely, activity.pessimistic,
        activity_id=activity.id, name=activity.name
    )
