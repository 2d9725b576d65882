"""
Вероятностный анализ сроков проекта по методу PERT
"""
import math

from scipy.stats import norm

from config import CRITICAL_TOLERANCE


def critical_chain(schedule, tolerance=CRITICAL_TOLERANCE):
    """
    Выбирает одну цепочку критических работ от начала до конца проекта.

    Соседние работы цепочки связаны "плотной" дугой (EF предшественника
    совпадает с ES последователя). Если цепочек несколько, берется цепочка
    с наибольшей суммарной дисперсией.

    Args:
        schedule: PertSchedule
        tolerance: Допуск сравнения сроков

    Returns:
        Список ScheduleNode от начала к концу (пустой для пустого проекта)
    """
    nodes = {node.id: node for node in schedule.nodes}
    predecessors = {node.id: [] for node in schedule.nodes}
    for edge in schedule.graph.edges:
        if edge.source in nodes and edge.target in nodes:
            predecessors[edge.target].append(edge.source)

    # id -> (сумма дисперсий цепочки, предыдущая работа)
    best = {}
    for activity_id in schedule.order:
        node = nodes[activity_id]
        if not node.is_critical:
            continue

        candidates = [
            predecessor_id for predecessor_id in predecessors[activity_id]
            if predecessor_id in best
            and abs(nodes[predecessor_id].earliest_finish - node.earliest_start) <= tolerance
        ]
        if candidates:
            previous = max(candidates, key=lambda predecessor_id: best[predecessor_id][0])
            best[activity_id] = (best[previous][0] + node.variance, previous)
        elif abs(node.earliest_start) <= tolerance:
            best[activity_id] = (node.variance, None)

    ends = [
        activity_id for activity_id in schedule.order
        if activity_id in best
        and abs(nodes[activity_id].earliest_finish - schedule.project_duration) <= tolerance
    ]
    if not ends:
        return []

    chain = []
    current = max(ends, key=lambda activity_id: best[activity_id][0])
    while current is not None:
        chain.append(nodes[current])
        current = best[current][1]

    chain.reverse()
    return chain


def project_variance(schedule, tolerance=CRITICAL_TOLERANCE):
    """Сумма дисперсий работ критической цепочки."""
    return sum(node.variance for node in critical_chain(schedule, tolerance))


def project_standard_deviation(schedule, tolerance=CRITICAL_TOLERANCE):
    return math.sqrt(project_variance(schedule, tolerance))


def completion_probability(schedule, deadline, tolerance=CRITICAL_TOLERANCE):
    """
    Вероятность завершить проект к сроку deadline (нормальное приближение).

    Args:
        schedule: PertSchedule
        deadline: Директивный срок в единицах длительности проекта

    Returns:
        Вероятность от 0 до 1
    """
    sigma = project_standard_deviation(schedule, tolerance)
    if sigma == 0:
        return 1.0 if deadline >= schedule.project_duration else 0.0

    return float(norm.cdf(deadline, loc=schedule.project_duration, scale=sigma))
