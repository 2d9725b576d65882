# planning/network.py
"""
Модуль для расчета параметров сетевой модели PERT и определения критического пути
"""
from collections import deque

from config import CRITICAL_TOLERANCE
from logger import logger
from planning.estimates import derive_estimates, validate_activity_estimates
from planning.exceptions import (
    CyclicDependencyError, DuplicateActivityNameError, ScheduleConsistencyError,
    ScheduleError, UnknownPredecessorError
)
from planning.models import (
    END_NODE_ID, START_NODE_ID, DependencyGraph, Diagnostic, DiagnosticKind,
    GraphEdge, GraphNode, PertSchedule, ScheduleGraph, ScheduleNode
)

RELATIVE_TOLERANCE = 1e-9


def calculate_network_parameters(activities, tolerance=None, strict=False):
    """
    Рассчитывает расписание PERT для снимка работ.

    Args:
        activities: Список работ (planning.models.Activity)
        tolerance: Допуск для проверки нулевого резерва (по умолчанию из конфигурации)
        strict: Если True, висячие ссылки и дубли названий считаются ошибками

    Returns:
        PertSchedule с рассчитанными узлами, графом и диагностикой

    Raises:
        InvalidDurationError: отрицательная или некорректная оценка длительности
        CyclicDependencyError: зависимости образуют цикл
    """
    activities = list(activities)
    if tolerance is None:
        tolerance = CRITICAL_TOLERANCE

    if not activities:
        logger.warning("Нет работ для расчета сетевой модели")

    try:
        # Оценкам вызывающей стороны не доверяем
        for activity in activities:
            validate_activity_estimates(activity)

        # Строим граф зависимостей и проверяем его на циклы
        graph = build_dependency_graph(activities, strict=strict)
        order = topological_sort(graph)

        for diagnostic in graph.diagnostics:
            logger.warning(diagnostic.message)

        # Прямой и обратный проходы
        times = calculate_early_times(graph, order)
        project_duration = calculate_late_times(graph, order, times)

        # Резервы и критические работы
        nodes = identify_critical_path(graph, times, tolerance)
    except ScheduleError as e:
        logger.error(f"Ошибка при расчете сетевой модели: {str(e)}")
        raise

    schedule = PertSchedule(
        nodes=tuple(nodes),
        graph=build_schedule_graph(graph, nodes),
        diagnostics=tuple(graph.diagnostics),
        project_duration=project_duration,
        order=tuple(order)
    )

    logger.info(f"Рассчитана сетевая модель: {len(nodes)} работ, длительность проекта: {project_duration:.2f}")
    logger.info(f"Критический путь: {[node.name for node in schedule.critical_path]}")

    return schedule


def build_dependency_graph(activities, strict=False):
    """
    Строит граф зависимостей по названиям предшественников.

    Название разрешается в первую работу списка с таким именем. Ссылки на
    несуществующие работы пропускаются с предупреждением.

    Args:
        activities: Список работ
        strict: Превращать предупреждения в исключения

    Returns:
        DependencyGraph
    """
    activities = list(activities)

    # Индекс название -> id, при дублях выигрывает первая работа в списке
    first_by_name = {}
    ids_by_name = {}
    seen_ids = set()
    for activity in activities:
        if activity.id in seen_ids:
            raise ScheduleError(f"Повторяющийся id работы: {activity.id}")
        if activity.id in (START_NODE_ID, END_NODE_ID):
            raise ScheduleError(f"Id работы совпадает со служебным узлом графа: {activity.id}")
        seen_ids.add(activity.id)

        if activity.name:
            ids_by_name.setdefault(activity.name, []).append(activity.id)
            first_by_name.setdefault(activity.name, activity.id)

    diagnostics = []
    for name, ids in ids_by_name.items():
        if len(ids) < 2:
            continue
        if strict:
            raise DuplicateActivityNameError(name, ids)
        diagnostics.append(Diagnostic(
            kind=DiagnosticKind.DUPLICATE_ACTIVITY_NAME,
            activity_id=ids[0],
            name=name,
            message=f"Название '{name}' используется несколькими работами (id: "
                    f"{', '.join(map(str, ids))}), ссылки указывают на id {ids[0]}"
        ))

    predecessors = {activity.id: [] for activity in activities}
    successors = {activity.id: [] for activity in activities}
    missing = {}

    for activity in activities:
        for predecessor_name in activity.predecessors:
            predecessor_id = first_by_name.get(predecessor_name)

            if predecessor_id is None:
                label = activity.name or f"id={activity.id}"
                missing.setdefault(label, []).append(predecessor_name)
                diagnostics.append(Diagnostic(
                    kind=DiagnosticKind.DANGLING_PREDECESSOR,
                    activity_id=activity.id,
                    name=predecessor_name,
                    message=f"Зависимость от несуществующей работы: {predecessor_name} для работы {label}"
                ))
                continue

            predecessors[activity.id].append(predecessor_id)
            successors[predecessor_id].append(activity.id)

    if strict and missing:
        raise UnknownPredecessorError(missing)

    logger.debug(f"Создан граф зависимостей: {len(activities)} работ, "
                 f"{sum(len(ids) for ids in predecessors.values())} связей")

    return DependencyGraph(
        activities=activities,
        predecessors=predecessors,
        successors=successors,
        diagnostics=diagnostics
    )


def find_cycle(graph):
    """
    Ищет цикл обходом в глубину с раскраской вершин.

    Args:
        graph: DependencyGraph

    Returns:
        Замкнутый список id работ цикла ([a, b, a]) или None
    """
    white, grey, black = 0, 1, 2
    color = {activity.id: white for activity in graph.activities}

    for root in color:
        if color[root] != white:
            continue

        color[root] = grey
        path = [root]
        stack = [(root, iter(graph.successors[root]))]

        while stack:
            node, successors = stack[-1]
            for successor in successors:
                if color[successor] == grey:
                    return path[path.index(successor):] + [successor]
                if color[successor] == white:
                    color[successor] = grey
                    path.append(successor)
                    stack.append((successor, iter(graph.successors[successor])))
                    break
            else:
                color[node] = black
                path.pop()
                stack.pop()

    return None


def topological_sort(graph):
    """
    Сортирует работы в топологическом порядке (алгоритм Кана).

    Args:
        graph: DependencyGraph

    Returns:
        Список id работ

    Raises:
        CyclicDependencyError: если в графе есть цикл
    """
    cycle = find_cycle(graph)
    if cycle:
        names = {activity.id: activity.name or f"id={activity.id}" for activity in graph.activities}
        raise CyclicDependencyError([names[activity_id] for activity_id in cycle], cycle[:-1])

    in_degree = {activity.id: len(graph.predecessors[activity.id]) for activity in graph.activities}
    queue = deque(activity.id for activity in graph.activities if in_degree[activity.id] == 0)
    order = []

    while queue:
        current = queue.popleft()
        order.append(current)
        for successor in graph.successors[current]:
            in_degree[successor] -= 1
            if in_degree[successor] == 0:
                queue.append(successor)

    if len(order) != len(graph.activities):
        raise ScheduleError("Не удалось упорядочить работы")

    return order


def calculate_early_times(graph, order):
    """
    Рассчитывает ранние сроки начала и окончания для всех работ.

    Args:
        graph: DependencyGraph
        order: Топологический порядок id работ

    Returns:
        Словарь id -> параметры работы (mean, variance, early_start, early_finish)
    """
    activities_by_id = {activity.id: activity for activity in graph.activities}
    times = {}

    for activity_id in order:
        activity = activities_by_id[activity_id]
        mean, variance = derive_estimates(activity.optimistic, activity.most_likely, activity.pessimistic)

        # Без предшественников ранний срок начала = 0,
        # иначе максимум из ранних сроков окончания предшественников
        early_start = max(
            (times[predecessor_id]['early_finish'] for predecessor_id in graph.predecessors[activity_id]),
            default=0.0
        )

        times[activity_id] = {
            'mean': mean,
            'variance': variance,
            'early_start': early_start,
            'early_finish': early_start + mean
        }

    return times


def calculate_late_times(graph, order, times):
    """
    Рассчитывает поздние сроки начала и окончания для всех работ.

    Args:
        graph: DependencyGraph
        order: Топологический порядок id работ
        times: Результат calculate_early_times, дополняется на месте

    Returns:
        Длительность проекта (максимальный ранний срок окончания)
    """
    project_duration = max((params['early_finish'] for params in times.values()), default=0.0)

    for activity_id in reversed(order):
        params = times[activity_id]
        successor_ids = graph.successors[activity_id]

        if successor_ids:
            params['latest_finish'] = min(times[successor_id]['latest_start'] for successor_id in successor_ids)
        else:
            params['latest_finish'] = project_duration

        params['latest_start'] = params['latest_finish'] - params['mean']

    return project_duration


def identify_critical_path(graph, times, tolerance=CRITICAL_TOLERANCE):
    """
    Рассчитывает резервы и отмечает критические работы.

    Args:
        graph: DependencyGraph
        times: Результаты прямого и обратного проходов
        tolerance: Допуск нулевого резерва

    Returns:
        Список ScheduleNode в порядке входного списка
    """
    # Погрешность округления растет вместе с длительностью проекта
    scale = max((params['latest_finish'] for params in times.values()), default=0.0)
    tolerance = max(tolerance, RELATIVE_TOLERANCE * scale)

    nodes = []

    for activity in graph.activities:
        params = times[activity.id]
        start_slack = params['latest_start'] - params['early_start']
        finish_slack = params['latest_finish'] - params['early_finish']

        # Оба резерва совпадают при корректном расчете
        if abs(start_slack - finish_slack) > tolerance:
            raise ScheduleConsistencyError(
                f"Резервы работы {activity.name or activity.id} не совпадают: "
                f"LS-ES={start_slack}, LF-EF={finish_slack}"
            )

        is_critical = abs(start_slack) <= tolerance

        nodes.append(ScheduleNode(
            activity=activity,
            mean=params['mean'],
            variance=params['variance'],
            earliest_start=params['early_start'],
            earliest_finish=params['early_finish'],
            latest_start=params['latest_start'],
            latest_finish=params['latest_finish'],
            slack=0.0 if is_critical else start_slack,
            is_critical=is_critical
        ))

    return nodes


def build_schedule_graph(graph, nodes):
    """
    Создает граф для визуализации: start -> работы -> end.

    Args:
        graph: DependencyGraph
        nodes: Рассчитанные ScheduleNode

    Returns:
        ScheduleGraph
    """
    nodes_by_id = {node.id: node for node in nodes}
    roots = graph.roots
    leaves = graph.leaves

    graph_nodes = [GraphNode(
        id=START_NODE_ID,
        kind='start',
        label='Start',
        is_critical=any(nodes_by_id[root].is_critical for root in roots)
    )]

    for node in nodes:
        graph_nodes.append(GraphNode(
            id=node.id,
            kind='activity',
            label=f"{node.name or f'#{node.id}'}\nMean: {node.mean:.2f}\nVariance: {node.variance:.2f}\n"
                  f"ES: {node.earliest_start:.2f} LS: {node.latest_start:.2f}",
            is_critical=node.is_critical,
            activity_id=node.id
        ))

    graph_nodes.append(GraphNode(
        id=END_NODE_ID,
        kind='end',
        label='End',
        is_critical=any(nodes_by_id[leaf].is_critical for leaf in leaves)
    ))

    edges = [GraphEdge(START_NODE_ID, root, nodes_by_id[root].is_critical) for root in roots]

    for activity in graph.activities:
        for successor_id in graph.successors[activity.id]:
            edges.append(GraphEdge(
                activity.id,
                successor_id,
                nodes_by_id[activity.id].is_critical and nodes_by_id[successor_id].is_critical
            ))

    edges.extend(GraphEdge(leaf, END_NODE_ID, nodes_by_id[leaf].is_critical) for leaf in leaves)

    return ScheduleGraph(nodes=tuple(graph_nodes), edges=tuple(edges))
