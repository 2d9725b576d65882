from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from planning.estimates import derive_estimates


START_NODE_ID = "__start__"
END_NODE_ID = "__end__"


def normalize_predecessors(names: Iterable[str]) -> Tuple[str, ...]:
    """Strips blanks and repeats from a predecessor list, keeping first-seen order."""
    result = []
    for name in names or ():
        name = (name or "").strip()
        if name and name not in result:
            result.append(name)
    return tuple(result)


@dataclass(frozen=True)
class Activity:
    """Одна работа проекта: снимок, который передается в расчет.

    ``mean`` и ``variance`` всегда вычисляются из трех оценок, поэтому
    устаревшие значения от вызывающей стороны не могут попасть в расчет.
    """
    id: Any
    name: str = ""
    predecessors: Tuple[str, ...] = ()
    optimistic: float = 0.0
    most_likely: float = 0.0
    pessimistic: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, 'name', (self.name or "").strip())
        object.__setattr__(self, 'predecessors', normalize_predecessors(self.predecessors))

    @property
    def mean(self) -> float:
        return derive_estimates(self.optimistic, self.most_likely, self.pessimistic)[0]

    @property
    def variance(self) -> float:
        return derive_estimates(self.optimistic, self.most_likely, self.pessimistic)[1]


@dataclass(frozen=True)
class ScheduleNode:
    """Работа с рассчитанными параметрами сетевой модели."""
    activity: Activity
    mean: float
    variance: float
    earliest_start: float
    earliest_finish: float
    latest_start: float
    latest_finish: float
    slack: float
    is_critical: bool

    @property
    def id(self):
        return self.activity.id

    @property
    def name(self) -> str:
        return self.activity.name


class DiagnosticKind(Enum):
    DANGLING_PREDECESSOR = "dangling_predecessor"
    DUPLICATE_ACTIVITY_NAME = "duplicate_activity_name"


@dataclass(frozen=True)
class Diagnostic:
    """Non-fatal problem found while resolving predecessor names."""
    kind: DiagnosticKind
    activity_id: Any
    name: str
    message: str


@dataclass
class DependencyGraph:
    """Resolved predecessor/successor edges keyed by activity id."""
    activities: List[Activity]
    predecessors: Dict[Any, List[Any]]
    successors: Dict[Any, List[Any]]
    diagnostics: List[Diagnostic] = field(default_factory=list)

    @property
    def roots(self) -> List[Any]:
        return [activity.id for activity in self.activities if not self.predecessors[activity.id]]

    @property
    def leaves(self) -> List[Any]:
        return [activity.id for activity in self.activities if not self.successors[activity.id]]


@dataclass(frozen=True)
class GraphNode:
    id: Any
    kind: str  # "start", "activity" or "end"
    label: str
    is_critical: bool
    activity_id: Optional[Any] = None


@dataclass(frozen=True)
class GraphEdge:
    source: Any
    target: Any
    is_critical: bool


@dataclass(frozen=True)
class ScheduleGraph:
    """Абстрактный граф для отрисовки: узлы start/end, работы и дуги."""
    nodes: Tuple[GraphNode, ...]
    edges: Tuple[GraphEdge, ...]

    def node(self, node_id) -> GraphNode:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise KeyError(node_id)


@dataclass(frozen=True)
class PertSchedule:
    """Результат расчета PERT для одного снимка работ."""
    nodes: Tuple[ScheduleNode, ...]
    graph: ScheduleGraph
    diagnostics: Tuple[Diagnostic, ...]
    project_duration: float
    order: Tuple[Any, ...]

    def node(self, activity_id) -> ScheduleNode:
        for node in self.nodes:
            if node.id == activity_id:
                return node
        raise KeyError(activity_id)

    @property
    def critical_path(self) -> List[ScheduleNode]:
        """Critical nodes sorted by earliest start; input order breaks ties."""
        positions = {node.id: index for index, node in enumerate(self.nodes)}
        critical = [node for node in self.nodes if node.is_critical]
        return sorted(critical, key=lambda node: (node.earliest_start, positions[node.id]))
