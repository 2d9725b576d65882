class ScheduleError(Exception):
    """Общая ошибка расчета расписания."""


class InvalidDurationError(ScheduleError):
    """Оценка длительности отрицательна или не является конечным числом."""

    def __init__(self, field, value, activity_id=None, name=""):
        self.field = field
        self.value = value
        self.activity_id = activity_id
        self.name = name
        label = name or f"id={activity_id}"
        super().__init__(f"Некорректная оценка {field}={value!r} у работы {label}: нужна неотрицательная длительность")


class InvalidActivityNameError(ScheduleError):
    """Название работы содержит недопустимые символы."""

    def __init__(self, name):
        self.name = name
        super().__init__(f"Название работы может содержать только буквы: {name!r}")


class CyclicDependencyError(ScheduleError):
    """Зависимости образуют цикл, расписание не определено."""

    def __init__(self, cycle, activity_ids=()):
        # cycle is closed: ["A", "B", "A"]
        self.cycle = list(cycle)
        self.activity_ids = list(activity_ids)
        super().__init__(f"Циклическая зависимость: {' -> '.join(self.cycle)}")


class DuplicateActivityNameError(ScheduleError):
    """Несколько работ с одинаковым названием (строгий режим)."""

    def __init__(self, name, activity_ids):
        self.name = name
        self.activity_ids = list(activity_ids)
        super().__init__(f"Дублирующееся название работы: {name} (id: {', '.join(map(str, self.activity_ids))})")


class UnknownPredecessorError(ScheduleError):
    """Предшественник не найден среди работ (строгий режим)."""

    def __init__(self, missing):
        # missing: {activity label: [predecessor names]}
        self.missing = dict(missing)
        lines = [f"{label} -> {', '.join(names)}" for label, names in self.missing.items()]
        super().__init__("Зависимости не найдены: " + "; ".join(lines))


class ScheduleConsistencyError(ScheduleError):
    """Внутренняя ошибка: резервы LS-ES и LF-EF не совпали."""
