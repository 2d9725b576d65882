"""
Модуль для импорта и экспорта таблицы PERT в формате CSV
"""
import csv
import io
import logging

from database.operations import add_activity, get_project_activities, validate_activity_name
from planning.estimates import validate_estimates

logger = logging.getLogger(__name__)

# Колонки файла pert-table.csv
ACTIVITY_COLUMNS = [
    'id', 'activity', 'predecessors', 'optimisticTime', 'mostLikelyTime',
    'pessimisticTime', 'mean', 'variance'
]
SCHEDULE_COLUMNS = ACTIVITY_COLUMNS + [
    'earliestStart', 'earliestFinish', 'latestStart', 'latestFinish', 'slack', 'critical'
]
REQUIRED_COLUMNS = ['activity', 'optimisticTime', 'mostLikelyTime', 'pessimisticTime']


def _activity_row(activity):
    return [
        activity.id,
        activity.name,
        ','.join(activity.predecessors),
        activity.optimistic,
        activity.most_likely,
        activity.pessimistic,
        activity.mean,
        activity.variance
    ]


def export_activities_to_csv(activities):
    """
    Экспортирует работы в CSV.

    Args:
        activities: Список planning.models.Activity

    Returns:
        Строка с CSV
    """
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(ACTIVITY_COLUMNS)
    for activity in activities:
        writer.writerow(_activity_row(activity))
    return output.getvalue()


def export_schedule_to_csv(schedule):
    """
    Экспортирует рассчитанное расписание: оценки плюс сроки и резервы.

    Args:
        schedule: PertSchedule

    Returns:
        Строка с CSV
    """
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(SCHEDULE_COLUMNS)
    for node in schedule.nodes:
        writer.writerow(_activity_row(node.activity) + [
            node.earliest_start,
            node.earliest_finish,
            node.latest_start,
            node.latest_finish,
            node.slack,
            node.is_critical
        ])
    return output.getvalue()


def validate_csv_format(csv_content):
    """
    Проверяет корректность формата CSV-файла.

    Args:
        csv_content: Содержимое CSV-файла

    Returns:
        (bool, str): Результат проверки и сообщение об ошибке
    """
    reader = csv.reader(io.StringIO(csv_content))
    header = next(reader, None)

    if not header:
        return False, "CSV-файл пуст"

    missing_fields = [field for field in REQUIRED_COLUMNS if field not in header]
    if missing_fields:
        return False, f"В CSV отсутствуют обязательные поля: {', '.join(missing_fields)}"

    if next(reader, None) is None:
        return False, "CSV-файл не содержит данных"

    return True, "CSV-файл корректен"


def parse_csv_activities(csv_content):
    """
    Парсит CSV-файл с работами.

    Формат CSV совпадает с экспортом: activity,predecessors,optimisticTime,
    mostLikelyTime,pessimisticTime (остальные колонки игнорируются).

    Args:
        csv_content: Содержимое CSV-файла

    Returns:
        Список словарей с полями name, predecessors, optimistic, most_likely, pessimistic

    Raises:
        ValueError: если формат или числа некорректны
    """
    is_valid, message = validate_csv_format(csv_content)
    if not is_valid:
        raise ValueError(message)

    activities = []
    for line_number, row in enumerate(csv.DictReader(io.StringIO(csv_content)), start=2):
        try:
            activity = {
                'name': (row['activity'] or '').strip(),
                'predecessors': [name.strip() for name in (row.get('predecessors') or '').split(',') if name.strip()],
                'optimistic': float(row['optimisticTime'] or 0),
                'most_likely': float(row['mostLikelyTime'] or 0),
                'pessimistic': float(row['pessimisticTime'] or 0)
            }
        except ValueError as e:
            raise ValueError(f"Некорректные числовые значения в строке {line_number}: {str(e)}") from e

        activities.append(activity)

    # Предупреждаем о ссылках на несуществующие работы
    names = {activity['name'] for activity in activities}
    for activity in activities:
        for predecessor in activity['predecessors']:
            if predecessor not in names:
                logger.warning(f"Зависимость от несуществующей работы: {predecessor} для работы {activity['name']}")

    return activities


def import_activities_from_csv(project_id, csv_content):
    """
    Добавляет в проект работы из CSV.

    Returns:
        Список ID созданных работ
    """
    activities = parse_csv_activities(csv_content)

    # Проверяем все строки до записи, чтобы не импортировать файл частично
    for activity in activities:
        validate_activity_name(activity['name'])
        validate_estimates(activity['optimistic'], activity['most_likely'], activity['pessimistic'],
                           name=activity['name'])

    activity_ids = [add_activity(project_id, **activity) for activity in activities]
    logger.info(f"Импортировано {len(activity_ids)} работ в проект {project_id}")
    return activity_ids


def export_project_to_csv(project_id):
    """Экспортирует работы проекта в CSV."""
    return export_activities_to_csv(get_project_activities(project_id))
