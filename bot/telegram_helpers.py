# bot/telegram_helpers.py
import logging
import telegram

from planning.analysis import completion_probability, critical_chain, project_standard_deviation

logger = logging.getLogger(__name__)

NO_PREDECESSORS = {'', '-', 'нет', 'none'}


async def safe_edit_message_text(query, text, reply_markup=None, parse_mode=None):
    """
    Safely edits a message text, handling the "Message is not modified" error.

    Args:
        query: The callback query containing the message to edit
        text: The new text for the message
        reply_markup: Optional inline keyboard markup
        parse_mode: Optional parse mode for formatting (e.g., 'Markdown', 'HTML')

    Returns:
        True if successful, False if there was a "Message is not modified" error
    """
    try:
        await query.edit_message_text(
            text=text,
            reply_markup=reply_markup,
            parse_mode=parse_mode
        )
        return True
    except telegram.error.BadRequest as e:
        if "Message is not modified" in str(e):
            logger.debug("Message is already showing the desired content, skipping edit")
            return False
        logger.error(f"Error editing message: {str(e)}")
        raise


def parse_number(value):
    return float(value.replace(',', '.'))


def parse_predecessors(text):
    """Названия предшественников через запятую; '-', 'нет' или пусто - без предшественников."""
    text = text.strip()
    if text.lower() in NO_PREDECESSORS:
        return []
    return [predecessor.strip() for predecessor in text.split(',') if predecessor.strip()]


def parse_estimates(text):
    """
    Parses "o m p" or a single number meaning o = m = p.

    Returns:
        Tuple (optimistic, most_likely, pessimistic)

    Raises:
        ValueError: if the values are not numbers or their count is wrong
    """
    try:
        estimates = [parse_number(value) for value in text.split()]
    except ValueError:
        raise ValueError(f"Оценки должны быть числами: {text!r}")

    if len(estimates) == 1:
        estimates = estimates * 3
    if len(estimates) != 3:
        raise ValueError(f"Нужно три оценки (o m p) или одна: {text!r}")

    return tuple(estimates)


def parse_activity_line(line):
    """
    Parses one activity line: "Name; Pred1, Pred2; o m p".

    A single number instead of three means o = m = p.

    Returns:
        Dict with name, predecessors, optimistic, most_likely, pessimistic

    Raises:
        ValueError: on a malformed line
    """
    parts = [part.strip() for part in line.split(';')]
    if len(parts) != 3:
        raise ValueError(f"Ожидается 3 поля через ';': {line!r}")

    name, predecessors_text, estimates_text = parts
    if not name:
        raise ValueError(f"Не указано название работы: {line!r}")

    predecessors = parse_predecessors(predecessors_text)
    optimistic, most_likely, pessimistic = parse_estimates(estimates_text)
    return {
        'name': name,
        'predecessors': predecessors,
        'optimistic': optimistic,
        'most_likely': most_likely,
        'pessimistic': pessimistic
    }


def format_activities_table(activities):
    """Текстовая таблица работ проекта."""
    if not activities:
        return "В проекте пока нет работ."

    lines = ["Работы проекта:"]
    for activity in activities:
        predecessors = ', '.join(activity.predecessors) if activity.predecessors else "нет"
        lines.append(
            f"- {activity.name or f'#{activity.id} (без названия)'}: "
            f"o={activity.optimistic:g}, m={activity.most_likely:g}, p={activity.pessimistic:g}, "
            f"mean={activity.mean:.2f}, var={activity.variance:.2f}; предшественники: {predecessors}"
        )
    return "\n".join(lines)


def format_schedule_report(schedule):
    """
    Формирует текстовый отчет по расписанию PERT.

    Args:
        schedule: PertSchedule

    Returns:
        Строка отчета
    """
    chain = critical_chain(schedule)
    sigma = project_standard_deviation(schedule)

    report = "Расчет PERT завершен!\n\n"
    report += f"Ожидаемая длительность проекта: {schedule.project_duration:.2f}\n"
    report += f"Стандартное отклонение: {sigma:.2f}\n"

    if chain:
        report += "Критический путь: " + " -> ".join(node.name or f"#{node.id}" for node in chain) + "\n"
    else:
        report += "Критический путь не определен\n"

    if sigma > 0:
        deadline = schedule.project_duration + sigma
        report += (f"Вероятность завершить к сроку {deadline:.2f}: "
                   f"{completion_probability(schedule, deadline) * 100:.1f}%\n")

    report += "\nСроки работ (ES / EF / LS / LF / резерв):\n"
    for node in schedule.nodes:
        marker = "*" if node.is_critical else " "
        report += (f"{marker} {node.name or f'#{node.id}'}: {node.earliest_start:.2f} / {node.earliest_finish:.2f} / "
                   f"{node.latest_start:.2f} / {node.latest_finish:.2f} / {node.slack:.2f}\n")

    if schedule.diagnostics:
        report += "\nПредупреждения:\n"
        for diagnostic in schedule.diagnostics:
            report += f"- {diagnostic.message}\n"

    return report
